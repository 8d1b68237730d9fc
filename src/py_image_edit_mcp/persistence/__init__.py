"""设置持久化包。"""

from .settings_store import (
    InMemoryStore,
    JsonFileStore,
    KeyValueStore,
    SettingsRepository,
)


__all__ = [
    "InMemoryStore",
    "JsonFileStore",
    "KeyValueStore",
    "SettingsRepository",
]
