"""设置持久化模块。

编辑设置以带版本号的 JSON 保存在键值存储中。读取失败（缺失、损坏、
版本不符或校验失败）时回退到默认设置，不会向调用方抛出异常。
"""

import json
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from ..config import get_config
from ..engine.settings_builder import SettingsBuilder
from ..exceptions import ConfigurationError, ImageEditError
from ..models.constants import SETTINGS_SCHEMA_KEY, SETTINGS_SCHEMA_VERSION
from ..models.edit_settings import DEFAULT_SETTINGS, EditSettings
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()


@runtime_checkable
class KeyValueStore(Protocol):
    """字符串键值存储"""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class InMemoryStore:
    """进程内存储，主要用于测试和一次性会话"""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """以单个 JSON 文件保存全部键值"""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path or get_config().persistence.SETTINGS_FILE).expanduser()

    def _read_all(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(MessageFormatter.operation_failed("读取设置文件", self.path, e))
            return {}
        if not isinstance(payload, dict):
            logger.warning(f"设置文件内容不是对象，已忽略: {self.path}")
            return {}
        return payload

    def get(self, key: str) -> str | None:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        payload = self._read_all()
        payload[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8"
            )
        except OSError as e:
            raise ImageEditError(
                MessageFormatter.operation_failed("写入设置文件", self.path, e)
            ) from e


class SettingsRepository:
    """编辑设置仓库"""

    def __init__(
        self,
        store: KeyValueStore,
        key: str = SETTINGS_SCHEMA_KEY,
        builder: SettingsBuilder | None = None,
    ):
        self.store = store
        self.key = key
        self.builder = builder or SettingsBuilder()

    def load(self) -> EditSettings:
        """读取已保存的设置，任何问题都回退到默认设置"""
        raw = self.store.get(self.key)
        if raw is None:
            logger.debug("没有已保存的设置，使用默认设置")
            return DEFAULT_SETTINGS

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"已保存的设置无法解析，使用默认设置: {e}")
            return DEFAULT_SETTINGS

        if not isinstance(payload, dict):
            logger.warning("已保存的设置格式错误，使用默认设置")
            return DEFAULT_SETTINGS

        version = payload.get("schema_version")
        if version != SETTINGS_SCHEMA_VERSION:
            logger.warning(
                f"设置版本不匹配 ({version} != {SETTINGS_SCHEMA_VERSION})，使用默认设置"
            )
            return DEFAULT_SETTINGS

        try:
            return self.builder.from_dict(payload.get("settings"))
        except ConfigurationError as e:
            logger.warning(f"已保存的设置无效，使用默认设置: {e.message}")
            return DEFAULT_SETTINGS

    def save(self, settings: EditSettings) -> None:
        payload = {
            "schema_version": SETTINGS_SCHEMA_VERSION,
            "settings": self.builder.to_dict(settings),
        }
        self.store.set(self.key, json.dumps(payload, ensure_ascii=False))
        logger.debug(f"设置已保存: {self.key}")
