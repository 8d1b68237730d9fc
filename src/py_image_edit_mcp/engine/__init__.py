"""批量编辑引擎模块。

包含设置构建、工作队列、批量编排和导出等处理逻辑。
"""

from .export import ExportCollector, write_entries
from .orchestrator import AutoRunTrigger, BatchOrchestrator
from .queue import BatchQueue
from .settings_builder import SettingsBuilder, update_settings
from .tools import TOOL_PROFILES, ToolProfile, get_profile
from .transform import FunctionCapability, TransformCapability, load_capability


__all__ = [
    "TOOL_PROFILES",
    "AutoRunTrigger",
    "BatchOrchestrator",
    "BatchQueue",
    "ExportCollector",
    "FunctionCapability",
    "SettingsBuilder",
    "ToolProfile",
    "TransformCapability",
    "get_profile",
    "load_capability",
    "update_settings",
    "write_entries",
]
