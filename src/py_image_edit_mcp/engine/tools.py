"""变换工具注册表。

编辑、视觉压缩与放大三种工具共用同一套队列、编排与导出流程，
差别只在设置模型、指令编译函数以及导出文件名的后缀。
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from ..config import get_config
from ..core.compiler import compile_compression, compile_instructions, compile_upscale
from ..exceptions import ConfigurationError
from ..models.constants import OutputFormat
from ..models.edit_settings import DEFAULT_SETTINGS, EditSettings
from ..models.instructions import Instructions, SourceDescriptor
from ..models.tool_settings import (
    DEFAULT_COMPRESSION_SETTINGS,
    DEFAULT_UPSCALE_SETTINGS,
    CompressionSettings,
    ToolSettings,
    TransformKind,
    UpscaleSettings,
)
from .settings_builder import SettingsBuilder


Compiler = Callable[[Any, SourceDescriptor], Instructions]


@dataclass(frozen=True)
class ToolProfile:
    """单个变换工具的描述"""

    kind: TransformKind
    settings_model: type[BaseModel]
    default_settings: ToolSettings
    compiler: Compiler
    suffix: Callable[[Any], str]

    def builder(self) -> SettingsBuilder:
        return SettingsBuilder(self.settings_model, self.default_settings)

    def filename_suffix(self, settings: ToolSettings) -> str:
        return self.suffix(settings)

    @staticmethod
    def output_format(settings: ToolSettings) -> OutputFormat:
        return settings.output_format

    def check_settings(self, settings: ToolSettings) -> ToolSettings:
        """确认设置属于本工具

        Raises:
            ConfigurationError: 设置类型不符
        """
        if not isinstance(settings, self.settings_model):
            raise ConfigurationError(
                f"{self.kind.value} 工具需要 {self.settings_model.__name__}，"
                f"得到: {type(settings).__name__}"
            )
        return settings


def _edit_suffix(settings: EditSettings) -> str:
    return get_config().export.FILENAME_SUFFIX


def _compression_suffix(settings: CompressionSettings) -> str:
    return f"_compressed_q{settings.quality_pct}"


def _upscale_suffix(settings: UpscaleSettings) -> str:
    return "_upscaled"


TOOL_PROFILES: dict[TransformKind, ToolProfile] = {
    TransformKind.EDIT: ToolProfile(
        kind=TransformKind.EDIT,
        settings_model=EditSettings,
        default_settings=DEFAULT_SETTINGS,
        compiler=compile_instructions,
        suffix=_edit_suffix,
    ),
    TransformKind.COMPRESS: ToolProfile(
        kind=TransformKind.COMPRESS,
        settings_model=CompressionSettings,
        default_settings=DEFAULT_COMPRESSION_SETTINGS,
        compiler=compile_compression,
        suffix=_compression_suffix,
    ),
    TransformKind.UPSCALE: ToolProfile(
        kind=TransformKind.UPSCALE,
        settings_model=UpscaleSettings,
        default_settings=DEFAULT_UPSCALE_SETTINGS,
        compiler=compile_upscale,
        suffix=_upscale_suffix,
    ),
}


def get_profile(kind: TransformKind | str) -> ToolProfile:
    """按工具类型获取描述，接受 "edit"、"compress"、"upscale"

    Raises:
        ConfigurationError: 未知的工具类型
    """
    try:
        return TOOL_PROFILES[TransformKind(kind)]
    except ValueError as e:
        names = ", ".join(k.value for k in TransformKind)
        raise ConfigurationError(f"未知的工具类型: {kind}（可选: {names}）") from e
