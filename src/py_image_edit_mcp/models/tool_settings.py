"""变换工具设置模型。

除编辑工具外，批量流程还支持视觉压缩与放大两种变换。
三种工具共用同一套队列、编排与导出，只是设置和指令不同。
"""

from enum import Enum
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import OutputFormat, SettingsLimits, normalize_format_name
from .edit_settings import EditSettings


class TransformKind(str, Enum):
    """变换工具类型"""

    EDIT = "edit"
    COMPRESS = "compress"
    UPSCALE = "upscale"


class ResolutionPreset(str, Enum):
    """压缩时的目标分辨率，ORIGINAL 表示不缩放"""

    ORIGINAL = "original"
    FULL_HD = "1920x1080"
    HD = "1280x720"
    SD = "640x480"

    @property
    def bounding_box(self) -> tuple[int, int] | None:
        if self is ResolutionPreset.ORIGINAL:
            return None
        width, height = self.value.split("x")
        return int(width), int(height)


class QualityPreset(str, Enum):
    """压缩质量预设，同时设置质量与细节程度"""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def levels(self) -> tuple[int, int]:
        """(质量, 细节程度)"""
        return _PRESET_LEVELS[self]


_PRESET_LEVELS: Final[dict[QualityPreset, tuple[int, int]]] = {
    QualityPreset.LOW: (40, 40),
    QualityPreset.MEDIUM: (75, 75),
    QualityPreset.HIGH: (90, 90),
}


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CompressionSettings(_FrozenModel):
    """视觉压缩设置

    质量与细节程度都是 1-100 的滑块值，由渲染器映射为描述性的压缩等级。
    """

    quality_pct: int = Field(
        75,
        ge=SettingsLimits.QUALITY_MIN,
        le=SettingsLimits.QUALITY_MAX,
        description="压缩质量，越低压缩越激进",
    )
    detail_level_pct: int = Field(
        75,
        ge=SettingsLimits.QUALITY_MIN,
        le=SettingsLimits.QUALITY_MAX,
        description="保留的细节程度",
    )
    target_resolution: ResolutionPreset = Field(
        ResolutionPreset.ORIGINAL, description="目标分辨率"
    )
    output_format: OutputFormat = Field(OutputFormat.PNG, description="输出格式")

    @field_validator("output_format", mode="before")
    @classmethod
    def normalize_output_format(cls, v: Any) -> Any:
        return normalize_format_name(v)

    def with_preset(self, preset: QualityPreset) -> "CompressionSettings":
        quality, detail = preset.levels
        return self.model_copy(
            update={"quality_pct": quality, "detail_level_pct": detail}
        )


class UpscaleSettings(_FrozenModel):
    """放大设置：没有可调参数，结果总是 PNG"""

    @property
    def output_format(self) -> OutputFormat:
        return OutputFormat.PNG


ToolSettings = EditSettings | CompressionSettings | UpscaleSettings

DEFAULT_COMPRESSION_SETTINGS = CompressionSettings()
DEFAULT_UPSCALE_SETTINGS = UpscaleSettings()
