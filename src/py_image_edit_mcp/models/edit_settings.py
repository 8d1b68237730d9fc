"""编辑设置模型。

定义一次批量编辑的全部可选阶段及批量统一的输出格式/质量。
所有模型均为不可变值，数值范围在构造时校验。
"""

import re
from enum import Enum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from .constants import OutputFormat, SettingsLimits, normalize_format_name


_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def _normalize_hex_color(value: str) -> str:
    """校验并标准化颜色为 #RRGGBB 大写形式"""
    value = value.strip()
    if not _HEX_COLOR_RE.match(value):
        raise ValueError(f"颜色必须是 #RGB 或 #RRGGBB 格式，得到: {value!r}")
    digits = value[1:]
    if len(digits) == 3:
        digits = "".join(c * 2 for c in digits)
    return f"#{digits.upper()}"


HexColor = Annotated[str, AfterValidator(_normalize_hex_color)]


class TransparencyMethod(str, Enum):
    """透明区域处理方式"""

    FILL = "fill"  # 纯色填充
    DITHER = "dither"  # 抖动过渡到不透明背景
    PRESERVE = "preserve"  # 保留 alpha 通道


class WatermarkPosition(str, Enum):
    """水印锚点（九宫格）"""

    TOP_LEFT = "top-left"
    TOP_CENTER = "top-center"
    TOP_RIGHT = "top-right"
    MIDDLE_LEFT = "middle-left"
    CENTER = "center"
    MIDDLE_RIGHT = "middle-right"
    BOTTOM_LEFT = "bottom-left"
    BOTTOM_CENTER = "bottom-center"
    BOTTOM_RIGHT = "bottom-right"


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class CropConfig(_FrozenModel):
    """裁剪配置，百分比相对于旋转后的图像"""

    enabled: bool = Field(False, description="是否启用裁剪")
    x_pct: int = Field(
        10,
        ge=SettingsLimits.PERCENT_MIN,
        le=SettingsLimits.PERCENT_MAX,
        description="起点 X（距左侧百分比）",
    )
    y_pct: int = Field(
        10,
        ge=SettingsLimits.PERCENT_MIN,
        le=SettingsLimits.PERCENT_MAX,
        description="起点 Y（距顶部百分比）",
    )
    width_pct: int = Field(
        80,
        ge=SettingsLimits.PERCENT_MIN,
        le=SettingsLimits.PERCENT_MAX,
        description="裁剪宽度百分比",
    )
    height_pct: int = Field(
        80,
        ge=SettingsLimits.PERCENT_MIN,
        le=SettingsLimits.PERCENT_MAX,
        description="裁剪高度百分比",
    )


class GrayscaleConfig(_FrozenModel):
    """灰度滤镜配置"""

    enabled: bool = Field(False, description="是否启用灰度")
    intensity_pct: int = Field(
        100,
        ge=SettingsLimits.PERCENT_MIN,
        le=SettingsLimits.PERCENT_MAX,
        description="灰度强度，100 为完全黑白",
    )


class FilterConfig(_FrozenModel):
    """滤镜配置，亮度与对比度 100 表示不变"""

    grayscale: GrayscaleConfig = Field(default_factory=GrayscaleConfig)
    brightness_pct: int = Field(
        SettingsLimits.TONE_IDENTITY,
        ge=SettingsLimits.TONE_MIN,
        le=SettingsLimits.TONE_MAX,
        description="亮度百分比",
    )
    contrast_pct: int = Field(
        SettingsLimits.TONE_IDENTITY,
        ge=SettingsLimits.TONE_MIN,
        le=SettingsLimits.TONE_MAX,
        description="对比度百分比",
    )


class TransparencyConfig(_FrozenModel):
    """透明度处理配置"""

    method: TransparencyMethod = Field(
        TransparencyMethod.PRESERVE, description="处理方式"
    )
    fill_color: HexColor = Field("#FFFFFF", description="填充颜色（仅 fill 使用）")


class WatermarkConfig(_FrozenModel):
    """文字水印配置"""

    enabled: bool = Field(False, description="是否启用水印")
    text: str = Field("Watermark", description="水印文字")
    opacity_pct: int = Field(
        50,
        ge=SettingsLimits.PERCENT_MIN,
        le=SettingsLimits.PERCENT_MAX,
        description="不透明度",
    )
    scale_pct: int = Field(
        25,
        ge=SettingsLimits.SCALE_MIN,
        le=SettingsLimits.SCALE_MAX,
        description="水印宽度占图像宽度的百分比",
    )
    color: HexColor = Field("#FFFFFF", description="水印颜色")
    position: WatermarkPosition = Field(
        WatermarkPosition.BOTTOM_RIGHT, description="水印位置"
    )


class ResizeConfig(_FrozenModel):
    """尺寸调整配置"""

    enabled: bool = Field(False, description="是否启用缩放")
    width_px: int = Field(
        1024,
        ge=SettingsLimits.DIMENSION_MIN,
        le=SettingsLimits.DIMENSION_MAX,
        description="目标宽度",
    )
    height_px: int = Field(
        1024,
        ge=SettingsLimits.DIMENSION_MIN,
        le=SettingsLimits.DIMENSION_MAX,
        description="目标高度",
    )
    maintain_aspect_ratio: bool = Field(
        True,
        description="保持宽高比（适配边框）或拉伸到精确尺寸",
    )


class TextOverlayConfig(_FrozenModel):
    """文字叠加配置"""

    enabled: bool = Field(False, description="是否启用文字叠加")
    content: str = Field("Your Text Here", description="文字内容")
    font: str = Field(
        "Arial, sans-serif",
        min_length=1,
        description="字体描述",
    )
    size_px: int = Field(
        48,
        ge=SettingsLimits.FONT_SIZE_MIN,
        le=SettingsLimits.FONT_SIZE_MAX,
        description="以 1024px 图像为基准的字号",
    )
    color: HexColor = Field("#FFFFFF", description="文字颜色")
    position_x_pct: int = Field(
        50,
        ge=SettingsLimits.PERCENT_MIN,
        le=SettingsLimits.PERCENT_MAX,
        description="文字中心距左侧百分比",
    )
    position_y_pct: int = Field(
        50,
        ge=SettingsLimits.PERCENT_MIN,
        le=SettingsLimits.PERCENT_MAX,
        description="文字中心距顶部百分比",
    )


class EditSettings(_FrozenModel):
    """一次批量编辑的完整设置"""

    prompt: str = Field(
        "Make this image look more professional and vibrant.",
        description="用户的自由文本意图，总是排在指令首位",
    )
    rotation_angle_degrees: int = Field(
        0,
        ge=SettingsLimits.ROTATION_MIN,
        le=SettingsLimits.ROTATION_MAX,
        description="顺时针旋转角度，0 表示不旋转",
    )
    crop: CropConfig = Field(default_factory=CropConfig)
    filters: FilterConfig = Field(default_factory=FilterConfig)
    transparency: TransparencyConfig = Field(default_factory=TransparencyConfig)
    watermark: WatermarkConfig = Field(default_factory=WatermarkConfig)
    resize: ResizeConfig = Field(default_factory=ResizeConfig)
    text_overlay: TextOverlayConfig = Field(default_factory=TextOverlayConfig)
    output_format: OutputFormat = Field(OutputFormat.PNG, description="输出格式")
    output_quality_pct: int = Field(
        92,
        ge=SettingsLimits.QUALITY_MIN,
        le=SettingsLimits.QUALITY_MAX,
        description="输出质量，PNG 忽略",
    )

    @field_validator("output_format", mode="before")
    @classmethod
    def normalize_output_format(cls, v: Any) -> Any:
        return normalize_format_name(v)


DEFAULT_SETTINGS = EditSettings()
