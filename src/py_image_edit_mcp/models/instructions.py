"""指令序列模型。

编译器输出的中间表示：按固定顺序排列、参数完全确定的阶段指令列表，
原样交给外部变换服务执行。第 N 个阶段的参数相对于第 N-1 个阶段的输出。
压缩与放大工具没有阶段，各自只有一份参数确定的指令。
"""

from enum import Enum
from typing import Annotated, Final, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import OutputFormat
from .edit_settings import TransparencyMethod, WatermarkPosition
from .tool_settings import TransformKind


class StageKind(str, Enum):
    """阶段类型"""

    ROTATION = "rotation"
    CROP = "crop"
    FILTERS = "filters"
    TRANSPARENCY = "transparency"
    WATERMARK = "watermark"
    RESIZE = "resize"
    TEXT_OVERLAY = "text_overlay"
    ENCODING = "encoding"


# 阶段的固定执行顺序，与设置字段的赋值顺序无关
STAGE_ORDER: Final[tuple[StageKind, ...]] = (
    StageKind.ROTATION,
    StageKind.CROP,
    StageKind.FILTERS,
    StageKind.TRANSPARENCY,
    StageKind.WATERMARK,
    StageKind.RESIZE,
    StageKind.TEXT_OVERLAY,
    StageKind.ENCODING,
)

# 无启用开关、总会输出的阶段
UNCONDITIONAL_STAGES: Final[frozenset[StageKind]] = frozenset(
    {StageKind.TRANSPARENCY, StageKind.ENCODING}
)

_STAGE_RANK: Final[dict[StageKind, int]] = {
    kind: index for index, kind in enumerate(STAGE_ORDER)
}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class SourceDescriptor(_Frozen):
    """源图像描述，编译时使用的单项信息"""

    name: str = Field(description="原始文件名")
    mime_type: str = Field(description="MIME 类型")
    width: int | None = Field(None, gt=0, description="宽度（像素）")
    height: int | None = Field(None, gt=0, description="高度（像素）")
    has_transparency: bool | None = Field(None, description="是否含透明通道")


class RotationStage(_Frozen):
    kind: Literal[StageKind.ROTATION] = StageKind.ROTATION
    angle_degrees: int = Field(description="顺时针角度，非 0")


class CropStage(_Frozen):
    """裁剪区域，百分比相对于旋转后的图像"""

    kind: Literal[StageKind.CROP] = StageKind.CROP
    x_pct: int
    y_pct: int
    width_pct: int
    height_pct: int


class FilterAdjustmentKind(str, Enum):
    GRAYSCALE = "grayscale"
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"


_ADJUSTMENT_ORDER: Final[tuple[FilterAdjustmentKind, ...]] = (
    FilterAdjustmentKind.GRAYSCALE,
    FilterAdjustmentKind.BRIGHTNESS,
    FilterAdjustmentKind.CONTRAST,
)


class FilterAdjustment(_Frozen):
    kind: FilterAdjustmentKind
    value_pct: int


class FilterStage(_Frozen):
    """组合滤镜阶段：灰度、亮度、对比度按此子顺序一并应用"""

    kind: Literal[StageKind.FILTERS] = StageKind.FILTERS
    adjustments: tuple[FilterAdjustment, ...] = Field(min_length=1)

    @field_validator("adjustments")
    @classmethod
    def validate_sub_order(
        cls, v: tuple[FilterAdjustment, ...]
    ) -> tuple[FilterAdjustment, ...]:
        ranks = [_ADJUSTMENT_ORDER.index(adj.kind) for adj in v]
        if ranks != sorted(set(ranks)):
            raise ValueError("滤镜子项必须按 灰度 < 亮度 < 对比度 排列且不重复")
        return v

    def get(self, kind: FilterAdjustmentKind) -> FilterAdjustment | None:
        return next((adj for adj in self.adjustments if adj.kind == kind), None)


class TransparencyStage(_Frozen):
    kind: Literal[StageKind.TRANSPARENCY] = StageKind.TRANSPARENCY
    method: TransparencyMethod
    fill_color: str | None = None

    @model_validator(mode="after")
    def validate_fill_color(self) -> "TransparencyStage":
        if self.method == TransparencyMethod.FILL and not self.fill_color:
            raise ValueError("fill 方式必须指定填充颜色")
        if self.method != TransparencyMethod.FILL and self.fill_color is not None:
            raise ValueError(f"{self.method.value} 方式不使用填充颜色")
        return self


class WatermarkStage(_Frozen):
    kind: Literal[StageKind.WATERMARK] = StageKind.WATERMARK
    text: str = Field(min_length=1)
    opacity_pct: int
    scale_pct: int
    color: str
    position: WatermarkPosition


class ResizeMode(str, Enum):
    """缩放子模式，二者互斥"""

    FIT_WITHIN_BOX = "fit_within_box"  # 保持宽高比，缩放到边框之内
    EXACT_STRETCH = "exact_stretch"  # 拉伸到精确尺寸


class ResizeStage(_Frozen):
    kind: Literal[StageKind.RESIZE] = StageKind.RESIZE
    mode: ResizeMode
    width_px: int
    height_px: int


class TextOverlayStage(_Frozen):
    """文字叠加，总是最后一个改变内容的阶段"""

    kind: Literal[StageKind.TEXT_OVERLAY] = StageKind.TEXT_OVERLAY
    content: str = Field(min_length=1)
    font: str
    size_px: int
    color: str
    position_x_pct: int
    position_y_pct: int


class EncodingStage(_Frozen):
    kind: Literal[StageKind.ENCODING] = StageKind.ENCODING
    format: OutputFormat
    mime_type: str
    quality_pct: int | None = None
    lossless: bool

    @model_validator(mode="after")
    def validate_quality(self) -> "EncodingStage":
        if self.lossless != (self.quality_pct is None):
            raise ValueError("质量值仅用于有损编码")
        return self


Stage = Annotated[
    RotationStage
    | CropStage
    | FilterStage
    | TransparencyStage
    | WatermarkStage
    | ResizeStage
    | TextOverlayStage
    | EncodingStage,
    Field(discriminator="kind"),
]


class InstructionSequence(_Frozen):
    """完整的编辑指令序列"""

    kind: Literal[TransformKind.EDIT] = TransformKind.EDIT
    prompt: str = Field(description="用户意图，排在所有阶段之前")
    source: SourceDescriptor
    stages: tuple[Stage, ...]

    @field_validator("stages")
    @classmethod
    def validate_stage_order(cls, v: tuple[Stage, ...]) -> tuple[Stage, ...]:
        ranks = [_STAGE_RANK[stage.kind] for stage in v]
        if any(later <= earlier for earlier, later in zip(ranks, ranks[1:])):
            order = " < ".join(kind.value for kind in STAGE_ORDER)
            raise ValueError(f"阶段顺序必须为 {order}，且每类至多一个")
        missing = UNCONDITIONAL_STAGES - {stage.kind for stage in v}
        if missing:
            names = ", ".join(sorted(kind.value for kind in missing))
            raise ValueError(f"缺少必需阶段: {names}")
        return v

    def kinds(self) -> tuple[StageKind, ...]:
        """按顺序返回阶段类型"""
        return tuple(stage.kind for stage in self.stages)

    def has(self, kind: StageKind) -> bool:
        return any(stage.kind == kind for stage in self.stages)

    def get(self, kind: StageKind) -> Stage | None:
        return next((stage for stage in self.stages if stage.kind == kind), None)


class CompressionInstructions(_Frozen):
    """视觉压缩指令"""

    kind: Literal[TransformKind.COMPRESS] = TransformKind.COMPRESS
    source: SourceDescriptor
    quality_pct: int
    detail_level_pct: int
    bounding_box: tuple[int, int] | None = Field(
        None, description="目标分辨率边框，None 表示保持原尺寸"
    )
    format: OutputFormat
    mime_type: str


class UpscaleInstructions(_Frozen):
    """放大指令，结果总是 PNG"""

    kind: Literal[TransformKind.UPSCALE] = TransformKind.UPSCALE
    source: SourceDescriptor
    format: OutputFormat = OutputFormat.PNG
    mime_type: str = OutputFormat.PNG.mime_type


# 交给变换服务的指令，按 kind 区分工具
Instructions = InstructionSequence | CompressionInstructions | UpscaleInstructions
