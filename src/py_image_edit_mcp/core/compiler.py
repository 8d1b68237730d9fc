"""指令编译器。

把工具设置与源图像描述编译为交给变换服务的指令。纯函数：
同样的输入总是得到同样的序列，不读取任何全局状态。
"""

from collections.abc import Callable

from ..models.constants import SettingsLimits
from ..models.edit_settings import EditSettings, TransparencyMethod
from ..models.instructions import (
    STAGE_ORDER,
    CompressionInstructions,
    CropStage,
    EncodingStage,
    FilterAdjustment,
    FilterAdjustmentKind,
    FilterStage,
    InstructionSequence,
    ResizeMode,
    ResizeStage,
    RotationStage,
    SourceDescriptor,
    Stage,
    StageKind,
    TextOverlayStage,
    TransparencyStage,
    UpscaleInstructions,
    WatermarkStage,
)
from ..models.tool_settings import CompressionSettings, UpscaleSettings


StageBuilder = Callable[[EditSettings], Stage | None]


def _rotation(settings: EditSettings) -> RotationStage | None:
    if settings.rotation_angle_degrees == 0:
        return None
    return RotationStage(angle_degrees=settings.rotation_angle_degrees)


def _crop(settings: EditSettings) -> CropStage | None:
    crop = settings.crop
    if not crop.enabled:
        return None
    return CropStage(
        x_pct=crop.x_pct,
        y_pct=crop.y_pct,
        width_pct=crop.width_pct,
        height_pct=crop.height_pct,
    )


def _filters(settings: EditSettings) -> FilterStage | None:
    filters = settings.filters
    adjustments: list[FilterAdjustment] = []

    if filters.grayscale.enabled and filters.grayscale.intensity_pct > 0:
        adjustments.append(
            FilterAdjustment(
                kind=FilterAdjustmentKind.GRAYSCALE,
                value_pct=filters.grayscale.intensity_pct,
            )
        )
    if filters.brightness_pct != SettingsLimits.TONE_IDENTITY:
        adjustments.append(
            FilterAdjustment(
                kind=FilterAdjustmentKind.BRIGHTNESS, value_pct=filters.brightness_pct
            )
        )
    if filters.contrast_pct != SettingsLimits.TONE_IDENTITY:
        adjustments.append(
            FilterAdjustment(
                kind=FilterAdjustmentKind.CONTRAST, value_pct=filters.contrast_pct
            )
        )

    if not adjustments:
        return None
    return FilterStage(adjustments=tuple(adjustments))


def _transparency(settings: EditSettings) -> TransparencyStage:
    transparency = settings.transparency
    match transparency.method:
        case TransparencyMethod.FILL:
            return TransparencyStage(
                method=TransparencyMethod.FILL, fill_color=transparency.fill_color
            )
        case method:
            return TransparencyStage(method=method)


def _watermark(settings: EditSettings) -> WatermarkStage | None:
    watermark = settings.watermark
    text = watermark.text.strip()
    if not watermark.enabled or not text:
        return None
    return WatermarkStage(
        text=text,
        opacity_pct=watermark.opacity_pct,
        scale_pct=watermark.scale_pct,
        color=watermark.color,
        position=watermark.position,
    )


def _resize(settings: EditSettings) -> ResizeStage | None:
    resize = settings.resize
    if not resize.enabled:
        return None
    mode = (
        ResizeMode.FIT_WITHIN_BOX
        if resize.maintain_aspect_ratio
        else ResizeMode.EXACT_STRETCH
    )
    return ResizeStage(mode=mode, width_px=resize.width_px, height_px=resize.height_px)


def _text_overlay(settings: EditSettings) -> TextOverlayStage | None:
    overlay = settings.text_overlay
    content = overlay.content.strip()
    if not overlay.enabled or not content:
        return None
    return TextOverlayStage(
        content=content,
        font=overlay.font,
        size_px=overlay.size_px,
        color=overlay.color,
        position_x_pct=overlay.position_x_pct,
        position_y_pct=overlay.position_y_pct,
    )


def _encoding(settings: EditSettings) -> EncodingStage:
    output_format = settings.output_format
    if output_format.is_lossy:
        return EncodingStage(
            format=output_format,
            mime_type=output_format.mime_type,
            quality_pct=settings.output_quality_pct,
            lossless=False,
        )
    return EncodingStage(
        format=output_format, mime_type=output_format.mime_type, lossless=True
    )


# 以 STAGE_ORDER 为键的构建表；编译顺序只由 STAGE_ORDER 决定
STAGE_BUILDERS: dict[StageKind, StageBuilder] = {
    StageKind.ROTATION: _rotation,
    StageKind.CROP: _crop,
    StageKind.FILTERS: _filters,
    StageKind.TRANSPARENCY: _transparency,
    StageKind.WATERMARK: _watermark,
    StageKind.RESIZE: _resize,
    StageKind.TEXT_OVERLAY: _text_overlay,
    StageKind.ENCODING: _encoding,
}


def compile_instructions(
    settings: EditSettings, source: SourceDescriptor
) -> InstructionSequence:
    """编译单张图片的指令序列

    设置在构造时已完成范围校验，这里直接信任数值，不会抛出配置错误。

    Args:
        settings: 编辑设置
        source: 源图像描述

    Returns:
        InstructionSequence: 固定顺序的指令序列
    """
    stages: list[Stage] = []
    for kind in STAGE_ORDER:
        stage = STAGE_BUILDERS[kind](settings)
        if stage is not None:
            stages.append(stage)

    return InstructionSequence(
        prompt=settings.prompt.strip(),
        source=source,
        stages=tuple(stages),
    )


def compile_compression(
    settings: CompressionSettings, source: SourceDescriptor
) -> CompressionInstructions:
    """编译视觉压缩指令"""
    output_format = settings.output_format
    return CompressionInstructions(
        source=source,
        quality_pct=settings.quality_pct,
        detail_level_pct=settings.detail_level_pct,
        bounding_box=settings.target_resolution.bounding_box,
        format=output_format,
        mime_type=output_format.mime_type,
    )


def compile_upscale(
    settings: UpscaleSettings, source: SourceDescriptor
) -> UpscaleInstructions:
    return UpscaleInstructions(source=source)
