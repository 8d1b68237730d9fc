"""指令文本渲染。

把指令渲染为图像生成模型可直接使用的自然语言指令。编辑指令的每个阶段
对应一个 ``--- SECTION ---`` 段落，段落顺序与序列顺序一致；压缩与放大
各自渲染为一段完整的文字。
"""

from typing import Final

from ..models.edit_result import InstructionPreview
from ..models.edit_settings import TransparencyMethod, WatermarkPosition
from ..models.instructions import (
    CompressionInstructions,
    CropStage,
    EncodingStage,
    FilterAdjustmentKind,
    FilterStage,
    Instructions,
    InstructionSequence,
    ResizeMode,
    ResizeStage,
    RotationStage,
    Stage,
    TextOverlayStage,
    TransparencyStage,
    UpscaleInstructions,
    WatermarkStage,
)


# 压缩等级：(上限, 描述)，按滑块值落入的第一个区间取描述
QUALITY_BANDS: Final[tuple[tuple[int, str], ...]] = (
    (
        20,
        "extremely aggressive visual compression, resulting in a very abstract "
        "image with minimal detail",
    ),
    (
        40,
        "heavy visual compression, creating a stylized version with "
        "significantly reduced detail",
    ),
    (
        60,
        "moderate visual compression, aiming for a balanced simplification of "
        "details and complexity",
    ),
    (
        80,
        "light visual compression, with a subtle reduction in detail while "
        "retaining most of the original's character",
    ),
    (
        100,
        "very light visual compression, with minimal simplification, retaining "
        "almost all original details",
    ),
)

DETAIL_BANDS: Final[tuple[tuple[int, str], ...]] = (
    (20, "minimal detail, focusing only on the main shapes and colors"),
    (40, "low detail, abstracting smaller elements"),
    (60, "moderate detail, retaining key textures and features"),
    (80, "high detail, keeping most of the fine elements intact"),
    (100, "original detail, aiming to preserve all visual information"),
)

WATERMARK_POSITION_TEXT: Final[dict[WatermarkPosition, str]] = {
    WatermarkPosition.TOP_LEFT: "in the top-left corner",
    WatermarkPosition.TOP_CENTER: "centered horizontally at the top",
    WatermarkPosition.TOP_RIGHT: "in the top-right corner",
    WatermarkPosition.MIDDLE_LEFT: "centered vertically on the left edge",
    WatermarkPosition.CENTER: "in the absolute center",
    WatermarkPosition.MIDDLE_RIGHT: "centered vertically on the right edge",
    WatermarkPosition.BOTTOM_LEFT: "in the bottom-left corner",
    WatermarkPosition.BOTTOM_CENTER: "centered horizontally at the bottom",
    WatermarkPosition.BOTTOM_RIGHT: "in the bottom-right corner",
}


def _section(title: str, body: str) -> str:
    return f"--- {title} ---\n{body}"


def _render_filters(stage: FilterStage) -> str:
    parts = []
    for adjustment in stage.adjustments:
        match adjustment.kind:
            case FilterAdjustmentKind.GRAYSCALE:
                parts.append(
                    f"apply a grayscale filter with an intensity of "
                    f"{adjustment.value_pct}%. A value of 100% results in a fully "
                    f"black and white image, while a lower value partially "
                    f"desaturates the image"
                )
            case FilterAdjustmentKind.BRIGHTNESS:
                parts.append(
                    f"adjust the brightness to {adjustment.value_pct}% of the original"
                )
            case FilterAdjustmentKind.CONTRAST:
                parts.append(
                    f"adjust the contrast to {adjustment.value_pct}% of the original"
                )
    return (
        "After cropping, but before resizing or adding text, apply these "
        f"adjustments in this order: {'; '.join(parts)}."
    )


def _render_transparency(stage: TransparencyStage) -> str:
    match stage.method:
        case TransparencyMethod.FILL:
            return (
                "If the original image contains transparent areas (alpha channel), "
                f"fill these areas completely with the solid color {stage.fill_color}. "
                "This background color should be applied before any other elements "
                "like watermarks or text overlays."
            )
        case TransparencyMethod.DITHER:
            return (
                "If the original image contains transparent areas, create a smooth, "
                "dithered transition to an opaque background. Avoid a solid color "
                "fill; instead, use a subtle pattern or blend to handle the "
                "transparency gracefully."
            )
        case _:
            return (
                "Preserve any transparency (alpha channel) from the original image "
                "in the final output. The background must remain transparent."
            )


def _render_stage(stage: Stage) -> str:
    match stage:
        case RotationStage():
            return _section(
                "ROTATION INSTRUCTIONS",
                f"First, rotate the image by {stage.angle_degrees} degrees clockwise. "
                "All subsequent instructions should apply to the rotated image.",
            )
        case CropStage():
            return _section(
                "CROP INSTRUCTIONS",
                "After any rotation, crop the image. The crop region is defined by "
                "the following percentages of the image dimensions:\n"
                f"- Start X (from left): {stage.x_pct}%\n"
                f"- Start Y (from top): {stage.y_pct}%\n"
                f"- Crop Width: {stage.width_pct}%\n"
                f"- Crop Height: {stage.height_pct}%\n"
                "All subsequent instructions should be applied to this newly "
                "cropped image area.",
            )
        case FilterStage():
            return _section("FILTER INSTRUCTIONS", _render_filters(stage))
        case TransparencyStage():
            return _section("TRANSPARENCY HANDLING", _render_transparency(stage))
        case WatermarkStage():
            return _section(
                "WATERMARK INSTRUCTIONS",
                "Add a text watermark with the following properties. This should "
                "be applied before resizing and before the main text overlay.\n"
                f'- CONTENT: "{stage.text}"\n'
                f"- COLOR: Use the color {stage.color}.\n"
                "- FONT: Use a clean, sans-serif font.\n"
                f"- SIZE: The watermark's width should be approximately "
                f"{stage.scale_pct}% of the image's total width.\n"
                f"- OPACITY: The watermark should have an opacity of "
                f"{stage.opacity_pct}%.\n"
                f"- POSITION: Place the watermark "
                f"{WATERMARK_POSITION_TEXT[stage.position]}. The watermark should "
                "be subtly blended and not obscure the main subject.",
            )
        case ResizeStage(mode=ResizeMode.FIT_WITHIN_BOX):
            return _section(
                "RESIZE INSTRUCTIONS",
                "After all other edits, resize the resulting image to fit within a "
                f"{stage.width_px}x{stage.height_px} bounding box. Maintain the "
                "aspect ratio of the edited image. Do not stretch, distort, or "
                "perform additional cropping to fit; instead, scale it "
                "proportionally. The final image's largest dimension must not "
                "exceed the corresponding dimension of the bounding box.",
            )
        case ResizeStage():
            return _section(
                "RESIZE INSTRUCTIONS",
                "After all other edits, resize the resulting image to the exact "
                f"dimensions of {stage.width_px}px width and {stage.height_px}px "
                "height. Stretch or squash the image as necessary to meet these "
                "exact dimensions.",
            )
        case TextOverlayStage():
            return _section(
                "TEXT OVERLAY INSTRUCTIONS",
                "As the final step, after all other transformations, add text to "
                "the image with these exact properties:\n"
                f'- CONTENT: "{stage.content}"\n'
                f"- COLOR: Use the color {stage.color}.\n"
                f"- FONT: Use a font that looks like {stage.font}.\n"
                f"- SIZE: Make the font size proportional to {stage.size_px} on a "
                "1024px image.\n"
                f"- POSITION: Center the text at {stage.position_x_pct}% from the "
                f"left and {stage.position_y_pct}% from the top. Do not add any "
                "background or bounding box to the text.",
            )
        case EncodingStage(lossless=True):
            return _section(
                "OUTPUT FORMAT",
                f"Encode the final image as lossless {stage.mime_type}.",
            )
        case EncodingStage():
            return _section(
                "OUTPUT FORMAT",
                f"Encode the final image as {stage.mime_type} with a quality setting "
                f"of approximately {stage.quality_pct}/100.",
            )
        case _:
            raise TypeError(f"未知的阶段类型: {stage!r}")


def _render_edit(sequence: InstructionSequence) -> str:
    """以用户意图开头、按阶段顺序分段"""
    if sequence.prompt:
        header = (
            "Apply the following edits to the image. The user's primary request "
            f'is: "{sequence.prompt}".'
        )
    else:
        header = "Apply the following edits to the image."

    sections = [header, *(_render_stage(stage) for stage in sequence.stages)]
    return "\n\n".join(sections)


def describe_quality(quality_pct: int) -> str:
    """把压缩质量滑块值映射为压缩等级描述"""
    return _describe_band(quality_pct, QUALITY_BANDS)


def describe_detail_level(detail_level_pct: int) -> str:
    return _describe_band(detail_level_pct, DETAIL_BANDS)


def _describe_band(value: int, bands: tuple[tuple[int, str], ...]) -> str:
    for upper, text in bands:
        if value <= upper:
            return text
    return bands[-1][1]


def _render_compression(instructions: CompressionInstructions) -> str:
    resolution = ""
    if instructions.bounding_box is not None:
        width, height = instructions.bounding_box
        resolution = (
            " Additionally, resize the image to fit within a "
            f"{width}x{height} bounding box, maintaining the original aspect "
            "ratio. Do not stretch, distort, or crop the image; instead, scale it "
            "down proportionally to fit inside these dimensions. The final "
            "image's largest dimension should not exceed the corresponding "
            "dimension of the bounding box."
        )
    return (
        "Visually compress this image. The goal is to achieve "
        f"{describe_quality(instructions.quality_pct)}. The desired level of "
        f"detail is {describe_detail_level(instructions.detail_level_pct)}."
        f"{resolution} The output should be a visually simplified, stylized, or "
        "abstract version of the original. Do not add any new elements or change "
        "the core subject matter. Just reduce visual complexity based on these "
        "instructions."
    )


UPSCALE_PROMPT: Final[str] = (
    "Upscale this image. Enhance the resolution, add fine details, and improve "
    "sharpness. The goal is a higher-quality, more detailed version of the "
    "original image. Do not change the content or composition."
)


def render_prompt(instructions: Instructions) -> str:
    """渲染完整的指令文本

    Args:
        instructions: 编译后的指令（编辑、压缩或放大）

    Returns:
        str: 交给图像生成模型的自然语言指令
    """
    match instructions:
        case InstructionSequence():
            return _render_edit(instructions)
        case CompressionInstructions():
            return _render_compression(instructions)
        case UpscaleInstructions():
            return UPSCALE_PROMPT
        case _:
            raise TypeError(f"未知的指令类型: {instructions!r}")


def build_preview(instructions: Instructions) -> InstructionPreview:
    """生成指令预览：结构化阶段列表与渲染后的文本

    压缩与放大没有阶段，预览中以整份指令（不含源图像描述）作为唯一的阶段。
    """
    if isinstance(instructions, InstructionSequence):
        stages = [stage.model_dump(mode="json") for stage in instructions.stages]
    else:
        stages = [instructions.model_dump(mode="json", exclude={"source"})]
    return {
        "stages": stages,
        "prompt": render_prompt(instructions),
    }
