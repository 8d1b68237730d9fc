"""数据模型包。

定义编辑与压缩、放大的设置，指令序列、工作项和运行结果。
"""

from .constants import (
    SETTINGS_SCHEMA_KEY,
    SETTINGS_SCHEMA_VERSION,
    ImageFormats,
    OutputFormat,
    SettingsLimits,
    get_extension,
    get_format_alias,
    get_mime_type,
    normalize_format_name,
    supports_transparency,
)
from .edit_result import (
    ExportEntry,
    InstructionPreview,
    ProcessingResult,
    RunSummary,
)
from .edit_settings import (
    DEFAULT_SETTINGS,
    CropConfig,
    EditSettings,
    FilterConfig,
    GrayscaleConfig,
    ResizeConfig,
    TextOverlayConfig,
    TransparencyConfig,
    TransparencyMethod,
    WatermarkConfig,
    WatermarkPosition,
)
from .instructions import (
    STAGE_ORDER,
    CompressionInstructions,
    Instructions,
    InstructionSequence,
    SourceDescriptor,
    Stage,
    StageKind,
    UpscaleInstructions,
)
from .tool_settings import (
    DEFAULT_COMPRESSION_SETTINGS,
    DEFAULT_UPSCALE_SETTINGS,
    CompressionSettings,
    QualityPreset,
    ResolutionPreset,
    ToolSettings,
    TransformKind,
    UpscaleSettings,
)
from .work_item import (
    BatchProgress,
    SourceImage,
    WorkItem,
    WorkItemState,
    reduce_work_item,
)


__all__ = [
    "DEFAULT_COMPRESSION_SETTINGS",
    "DEFAULT_SETTINGS",
    "DEFAULT_UPSCALE_SETTINGS",
    "SETTINGS_SCHEMA_KEY",
    "SETTINGS_SCHEMA_VERSION",
    "STAGE_ORDER",
    # 运行与结果
    "BatchProgress",
    "CompressionInstructions",
    # 压缩与放大
    "CompressionSettings",
    # 设置
    "CropConfig",
    "EditSettings",
    "ExportEntry",
    "FilterConfig",
    "GrayscaleConfig",
    # 常量和工具
    "ImageFormats",
    "InstructionPreview",
    # 指令
    "InstructionSequence",
    "Instructions",
    "OutputFormat",
    "ProcessingResult",
    "QualityPreset",
    "ResizeConfig",
    "ResolutionPreset",
    "RunSummary",
    "SettingsLimits",
    "SourceDescriptor",
    "SourceImage",
    "Stage",
    "StageKind",
    "TextOverlayConfig",
    "ToolSettings",
    "TransformKind",
    "TransparencyConfig",
    "TransparencyMethod",
    "UpscaleInstructions",
    "UpscaleSettings",
    "WatermarkConfig",
    "WatermarkPosition",
    "WorkItem",
    "WorkItemState",
    "get_extension",
    "get_format_alias",
    "get_mime_type",
    "normalize_format_name",
    "reduce_work_item",
    "supports_transparency",
]
