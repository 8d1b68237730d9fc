"""图像批量编辑库。

把结构化的编辑设置编译为固定顺序的指令，交给外部图像生成服务批量执行。
同一流程也用于视觉压缩与放大。
"""

__version__ = "0.1.0"
__author__ = "crper"
__description__ = "图像批量编辑库，结构化设置编译为 AI 编辑指令"

from .core.compiler import compile_compression, compile_instructions, compile_upscale
from .core.prompt_renderer import render_prompt
from .editor import (
    ImageEditor,
    edit_images,
    edit_images_async,
    process_images,
    process_images_async,
)
from .models.edit_result import ExportEntry, ProcessingResult, RunSummary
from .models.edit_settings import DEFAULT_SETTINGS, EditSettings
from .models.tool_settings import CompressionSettings, TransformKind, UpscaleSettings


__all__ = [
    "DEFAULT_SETTINGS",
    "CompressionSettings",
    "EditSettings",
    "ExportEntry",
    "ImageEditor",
    "ProcessingResult",
    "RunSummary",
    "TransformKind",
    "UpscaleSettings",
    "compile_compression",
    "compile_instructions",
    "compile_upscale",
    "edit_images",
    "edit_images_async",
    "get_version",
    "process_images",
    "process_images_async",
    "render_prompt",
]


def get_version() -> str:
    """获取版本号。"""
    return __version__
