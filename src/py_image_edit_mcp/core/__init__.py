"""核心模块包。

指令编译、指令文本渲染和图片导入。
"""

from .compiler import (
    STAGE_BUILDERS,
    compile_compression,
    compile_instructions,
    compile_upscale,
)
from .intake import ImageIntake, IntakeReport, RawImage, RejectedFile
from .prompt_renderer import (
    build_preview,
    describe_detail_level,
    describe_quality,
    render_prompt,
)


__all__ = [
    "STAGE_BUILDERS",
    "ImageIntake",
    "IntakeReport",
    "RawImage",
    "RejectedFile",
    "build_preview",
    "compile_compression",
    "compile_instructions",
    "compile_upscale",
    "describe_detail_level",
    "describe_quality",
    "render_prompt",
]
