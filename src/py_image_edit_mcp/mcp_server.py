"""图像批量编辑 MCP 服务器。

提供指令预览、默认设置查询，以及批量编辑、视觉压缩和放大三个处理工具。
处理工具使用 PIE_TRANSFORM_BACKEND 配置的变换服务，并以异步方式运行，
直接在服务器的事件循环中等待批量处理完成。
"""

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from .config import get_config
from .core.intake import ImageIntake
from .core.prompt_renderer import build_preview
from .editor import process_images_async
from .engine.tools import get_profile
from .engine.transform import TransformCapability, load_capability
from .exceptions import ConfigurationError, ImageEditError, IntakeError
from .models.constants import SETTINGS_SCHEMA_VERSION
from .models.edit_result import ProcessingResult, RunSummary
from .models.tool_settings import QualityPreset, TransformKind
from .utils.logging_helpers import configure_logging, get_logger
from .utils.message_formatter import MessageFormatter


# MCP 服务器响应类型定义
MCPResponse = dict[str, Any]


class MCPResponseBuilder:
    """MCP 服务器响应构建器，专门用于构建符合 MCP 协议的响应格式。"""

    @staticmethod
    def error(
        message: str,
        error_type: str = "general",
        details: dict[str, Any] | None = None,
    ) -> MCPResponse:
        """构建错误结果。

        Args:
            message: 错误消息
            error_type: 错误类型
            details: 额外的错误详情

        Returns:
            dict: 标准化的错误响应
        """
        result: MCPResponse = {
            "success": False,
            "error": message,
            "error_type": error_type,
        }

        if details:
            result["details"] = details

        return result

    @staticmethod
    def validation_error(message: str, field: str | None = None) -> MCPResponse:
        details = {"field": field} if field else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="validation",
            details=details,
        )

    @staticmethod
    def file_error(message: str, file_path: str | None = None) -> MCPResponse:
        details = {"file_path": file_path} if file_path else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="file",
            details=details,
        )

    @staticmethod
    def processing_error(message: str, operation: str | None = None) -> MCPResponse:
        details = {"operation": operation} if operation else None
        return MCPResponseBuilder.error(
            message=message,
            error_type="processing",
            details=details,
        )


# 配置日志
_config = get_config()
configure_logging(_config.logging.LOG_LEVEL, _config.logging.LOG_FORMAT)
logger = get_logger()

# 创建MCP应用
mcp: FastMCP[Any] = FastMCP("图像批量编辑服务")


def _format_run_summary(summary: RunSummary) -> dict[str, Any]:
    """格式化运行汇总为MCP响应格式"""
    return {
        "total_files": summary.get_total_count(),
        "successful_files": summary.get_success_count(),
        "failed_files": summary.get_failure_count(),
        "success_rate": summary.get_success_rate(),
        "result_bytes": summary.result_bytes,
        "skipped": summary.skipped,
        "summary": summary.get_summary(),
    }


def _format_processing_result(result: ProcessingResult) -> MCPResponse:
    summary = result["result"]
    return {
        "success": result["success"],
        "result": _format_run_summary(summary) if summary is not None else None,
        "exported": result["exported"],
        "rejected": result["rejected"],
        "error": result["error"],
    }


def preview_instructions(
    image_path: str,
    settings: dict[str, Any] | None = None,
    kind: str = TransformKind.EDIT.value,
) -> MCPResponse:
    """编译并渲染单张图片的指令"""
    try:
        profile = get_profile(kind)
        tool_settings = profile.builder().from_dict(settings or {})
        source = ImageIntake().from_path(image_path)
    except ConfigurationError as e:
        return MCPResponseBuilder.validation_error(e.message, "settings")
    except IntakeError as e:
        return MCPResponseBuilder.file_error(e.message, image_path)

    instructions = profile.compiler(tool_settings, source.descriptor)
    preview = build_preview(instructions)
    return {
        "success": True,
        "kind": profile.kind.value,
        "source": instructions.source.model_dump(mode="json"),
        "stages": preview["stages"],
        "prompt": preview["prompt"],
    }


def resolve_backend() -> TransformCapability:
    """加载配置的变换服务

    Raises:
        ConfigurationError: 未配置或无法加载
    """
    backend = get_config().orchestration.TRANSFORM_BACKEND
    if not backend:
        raise ConfigurationError(
            "未配置变换服务，请设置环境变量 "
            "PIE_TRANSFORM_BACKEND='package.module:attribute'"
        )
    return load_capability(backend)


_OPERATION_NAMES = {
    TransformKind.EDIT: "编辑",
    TransformKind.COMPRESS: "压缩",
    TransformKind.UPSCALE: "放大",
}


async def _run_tool(
    kind: TransformKind,
    input_paths: list[str],
    output_dir: str,
    settings: dict[str, Any] | None,
    recursive: bool,
    preset: str | None = None,
) -> MCPResponse:
    """三个处理工具共用的执行流程"""
    operation = f"批量{_OPERATION_NAMES[kind]}"
    try:
        capability = resolve_backend()
    except ConfigurationError as e:
        return MCPResponseBuilder.error(e.message, "configuration")

    try:
        tool_settings = get_profile(kind).builder().from_dict(settings or {})
        if preset is not None:
            tool_settings = tool_settings.with_preset(QualityPreset(preset))
    except ConfigurationError as e:
        return MCPResponseBuilder.validation_error(e.message, "settings")
    except ValueError:
        names = ", ".join(p.value for p in QualityPreset)
        return MCPResponseBuilder.validation_error(
            f"未知的质量预设: {preset}（可选: {names}）", "preset"
        )

    try:
        result = await process_images_async(
            [Path(p) for p in input_paths],
            capability,
            kind=kind,
            settings=tool_settings,
            output_dir=output_dir,
            recursive=recursive,
        )
    except ImageEditError as e:
        return MCPResponseBuilder.processing_error(e.message, operation)
    except Exception as e:
        logger.error(MessageFormatter.operation_failed(operation, output_dir, e))
        return MCPResponseBuilder.processing_error(str(e), operation)

    return _format_processing_result(result)


# ============================================================================
# 工具
# ============================================================================


@mcp.tool()
def compile_edit_instructions(
    image_path: str,
    settings: dict[str, Any] | None = None,
    kind: str = "edit",
) -> MCPResponse:
    """预览一张图片将要发送给变换服务的指令

    Args:
        image_path: 图片文件路径
        settings: 工具设置（可只给出需要修改的部分），如
            {"rotation_angle_degrees": 90, "crop": {"enabled": true}}
        kind: 工具类型，edit、compress 或 upscale

    Returns:
        dict: 源图像描述、按固定顺序排列的阶段列表以及渲染后的指令文本
    """
    try:
        return preview_instructions(image_path, settings, kind)
    except Exception as e:
        logger.error(MessageFormatter.operation_failed("编译指令", image_path, e))
        return MCPResponseBuilder.processing_error(str(e), "编译指令")


@mcp.tool()
def get_default_settings(kind: str = "edit") -> MCPResponse:
    """获取工具的默认设置，编辑设置附带版本号"""
    try:
        profile = get_profile(kind)
    except ConfigurationError as e:
        return MCPResponseBuilder.validation_error(e.message, "kind")

    response: MCPResponse = {
        "success": True,
        "kind": profile.kind.value,
        "settings": profile.builder().to_dict(profile.default_settings),
    }
    if profile.kind is TransformKind.EDIT:
        response["schema_version"] = SETTINGS_SCHEMA_VERSION
    return response


@mcp.tool()
async def edit_images(
    input_paths: list[str],
    output_dir: str,
    settings: dict[str, Any] | None = None,
    recursive: bool = False,
) -> MCPResponse:
    """批量编辑图片并把成功的结果写入输出目录

    Args:
        input_paths: 图片文件或目录路径列表
        output_dir: 输出目录
        settings: 编辑设置（可只给出需要修改的部分）
        recursive: 目录是否递归查找图片

    Returns:
        dict: 运行汇总、写出的文件以及被拒绝的文件
    """
    return await _run_tool(
        TransformKind.EDIT, input_paths, output_dir, settings, recursive
    )


@mcp.tool()
async def compress_images(
    input_paths: list[str],
    output_dir: str,
    settings: dict[str, Any] | None = None,
    preset: str | None = None,
    recursive: bool = False,
) -> MCPResponse:
    """批量视觉压缩图片，结果命名为 <原名>_compressed_q<质量>.<扩展名>

    Args:
        input_paths: 图片文件或目录路径列表
        output_dir: 输出目录
        settings: 压缩设置，如 {"quality_pct": 60, "target_resolution": "1280x720"}
        preset: 质量预设 low、medium 或 high，会覆盖质量与细节程度
        recursive: 目录是否递归查找图片
    """
    return await _run_tool(
        TransformKind.COMPRESS, input_paths, output_dir, settings, recursive, preset
    )


@mcp.tool()
async def upscale_images(
    input_paths: list[str],
    output_dir: str,
    recursive: bool = False,
) -> MCPResponse:
    """批量放大图片，结果为 PNG，命名为 <原名>_upscaled.png"""
    return await _run_tool(
        TransformKind.UPSCALE, input_paths, output_dir, None, recursive
    )


# ============================================================================
# 应用入口
# ============================================================================


def main() -> None:
    """启动 MCP 服务器"""
    logger.info("启动图像批量编辑 MCP 服务器")
    mcp.run()


if __name__ == "__main__":
    main()
