"""消息格式化工具模块。

提供统一的错误消息、状态消息格式化功能。
"""

from pathlib import Path


class MessageFormatter:
    """统一的消息格式化器"""

    @staticmethod
    def file_not_found(file_path: str | Path) -> str:
        """文件不存在错误消息"""
        return f"文件不存在: {file_path}"

    @staticmethod
    def directory_not_found(directory: str | Path) -> str:
        """目录不存在错误消息"""
        return f"目录不存在: {directory}"

    @staticmethod
    def path_not_directory(path: str | Path) -> str:
        """路径不是目录错误消息"""
        return f"路径不是目录: {path}"

    @staticmethod
    def permission_error(path: str | Path, operation: str = "访问") -> str:
        """权限错误消息"""
        return f"权限错误，无法{operation}: {path}"

    @staticmethod
    def not_an_image(name: str, detail: str | None = None) -> str:
        """非图片文件错误消息"""
        msg = f"不是有效的图片文件: {name}"
        if detail:
            msg += f" ({detail})"
        return msg

    @staticmethod
    def file_too_large(name: str, size_human: str, limit_human: str) -> str:
        """文件过大错误消息"""
        return f"文件过大: {name} ({size_human}，上限 {limit_human})"

    @staticmethod
    def operation_failed(
        operation: str, target: str | Path, error: Exception | None = None
    ) -> str:
        """操作失败消息"""
        msg = f"{operation}失败: {target}"
        if error:
            msg += f" - {error}"
        return msg

    @staticmethod
    def format_error(operation: str, target: str | Path, error: Exception) -> str:
        """格式化通用错误消息"""
        return f"{operation}失败 [{target}]: {error}"

    @staticmethod
    def item_failed(item_id: str, source_name: str, message: str) -> str:
        """单个工作项失败消息"""
        return f"处理失败: {source_name} [{item_id}] - {message}"

    @staticmethod
    def run_rejected(reason: str) -> str:
        """编排运行被拒绝消息"""
        return f"忽略运行请求: {reason}"


def format_item_error(error: Exception) -> str:
    """把异常格式化为面向用户的单项错误消息

    自定义异常直接使用其消息，其他异常附带异常类型名。
    """
    message = str(getattr(error, "message", "") or error).strip()
    if not message:
        return f"{type(error).__name__}: 发生未知错误"
    if hasattr(error, "message"):
        return message
    return f"{type(error).__name__}: {message}"

