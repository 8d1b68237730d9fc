"""图像编辑异常处理模块。

定义统一的异常类和错误处理机制，包含图片读取异常转换装饰器。
"""

from collections.abc import Callable
from functools import wraps
from typing import TypeVar

from PIL.Image import DecompressionBombError, UnidentifiedImageError

from .utils.logging_helpers import get_logger
from .utils.message_formatter import MessageFormatter, format_item_error


logger = get_logger()
T = TypeVar("T")


class ImageEditError(Exception):
    """图像编辑相关错误基类"""

    def __init__(self, message: str, item_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.item_id = item_id


class ConfigurationError(ImageEditError):
    """编辑设置超出范围或格式错误，在修改设置时抛出"""

    pass


class CompilationError(ImageEditError):
    """指令编译错误

    编译器对合法设置是全函数，正常情况下不会出现。
    """

    pass


class IntakeError(ImageEditError):
    """源文件无法读取或不是合法图片，在创建工作项之前拒绝"""

    def __init__(self, message: str, source_name: str | None = None):
        super().__init__(message)
        self.source_name = source_name


class TransformFailure(ImageEditError):
    """外部变换服务没有返回结果或明确返回错误"""

    pass


class StateTransitionError(ImageEditError):
    """工作项状态机的非法迁移"""

    pass


def handle_image_errors(operation_name: str = "图片读取"):
    """把 Pillow 与文件系统异常统一转换为 IntakeError

    用于方法：self 之后的第一个位置参数视为源文件名，用于错误消息。

    Args:
        operation_name: 操作名称，用于日志记录
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            source_name = str(args[1]) if len(args) > 1 else None
            try:
                return func(*args, **kwargs)
            except IntakeError:
                raise
            except UnidentifiedImageError as e:
                logger.warning(f"{operation_name} - 无法识别图像格式: {e}")
                raise IntakeError(
                    MessageFormatter.not_an_image(source_name or "?", "无法识别的格式"),
                    source_name,
                ) from e
            except DecompressionBombError as e:
                logger.warning(f"{operation_name} - 图像过大: {e}")
                raise IntakeError(
                    f"图像像素过多，可能存在安全风险: {source_name}", source_name
                ) from e
            except OSError as e:
                logger.warning(f"{operation_name} - 文件操作失败: {e}")
                raise IntakeError(
                    MessageFormatter.operation_failed(
                        operation_name, source_name or "?", e
                    ),
                    source_name,
                ) from e
            except (ValueError, TypeError) as e:
                logger.warning(f"{operation_name} - 参数错误: {e}")
                raise IntakeError(f"参数错误: {e}", source_name) from e

        return wrapper

    return decorator


class ErrorHandler:
    """统一错误处理器

    把任意异常转换为工作项上展示的错误消息，并按类型选择日志级别。
    """

    @staticmethod
    def _log_error(
        operation: str, target: str, error: Exception, level: str = "error"
    ) -> None:
        """标准化的错误日志记录

        Args:
            operation: 操作名称
            target: 相关对象（文件名或工作项 id）
            error: 异常对象
            level: 日志级别 ("error", "warning", "debug")
        """
        log_msg = MessageFormatter.format_error(operation, target, error)
        getattr(logger, level, logger.error)(log_msg)

    @staticmethod
    def describe_failure(
        error: Exception, target: str, operation: str = "图像变换"
    ) -> str:
        """记录单个工作项的失败并返回面向用户的错误消息

        Args:
            error: 捕获到的异常
            target: 工作项描述（源文件名）
            operation: 操作名称

        Returns:
            str: 非空的错误消息
        """
        match error:
            case TransformFailure():
                ErrorHandler._log_error(operation, target, error, "warning")
            case ImageEditError():
                ErrorHandler._log_error(operation, target, error, "warning")
            case TimeoutError() | ConnectionError():
                ErrorHandler._log_error(f"{operation} - 网络错误", target, error, "warning")
            case _:
                ErrorHandler._log_error(f"{operation} - 未知错误", target, error, "error")

        return format_item_error(error)
