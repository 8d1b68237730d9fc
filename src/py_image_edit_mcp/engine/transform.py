"""外部变换服务接口模块。

变换服务是一个黑盒：接收图像字节、MIME 类型和指令，返回新图像字节。
指令的 kind 区分编辑、压缩与放大。
同步实现会被放到线程池执行，异步实现直接等待。
"""

import asyncio
import functools
import importlib
import inspect
from collections.abc import Awaitable, Callable
from concurrent.futures import Executor
from typing import Any, Protocol, runtime_checkable

from ..exceptions import ConfigurationError, TransformFailure
from ..models.instructions import Instructions
from ..utils.logging_helpers import get_logger


logger = get_logger()

TransformResult = bytes | None
TransformFunction = Callable[
    [bytes, str, Instructions], TransformResult | Awaitable[TransformResult]
]


@runtime_checkable
class TransformCapability(Protocol):
    """外部变换服务协议

    失败通过抛出异常（推荐 TransformFailure）或返回空结果表示。
    """

    def transform(
        self, image_bytes: bytes, mime_type: str, instructions: Instructions
    ) -> TransformResult | Awaitable[TransformResult]: ...


class FunctionCapability:
    """把普通函数包装为变换服务"""

    def __init__(self, func: TransformFunction):
        self._func = func

    def transform(
        self, image_bytes: bytes, mime_type: str, instructions: Instructions
    ) -> TransformResult | Awaitable[TransformResult]:
        return self._func(image_bytes, mime_type, instructions)

    @property
    def is_async(self) -> bool:
        return inspect.iscoroutinefunction(self._func)


def is_async_capability(capability: TransformCapability) -> bool:
    """异步实现直接等待，同步实现需要线程池"""
    if isinstance(capability, FunctionCapability):
        return capability.is_async
    return inspect.iscoroutinefunction(capability.transform)


async def invoke_capability(
    capability: TransformCapability,
    image_bytes: bytes,
    mime_type: str,
    instructions: Instructions,
    executor: Executor | None = None,
) -> bytes:
    """调用变换服务并校验结果

    Args:
        capability: 变换服务
        image_bytes: 源图像字节
        mime_type: 源图像 MIME 类型
        instructions: 编译后的指令（原样传递）
        executor: 同步实现使用的执行器，None 时使用事件循环默认线程池

    Returns:
        bytes: 变换后的图像字节

    Raises:
        TransformFailure: 服务没有返回图像
        Exception: 服务自身抛出的任何异常原样传播，由编排器记录到工作项
    """
    if is_async_capability(capability):
        result: Any = await capability.transform(image_bytes, mime_type, instructions)
    else:
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(
            executor,
            functools.partial(
                capability.transform, image_bytes, mime_type, instructions
            ),
        )
        if inspect.isawaitable(result):
            result = await result

    if result is None or (isinstance(result, bytes | bytearray) and not result):
        raise TransformFailure("变换服务没有返回图像")
    if not isinstance(result, bytes | bytearray | memoryview):
        raise TransformFailure(f"变换服务返回了非图像结果: {type(result).__name__}")
    return bytes(result)


def load_capability(import_path: str) -> TransformCapability:
    """按导入路径加载变换服务，格式为 "package.module:attribute"

    属性可以是实现了 transform 的对象、可无参构造的类，或变换函数。

    Raises:
        ConfigurationError: 路径格式错误、无法导入或对象不可用
    """
    module_name, sep, attr_name = import_path.partition(":")
    if not sep or not module_name or not attr_name:
        raise ConfigurationError(
            f"变换服务路径格式应为 'package.module:attribute'，得到: {import_path}"
        )

    try:
        module = importlib.import_module(module_name)
        target = getattr(module, attr_name)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"无法加载变换服务 {import_path}: {e}") from e

    if inspect.isclass(target):
        target = target()

    if isinstance(target, TransformCapability):
        logger.info(f"已加载变换服务: {import_path}")
        return target
    if callable(target):
        logger.info(f"已加载变换函数: {import_path}")
        return FunctionCapability(target)

    raise ConfigurationError(f"{import_path} 不是可用的变换服务")
