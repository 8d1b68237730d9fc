"""图片导入模块。

在创建工作项之前校验源文件：必须能被 Pillow 识别为图片且不超过大小上限。
无法通过校验的文件直接拒绝并报告，不会作为失败的工作项进入批次。
"""

import io
from collections.abc import Iterable
from pathlib import Path
from typing import NamedTuple

from humanize import naturalsize
from PIL import Image

from ..config import get_config
from ..exceptions import IntakeError, handle_image_errors
from ..models.constants import get_mime_type, supports_transparency
from ..models.instructions import SourceDescriptor
from ..models.work_item import SourceImage
from ..utils.logging_helpers import get_logger
from ..utils.message_formatter import MessageFormatter


logger = get_logger()


class RawImage(NamedTuple):
    """外部导入方提供的原始输入"""

    name: str
    data: bytes
    mime_type: str | None = None


class RejectedFile(NamedTuple):
    name: str
    reason: str


class IntakeReport(NamedTuple):
    """批量导入结果：被接受的源图像（保持输入顺序）与被拒绝的文件"""

    accepted: list[SourceImage]
    rejected: list[RejectedFile]


def _detect_transparency(img: Image.Image) -> bool:
    """检测图片是否有透明度，格式本身不支持透明度时直接返回 False"""
    if not supports_transparency(img.format or ""):
        return False
    if img.mode in ("RGBA", "LA", "PA"):
        return True
    return "transparency" in img.info


class ImageIntake:
    """源图像导入器"""

    def __init__(self, max_file_size: int | None = None):
        """初始化导入器

        Args:
            max_file_size: 单个文件的字节上限，None 时使用全局配置
        """
        self.max_file_size = (
            max_file_size
            if max_file_size is not None
            else get_config().max_file_size_bytes
        )

    @handle_image_errors("图片导入")
    def from_bytes(
        self, name: str, data: bytes, mime_type: str | None = None
    ) -> SourceImage:
        """校验字节内容并创建源图像

        Args:
            name: 显示名称
            data: 图像字节
            mime_type: 导入方声明的 MIME 类型（可选）

        Returns:
            SourceImage: 校验通过的源图像

        Raises:
            IntakeError: 内容为空、过大、类型不是图片或无法解码
        """
        if not data:
            raise IntakeError(MessageFormatter.not_an_image(name, "文件为空"), name)

        if len(data) > self.max_file_size:
            raise IntakeError(
                MessageFormatter.file_too_large(
                    name,
                    naturalsize(len(data), binary=True),
                    naturalsize(self.max_file_size, binary=True),
                ),
                name,
            )

        if mime_type and not mime_type.lower().startswith("image/"):
            raise IntakeError(
                MessageFormatter.not_an_image(name, f"MIME 类型 {mime_type}"), name
            )

        with Image.open(io.BytesIO(data)) as img:
            detected_format = img.format
            width, height = img.size
            has_transparency = _detect_transparency(img)
            # verify 之后图像对象不可再使用，所需信息已在上面读取
            img.verify()

        resolved_mime = (
            get_mime_type(detected_format) if detected_format else mime_type
        ) or "application/octet-stream"
        if not resolved_mime.startswith("image/"):
            raise IntakeError(MessageFormatter.not_an_image(name), name)

        descriptor = SourceDescriptor(
            name=name,
            mime_type=resolved_mime,
            width=width or None,
            height=height or None,
            has_transparency=has_transparency,
        )
        logger.debug(f"已导入: {name} ({resolved_mime}, {width}x{height})")
        return SourceImage(
            name=name, mime_type=resolved_mime, data=bytes(data), descriptor=descriptor
        )

    def from_path(self, path: str | Path) -> SourceImage:
        """读取文件并创建源图像

        Raises:
            IntakeError: 文件不存在、不可读或不是合法图片
        """
        path = Path(path)
        if not path.is_file():
            raise IntakeError(MessageFormatter.file_not_found(path), path.name)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise IntakeError(
                MessageFormatter.operation_failed("读取文件", path, e), path.name
            ) from e
        return self.from_bytes(path.name, data)

    def intake_paths(self, paths: Iterable[str | Path]) -> IntakeReport:
        """批量导入文件路径，拒绝的文件不会中断其他文件"""
        return self._collect(
            (Path(p).name, lambda p=p: self.from_path(p)) for p in paths
        )

    def intake_raw(self, inputs: Iterable[RawImage]) -> IntakeReport:
        """批量导入外部提供的原始字节"""
        return self._collect(
            (
                raw.name,
                lambda raw=raw: self.from_bytes(raw.name, raw.data, raw.mime_type),
            )
            for raw in inputs
        )

    def _collect(self, loaders) -> IntakeReport:
        accepted: list[SourceImage] = []
        rejected: list[RejectedFile] = []
        for name, load in loaders:
            try:
                accepted.append(load())
            except IntakeError as e:
                logger.warning(f"拒绝导入 {name}: {e.message}")
                rejected.append(RejectedFile(name=name, reason=e.message))

        if rejected:
            logger.info(f"导入完成: 接受 {len(accepted)} 个, 拒绝 {len(rejected)} 个")
        return IntakeReport(accepted=accepted, rejected=rejected)
