"""测试配置文件。

提供测试所需的fixtures：用 Pillow 生成的图片、源图像工厂以及假的变换服务。
"""

import asyncio
import io
import threading
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image, ImageDraw

from py_image_edit_mcp.config import reset_config
from py_image_edit_mcp.core.intake import ImageIntake
from py_image_edit_mcp.exceptions import TransformFailure
from py_image_edit_mcp.models.instructions import InstructionSequence
from py_image_edit_mcp.models.work_item import SourceImage


def _encode(img: Image.Image, fmt: str) -> bytes:
    buffer = io.BytesIO()
    img.save(buffer, fmt)
    return buffer.getvalue()


def make_image_bytes(
    size: tuple[int, int] = (64, 48), fmt: str = "PNG", transparent: bool = False
) -> bytes:
    """生成带简单图案的图片字节"""
    if transparent:
        img = Image.new("RGBA", size, color=(0, 0, 0, 0))
        fill = (255, 80, 0, 160)
    else:
        img = Image.new("RGB", size, color="white")
        fill = (30, 120, 200)
    draw = ImageDraw.Draw(img)
    draw.rectangle([size[0] // 4, size[1] // 4, size[0] // 2, size[1] // 2], fill=fill)
    return _encode(img, fmt)


class RecordingCapability:
    """同步假变换服务：记录每次调用，返回带标记的新字节"""

    def __init__(
        self,
        fail_names: set[str] | None = None,
        empty_names: set[str] | None = None,
    ):
        self.fail_names = fail_names or set()
        self.empty_names = empty_names or set()
        self.calls: list[InstructionSequence] = []
        self._lock = threading.Lock()

    def transform(
        self, image_bytes: bytes, mime_type: str, instructions: InstructionSequence
    ) -> bytes | None:
        with self._lock:
            self.calls.append(instructions)
        name = instructions.source.name
        if name in self.fail_names:
            raise TransformFailure(f"模型拒绝处理 {name}")
        if name in self.empty_names:
            return None
        return b"edited:" + name.encode()


class AsyncRecordingCapability:
    """异步假变换服务，记录同时进行的调用数"""

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def transform(
        self, image_bytes: bytes, mime_type: str, instructions: InstructionSequence
    ) -> bytes:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            self.calls.append(instructions.source.name)
            return b"async:" + instructions.source.name.encode()
        finally:
            self.active -= 1


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """每个测试使用干净的环境配置"""
    for key in (
        "PIE_MAX_CONCURRENCY",
        "PIE_EXECUTOR_WORKERS",
        "PIE_AUTO_RUN",
        "PIE_TRANSFORM_BACKEND",
        "PIE_MAX_FILE_SIZE_MB",
        "PIE_SETTINGS_FILE",
        "PIE_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def png_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture
def transparent_png_bytes() -> bytes:
    return make_image_bytes(transparent=True)


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_image_bytes(fmt="JPEG")


@pytest.fixture
def make_source(png_bytes: bytes) -> Callable[..., SourceImage]:
    """源图像工厂：按名称生成已通过导入校验的源图像"""
    intake = ImageIntake()

    def factory(name: str = "photo.png", data: bytes | None = None) -> SourceImage:
        return intake.from_bytes(name, data or png_bytes)

    return factory


@pytest.fixture
def sample_files(tmp_path: Path) -> dict[str, Path]:
    """写入临时目录的示例文件"""
    files = {
        "photo": tmp_path / "photo.png",
        "transparent": tmp_path / "logo.png",
        "jpeg": tmp_path / "holiday.photo.jpg",
        "text": tmp_path / "notes.txt",
    }
    files["photo"].write_bytes(make_image_bytes())
    files["transparent"].write_bytes(make_image_bytes(transparent=True))
    files["jpeg"].write_bytes(make_image_bytes(fmt="JPEG"))
    files["text"].write_text("not an image", encoding="utf-8")
    return files


@pytest.fixture
def capability() -> RecordingCapability:
    return RecordingCapability()


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """输出目录fixture"""
    path = tmp_path / "output"
    path.mkdir()
    return path


@pytest.fixture
def capability_factory() -> type[RecordingCapability]:
    return RecordingCapability


@pytest.fixture
def async_capability_factory() -> type[AsyncRecordingCapability]:
    return AsyncRecordingCapability
