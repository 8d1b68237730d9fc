"""图像编辑相关常量定义。

输出格式、MIME 类型与取值范围集中定义，避免在各模块重复硬编码。
"""

from enum import Enum
from typing import Any, Final

from PIL import Image


class OutputFormat(str, Enum):
    """批量统一的输出格式"""

    PNG = "PNG"
    JPEG = "JPEG"
    WEBP = "WEBP"

    @property
    def mime_type(self) -> str:
        return ImageFormats.get_mime_type(self.value)

    @property
    def extension(self) -> str:
        return ImageFormats.get_extension(self.value)

    @property
    def is_lossy(self) -> bool:
        """质量参数仅对有损格式有意义"""
        return self.value in ImageFormats.LOSSY_FORMATS


class ImageFormats:
    """基于 Pillow 的图像格式管理"""

    ALIASES: Final[dict[str, str]] = {
        "JPG": "JPEG",
    }

    PREFERRED_EXTENSIONS: Final[dict[str, str]] = {
        "JPEG": ".jpg",  # 而不是 .jpeg
        "PNG": ".png",  # 而不是 .apng
        "WEBP": ".webp",
        "TIFF": ".tiff",
    }

    SPECIAL_MIME_TYPES: Final[dict[str, str]] = {
        "ICO": "image/x-icon",
    }

    LOSSY_FORMATS: Final[set[str]] = {"JPEG", "WEBP"}
    TRANSPARENCY_FORMATS: Final[set[str]] = {"PNG", "WEBP", "GIF", "TIFF"}

    @classmethod
    def get_mime_type(cls, format_name: str) -> str:
        format_upper = get_format_alias(format_name)
        if format_upper in cls.SPECIAL_MIME_TYPES:
            return cls.SPECIAL_MIME_TYPES[format_upper]
        return f"image/{format_upper.lower()}"

    @classmethod
    def get_extension(cls, format_name: str) -> str:
        format_upper = get_format_alias(format_name)
        if format_upper in cls.PREFERRED_EXTENSIONS:
            return cls.PREFERRED_EXTENSIONS[format_upper]

        for ext, fmt in Image.registered_extensions().items():
            if fmt and fmt.upper() == format_upper:
                return ext.lower()

        return f".{format_upper.lower()}"


class SettingsLimits:
    """编辑参数的取值范围（闭区间）"""

    ROTATION_MIN: Final[int] = -180
    ROTATION_MAX: Final[int] = 180

    PERCENT_MIN: Final[int] = 0
    PERCENT_MAX: Final[int] = 100

    # 亮度、对比度以 100 为原值
    TONE_MIN: Final[int] = 0
    TONE_MAX: Final[int] = 200
    TONE_IDENTITY: Final[int] = 100

    SCALE_MIN: Final[int] = 1
    SCALE_MAX: Final[int] = 100

    QUALITY_MIN: Final[int] = 1
    QUALITY_MAX: Final[int] = 100

    DIMENSION_MIN: Final[int] = 1
    DIMENSION_MAX: Final[int] = 10000

    FONT_SIZE_MIN: Final[int] = 1
    FONT_SIZE_MAX: Final[int] = 1000


# 持久化设置的 schema 版本，格式变化时递增
SETTINGS_SCHEMA_VERSION: Final[str] = "v3"
SETTINGS_SCHEMA_KEY: Final[str] = f"image_edit_settings_{SETTINGS_SCHEMA_VERSION}"


def get_format_alias(format_str: str) -> str:
    """获取格式的标准名称"""
    format_upper = format_str.upper()
    return ImageFormats.ALIASES.get(format_upper, format_upper)


def get_mime_type(format_str: str) -> str:
    """获取格式的 MIME 类型"""
    return ImageFormats.get_mime_type(format_str)


def get_extension(format_str: str) -> str:
    """获取格式的首选扩展名"""
    return ImageFormats.get_extension(format_str)


def supports_transparency(format_str: str) -> bool:
    """检查格式是否支持透明度"""
    return get_format_alias(format_str) in ImageFormats.TRANSPARENCY_FORMATS


def normalize_format_name(value: Any) -> Any:
    """接受 "jpg"、"image/webp" 等写法，其他类型原样返回交给 pydantic 校验"""
    if isinstance(value, str):
        name = value.strip()
        if name.lower().startswith("image/"):
            name = name.split("/", 1)[1]
        return get_format_alias(name)
    return value
