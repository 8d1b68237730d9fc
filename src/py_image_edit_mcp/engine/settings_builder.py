"""设置构建器模块。

工具设置的唯一修改入口：所有修改在这里完成范围校验（拒绝或截断），
保证进入编译器的设置永远合法。
"""

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pydantic.fields import FieldInfo

from ..exceptions import ConfigurationError
from ..models.edit_settings import DEFAULT_SETTINGS, EditSettings
from ..models.tool_settings import ToolSettings
from ..utils.logging_helpers import get_logger


logger = get_logger()


def _field_bounds(field: FieldInfo) -> tuple[float | None, float | None]:
    """读取字段声明的 ge/le 约束"""
    lower = upper = None
    for constraint in field.metadata:
        if (ge := getattr(constraint, "ge", None)) is not None:
            lower = ge
        if (le := getattr(constraint, "le", None)) is not None:
            upper = le
    return lower, upper


def _deep_merge(base: dict[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, BaseModel):
            value = value.model_dump()
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class SettingsBuilder:
    """设置构建器

    提供修改、序列化和反序列化接口，统一把 pydantic 校验错误转换为
    ConfigurationError。默认用于编辑设置，压缩与放大工具传入各自的模型。
    """

    def __init__(
        self,
        model_cls: type[BaseModel] = EditSettings,
        defaults: ToolSettings | None = None,
    ):
        self.model_cls = model_cls
        self.defaults = defaults if defaults is not None else DEFAULT_SETTINGS
        if not isinstance(self.defaults, model_cls):
            actual = type(self.defaults).__name__
            raise ConfigurationError(
                f"默认设置类型 {actual} 与 {model_cls.__name__} 不符"
            )

    def update(
        self,
        settings: ToolSettings,
        changes: Mapping[str, Any],
        clamp: bool = False,
    ) -> ToolSettings:
        """基于现有设置生成修改后的新设置

        Args:
            settings: 当前设置
            changes: 修改内容，嵌套配置使用嵌套字典，如 {"crop": {"enabled": True}}
            clamp: True 时把越界数值截断到字段范围，False 时越界直接报错

        Returns:
            ToolSettings: 新的设置对象

        Raises:
            ConfigurationError: 越界（clamp=False）或格式错误的字段
        """
        merged = _deep_merge(settings.model_dump(), changes)
        if clamp:
            merged = self._clamp(self.model_cls, merged)
        return self._validate(merged)

    def reset(self, settings: ToolSettings, section: str) -> ToolSettings:
        """把某一项设置恢复为默认值，如 "rotation_angle_degrees" 或 "crop" """
        if section not in self.model_cls.model_fields:
            raise ConfigurationError(f"未知的设置项: {section}")
        default_value = getattr(self.defaults, section)
        return settings.model_copy(update={section: default_value})

    def from_dict(self, data: Mapping[str, Any]) -> ToolSettings:
        """从字典（如 JSON 反序列化结果）构建设置"""
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"设置必须是对象，得到: {type(data).__name__}")
        return self._validate(dict(data))

    @staticmethod
    def to_dict(settings: ToolSettings) -> dict[str, Any]:
        """序列化为 JSON 兼容的字典"""
        return settings.model_dump(mode="json")

    def _validate(self, data: dict[str, Any]) -> ToolSettings:
        try:
            return self.model_cls.model_validate(data)
        except PydanticValidationError as e:
            raise ConfigurationError(self._format_validation_error(e)) from e

    def _clamp(
        self, model_cls: type[BaseModel], data: dict[str, Any]
    ) -> dict[str, Any]:
        """按字段声明的范围截断数值，递归处理嵌套配置"""
        clamped = dict(data)
        for name, field in model_cls.model_fields.items():
            if name not in clamped:
                continue
            value = clamped[name]
            annotation = field.annotation
            if (
                isinstance(annotation, type)
                and issubclass(annotation, BaseModel)
                and isinstance(value, dict)
            ):
                clamped[name] = self._clamp(annotation, value)
                continue

            if isinstance(value, bool) or not isinstance(value, int | float):
                continue

            lower, upper = _field_bounds(field)
            new_value = value
            if lower is not None and new_value < lower:
                new_value = lower
            if upper is not None and new_value > upper:
                new_value = upper
            if new_value != value:
                logger.debug(f"设置项 {name} 越界，已截断: {value} -> {new_value}")
                clamped[name] = new_value
        return clamped

    def _format_validation_error(self, error: PydanticValidationError) -> str:
        """格式化验证错误"""
        messages = []
        for err in error.errors():
            field = ".".join(str(loc) for loc in err["loc"])
            msg = err["msg"]
            if field:
                messages.append(f"{field}: {msg}")
            else:
                messages.append(msg)
        return "; ".join(messages)


# 全局设置构建器实例
_default_builder = SettingsBuilder()


def update_settings(
    settings: EditSettings, changes: Mapping[str, Any], clamp: bool = False
) -> EditSettings:
    """便捷的设置修改函数"""
    return _default_builder.update(settings, changes, clamp=clamp)
