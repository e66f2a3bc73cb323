"""结构类型（dataclass）的字段描述与可写字段表。

每个 dataclass 类型只反射一次：

- structure_fields(cls): 公开字段（名字不以 _ 开头）的 FieldSchema 元组，保持声明顺序。
- field_setters(cls): 字段名 -> setter 闭包，工具参数构造和最终输出解析共用，
  负责枚举值解析、嵌套 dataclass 的 dict 展开以及赋值（frozen dataclass 同样适用）。

populate(cls, data) 先构造零值实例，再对 data 里能匹配到字段名的键调用 setter，
其余键静默丢弃。这里只做尽力而为的转换，不做校验。
"""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import inspect
import sys
import typing
from dataclasses import MISSING, dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from agent_kit.domain.exceptions import SchemaError

from .descriptors import ArrayType, EnumType, ObjectType, ScalarType, TypeDescriptor, reflect, resolve_annotations

DOC_KEY = "doc"

Setter = Callable[[Any, Any], None]

_SKIP = object()

_SCALAR_ZERO = {"string": "", "integer": 0, "number": 0.0, "boolean": False}
_MAPPING_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


@dataclass(frozen=True)
class FieldSchema:
    """dataclass 单个字段的描述。"""

    name: str
    annotation: Any
    descriptor: TypeDescriptor
    doc: Optional[str]
    has_default: bool
    init: bool = True


def doc_field(doc: str, *, default: Any = MISSING, default_factory: Any = MISSING, **kwargs: Any) -> Any:
    """带文档注解的 dataclasses.field。

    doc 的自由文本会成为 schema 的 description，``@var`` 开头的行可以细化类型::

        @dataclass
        class Params:
            tags: list = doc_field("要添加的标签\n@var array<string>", default_factory=list)
    """

    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[DOC_KEY] = doc
    return dataclasses.field(default=default, default_factory=default_factory, metadata=metadata, **kwargs)


def is_structure(obj: Any) -> bool:
    """obj 是否为 dataclass 类型（而不是实例）。"""

    return isinstance(obj, type) and dataclasses.is_dataclass(obj)


def structure_fields(cls: type) -> Tuple[FieldSchema, ...]:
    """返回结构类型的公开字段描述，非 dataclass 类型抛 SchemaError。"""

    if not is_structure(cls):
        raise SchemaError(
            code="UNKNOWN_STRUCTURE",
            message=f"Structure type {_type_name(cls)} does not exist",
        )
    return tuple(f for f in _all_fields(cls) if not f.name.startswith("_"))


def field_setters(cls: type) -> Mapping[str, Setter]:
    """返回字段名 -> setter 的只读映射（每个类型只构建一次）。"""

    structure_fields(cls)
    return _build_setters(cls)


def zero_instance(cls: type) -> Any:
    """构造零值实例：有默认值的字段用默认值，其余字段按类型取零值。"""

    kwargs: Dict[str, Any] = {}
    for fs in _all_fields(cls):
        if not fs.init or fs.has_default:
            continue
        kwargs[fs.name] = _zero_value(fs)
    return cls(**kwargs)


def populate(cls: type, data: Mapping[str, Any]) -> Any:
    """构造 cls 的零值实例，并把 data 中与字段同名的键赋值进去。"""

    setters = field_setters(cls)
    instance = zero_instance(cls)
    for key, value in data.items():
        setter = setters.get(key)
        if setter is not None:
            setter(instance, value)
    return instance


@lru_cache(maxsize=None)
def _all_fields(cls: type) -> Tuple[FieldSchema, ...]:
    hints = _field_hints(cls)
    result = []
    for f in dataclasses.fields(cls):
        # 只有解析失败的那个字段退化为 object
        annotation = hints.get(f.name, object)
        result.append(
            FieldSchema(
                name=f.name,
                annotation=annotation,
                descriptor=reflect(annotation),
                doc=f.metadata.get(DOC_KEY),
                has_default=f.default is not MISSING or f.default_factory is not MISSING,
                init=f.init,
            )
        )
    return tuple(result)


@lru_cache(maxsize=None)
def _build_setters(cls: type) -> Mapping[str, Setter]:
    setters = {fs.name: _make_setter(fs) for fs in structure_fields(cls)}
    return MappingProxyType(setters)


def _make_setter(fs: FieldSchema) -> Setter:
    coerce = _coercer_for(fs.descriptor)
    name = fs.name

    def _set(instance: Any, value: Any) -> None:
        resolved = coerce(value)
        if resolved is _SKIP:
            return
        object.__setattr__(instance, name, resolved)

    return _set


def _coercer_for(descriptor: TypeDescriptor) -> Callable[[Any], Any]:
    if isinstance(descriptor, EnumType) and descriptor.enum is not None:
        return _enum_coercer(descriptor)
    if isinstance(descriptor, ObjectType):
        structure = descriptor.structure

        def _nested(value: Any) -> Any:
            if isinstance(value, Mapping):
                return populate(structure, value)
            return value

        return _nested
    if isinstance(descriptor, ArrayType) and isinstance(descriptor.element, ObjectType):
        element = _coercer_for(descriptor.element)

        def _items(value: Any) -> Any:
            if isinstance(value, list):
                return [element(item) for item in value]
            return value

        return _items
    return lambda value: value


def _enum_coercer(descriptor: EnumType) -> Callable[[Any], Any]:
    enum_cls = descriptor.enum

    def _backed(value: Any) -> Any:
        if isinstance(value, enum_cls) or value is None:
            return value
        if isinstance(value, (str, int)):
            # 没有对应值的成员时抛 ValueError，由调用方包装
            return enum_cls(value)
        return value

    def _by_name(value: Any) -> Any:
        if isinstance(value, enum_cls) or value is None:
            return value
        if isinstance(value, str):
            member = enum_cls.__members__.get(value)
            return _SKIP if member is None else member
        return value

    return _backed if descriptor.backing is not None else _by_name


def _zero_value(fs: FieldSchema) -> Any:
    descriptor = fs.descriptor
    if descriptor.nullable:
        return None
    if isinstance(descriptor, ArrayType):
        return []
    if isinstance(descriptor, ScalarType):
        origin = typing.get_origin(fs.annotation) or fs.annotation
        if isinstance(origin, type) and issubclass(origin, enum.Enum):
            return None
        if origin in _MAPPING_ORIGINS:
            return {}
        return _SCALAR_ZERO.get(descriptor.kind)
    return None


def _type_name(obj: Any) -> str:
    if isinstance(obj, type):
        return obj.__qualname__
    return repr(obj)


def _field_hints(cls: type) -> Dict[str, Any]:
    try:
        return typing.get_type_hints(cls)
    except (NameError, TypeError):
        pass
    hints: Dict[str, Any] = {}
    # 按声明类所在模块逐层解析，子类重新声明的字段覆盖父类
    for base in reversed(cls.__mro__):
        own = inspect.get_annotations(base)
        if not own:
            continue
        for name in own:
            hints.pop(name, None)
        module = sys.modules.get(base.__module__)
        hints.update(resolve_annotations(own, getattr(module, "__dict__", {}), dict(vars(base))))
    return hints
