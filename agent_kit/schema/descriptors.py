"""字段声明类型的标签化描述（TypeDescriptor）。

reflect() 把 dataclass 字段上解析好的类型注解转换为下面几种不可变描述之一：

- ScalarType: string / integer / number / boolean，以及无法细分时的 object 兜底。
- ArrayType: list / tuple / set 等序列，element 为 None 表示元素类型未知。
- ObjectType: 嵌套的 dataclass 结构类型，生成 schema 时会内联展开。
- UnionType: 两个及以上非 None 成员的联合类型。
- EnumType: Enum 子类或 Literal；backing 为 "string"/"integer" 时取成员值，为 None 时取成员名。

所有描述都带 nullable 标记，对应 ``Optional[X]`` / ``X | None``。
"""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import types
import typing
from dataclasses import dataclass
from typing import Any, Literal, Optional, Tuple, Union

ScalarKind = Literal["string", "integer", "number", "boolean", "object"]
EnumBacking = Optional[Literal["string", "integer"]]

_NONE_TYPE = type(None)

# 顺序敏感：bool 是 int 的子类，必须先判断
_SCALARS: Tuple[Tuple[type, str], ...] = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "number"),
    (str, "string"),
)

_ARRAY_ORIGINS = (
    list,
    tuple,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
    collections.abc.Iterable,
    collections.abc.Collection,
)

_OBJECT_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


@dataclass(frozen=True)
class ScalarType:
    kind: ScalarKind
    nullable: bool = False


@dataclass(frozen=True)
class ArrayType:
    element: Optional["TypeDescriptor"] = None
    nullable: bool = False


@dataclass(frozen=True)
class ObjectType:
    structure: type
    nullable: bool = False


@dataclass(frozen=True)
class UnionType:
    members: Tuple["TypeDescriptor", ...]
    nullable: bool = False


@dataclass(frozen=True)
class EnumType:
    enum: Optional[type]
    backing: EnumBacking
    values: Tuple[Any, ...]
    nullable: bool = False


TypeDescriptor = Union[ScalarType, ArrayType, ObjectType, UnionType, EnumType]


def reflect(annotation: Any) -> TypeDescriptor:
    """把类型注解转换为 TypeDescriptor。无法识别的注解一律视为 object。"""

    if annotation is None or annotation is _NONE_TYPE:
        return ScalarType("object", nullable=True)
    if annotation is Any or annotation is object:
        return ScalarType("object")

    origin = typing.get_origin(annotation)
    args = typing.get_args(annotation)

    if origin is typing.Annotated:
        return reflect(args[0])
    if origin is Union or origin is types.UnionType:
        return _reflect_union(args)
    if origin is Literal:
        return _reflect_literal(args)
    if origin is not None:
        if origin in _ARRAY_ORIGINS:
            return ArrayType(element=_element_of(origin, args))
        if origin in _OBJECT_ORIGINS:
            return ScalarType("object")
        if origin is type:
            return ScalarType("string")
        return ScalarType("object")

    if not isinstance(annotation, type):
        # 前向引用字符串、TypeVar、NewType 等
        supertype = getattr(annotation, "__supertype__", None)
        if supertype is not None:
            return reflect(supertype)
        return ScalarType("object")

    if issubclass(annotation, enum.Enum):
        return _reflect_enum(annotation)
    if dataclasses.is_dataclass(annotation):
        return ObjectType(structure=annotation)
    for base, kind in _SCALARS:
        if issubclass(annotation, base):
            return ScalarType(kind)
    if issubclass(annotation, (list, tuple, set, frozenset)):
        return ArrayType()
    return ScalarType("object")


def _with_nullable(descriptor: TypeDescriptor, nullable: bool) -> TypeDescriptor:
    if not nullable or descriptor.nullable:
        return descriptor
    return dataclasses.replace(descriptor, nullable=True)


def _reflect_union(args: Tuple[Any, ...]) -> TypeDescriptor:
    members = [arg for arg in args if arg is not _NONE_TYPE]
    nullable = len(members) != len(args)
    if len(members) == 1:
        # Optional[X]：等价于带 nullable 的 X，而不是单成员 anyOf
        return _with_nullable(reflect(members[0]), nullable)
    return UnionType(members=tuple(reflect(m) for m in members), nullable=nullable)


def _reflect_literal(args: Tuple[Any, ...]) -> TypeDescriptor:
    values = tuple(v for v in args if v is not None)
    nullable = len(values) != len(args)
    if values and all(isinstance(v, str) for v in values):
        return EnumType(enum=None, backing="string", values=values, nullable=nullable)
    if values and all(isinstance(v, int) and not isinstance(v, bool) for v in values):
        return EnumType(enum=None, backing="integer", values=values, nullable=nullable)
    return ScalarType("object", nullable=nullable)


def _reflect_enum(enum_cls: type) -> TypeDescriptor:
    members = list(enum_cls)
    if not members:
        return ScalarType("object")
    if issubclass(enum_cls, str):
        return EnumType(enum=enum_cls, backing="string", values=tuple(m.value for m in members))
    if issubclass(enum_cls, int):
        return EnumType(enum=enum_cls, backing="integer", values=tuple(m.value for m in members))
    return EnumType(enum=enum_cls, backing=None, values=tuple(m.name for m in members))


def _element_of(origin: Any, args: Tuple[Any, ...]) -> Optional[TypeDescriptor]:
    if not args:
        return None
    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return reflect(args[0])
        if len(set(args)) == 1:
            return reflect(args[0])
        return None
    return reflect(args[0])


def resolve_annotations(
    annotations: typing.Mapping[str, Any],
    globalns: Optional[typing.Mapping[str, Any]] = None,
    localns: Optional[typing.Mapping[str, Any]] = None,
) -> typing.Dict[str, Any]:
    """逐个解析注解（含字符串前向引用），只返回解析成功的项。

    typing.get_type_hints 遇到一个无法解析的名字就整体失败，这里按名字拆开，
    让同一个类/函数上其余的注解不受影响。
    """

    resolved: typing.Dict[str, Any] = {}
    for name, annotation in annotations.items():
        holder = types.SimpleNamespace(__annotations__={name: annotation})
        try:
            resolved[name] = typing.get_type_hints(holder, dict(globalns or {}), dict(localns or {}))[name]
        except (NameError, TypeError, SyntaxError, AttributeError):
            continue
    return resolved
