"""TypeDescriptor / 文本类型注解 -> JSON Schema 片段。

映射约定：

- 标量一一对应：str -> string，int -> integer，float -> number，bool -> boolean；
  其余类、Protocol、Any、dict 等统一兜底为 object。
- 可空类型输出基础映射加 ``nullable: true``，不使用 ``type: [X, "null"]``。
- 多成员联合输出 ``{"anyOf": [...]}``，None 成员被移除并转为 ``nullable: true``。
- Enum：字符串/整数值枚举输出成员值，普通枚举输出成员名，成员为空时不产生 enum 约束。

字段 doc 里的 ``@var T`` 指令优先于反射得到的类型（逐键覆盖），
因为文本注解可以表达反射拿不到的细节，例如 ``array<string>``。
"""

import re
from typing import Any, Dict, List, Optional

from .descriptors import (
    ArrayType,
    EnumType,
    ObjectType,
    ScalarType,
    TypeDescriptor,
    UnionType,
    reflect,
)

_VAR_DIRECTIVE = re.compile(r"@var\s+(\S+)")
_GENERIC_ARRAY = re.compile(r"^(?:array|list|List|Sequence)(?:<(?P<angle>.+)>|\[(?P<square>.+)\])$")

_SCALAR_NAMES = {
    "int": "integer",
    "integer": "integer",
    "float": "number",
    "double": "number",
    "number": "number",
    "bool": "boolean",
    "boolean": "boolean",
    "str": "string",
    "string": "string",
    "array": "array",
    "list": "array",
    "tuple": "array",
    "null": "null",
    "none": "null",
}


def map_type(descriptor: TypeDescriptor, doc: Optional[str] = None) -> Dict[str, Any]:
    """把 TypeDescriptor 映射为 JSON Schema 片段，doc 中的 @var 注解优先。"""

    schema = _map_descriptor(descriptor)
    doc_schema = parse_doc_type(doc)
    if doc_schema is not None:
        schema = {**schema, **doc_schema}
    return schema


def map_annotation(annotation: Any, doc: Optional[str] = None) -> Dict[str, Any]:
    """便捷入口：直接对类型注解做 reflect + map_type。"""

    return map_type(reflect(annotation), doc)


def enum_schema(enum_cls: Any) -> Optional[Dict[str, Any]]:
    """返回枚举类型的 schema；不是枚举或没有成员时返回 None。"""

    descriptor = reflect(enum_cls)
    if not isinstance(descriptor, EnumType):
        return None
    return _enum_fragment(descriptor)


def parse_doc_type(doc: Optional[str]) -> Optional[Dict[str, Any]]:
    """从 doc 文本中提取 ``@var T`` 并解析；没有该指令时返回 None。"""

    if not doc:
        return None
    match = _VAR_DIRECTIVE.search(doc)
    if not match:
        return None
    return parse_type_string(match.group(1))


def parse_type_string(text: str) -> Dict[str, Any]:
    """解析 ``?int``、``string|int|null``、``array<string>``、``Address[]`` 这类类型串。"""

    text = text.strip()
    if text.startswith("?"):
        schema = parse_type_string(text[1:])
        schema["nullable"] = True
        return schema

    parts = _split_union(text)
    if len(parts) > 1:
        schemas = [parse_type_string(part) for part in parts]
        members = [s for s in schemas if s.get("type") != "null"]
        result: Dict[str, Any] = {"anyOf": members}
        if len(members) != len(schemas):
            result["nullable"] = True
        return result

    match = _GENERIC_ARRAY.match(text)
    if match:
        inner = match.group("angle") or match.group("square")
        return {"type": "array", "items": parse_type_string(inner)}
    if text.endswith("[]"):
        return {"type": "array", "items": parse_type_string(text[:-2])}

    return {"type": _SCALAR_NAMES.get(text.lower(), "object")}


def extract_description(doc: Optional[str]) -> Optional[str]:
    """提取 doc 中的描述文本：去掉空行和以 @ 开头的指令行，其余行用单个空格连接。"""

    if not doc:
        return None
    lines: List[str] = []
    for raw_line in doc.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("@"):
            continue
        lines.append(line)
    result = " ".join(lines)
    return result or None


def _map_descriptor(descriptor: TypeDescriptor) -> Dict[str, Any]:
    if isinstance(descriptor, ScalarType):
        schema: Dict[str, Any] = {"type": descriptor.kind}
    elif isinstance(descriptor, ArrayType):
        schema = {"type": "array"}
        if descriptor.element is not None:
            schema["items"] = _map_descriptor(descriptor.element)
    elif isinstance(descriptor, ObjectType):
        schema = {"type": "object"}
    elif isinstance(descriptor, UnionType):
        schema = {"anyOf": [_map_descriptor(member) for member in descriptor.members]}
    elif isinstance(descriptor, EnumType):
        schema = _enum_fragment(descriptor)
    else:
        schema = {"type": "object"}
    if descriptor.nullable:
        schema["nullable"] = True
    return schema


def _enum_fragment(descriptor: EnumType) -> Dict[str, Any]:
    kind = "integer" if descriptor.backing == "integer" else "string"
    return {"type": kind, "enum": list(descriptor.values)}


def _split_union(text: str) -> List[str]:
    """按顶层的 | 拆分，忽略 <> 和 [] 内部的 |。"""

    parts: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in text:
        if ch in "<[":
            depth += 1
        elif ch in ">]":
            depth -= 1
        if ch == "|" and depth == 0:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())
    return [p for p in parts if p]
