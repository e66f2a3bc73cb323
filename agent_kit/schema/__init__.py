"""结构类型 -> JSON Schema 推导。

- descriptors: 类型注解的标签化描述（TypeDescriptor）与 reflect()。
- type_mapper: TypeDescriptor / 文本类型注解 -> JSON Schema 片段。
- fields: dataclass 字段描述、可写字段表与 populate()。
- generator: 组装完整 object schema。
"""

from .descriptors import TypeDescriptor, reflect
from .fields import FieldSchema, doc_field, field_setters, is_structure, populate, structure_fields, zero_instance
from .generator import generate_schema
from .type_mapper import enum_schema, extract_description, map_annotation, map_type, parse_doc_type, parse_type_string

__all__ = [
    "FieldSchema",
    "TypeDescriptor",
    "doc_field",
    "enum_schema",
    "extract_description",
    "field_setters",
    "generate_schema",
    "is_structure",
    "map_annotation",
    "map_type",
    "parse_doc_type",
    "parse_type_string",
    "populate",
    "reflect",
    "structure_fields",
    "zero_instance",
]
