"""从 dataclass 结构类型生成 JSON Schema。

生成规则：

- 按声明顺序遍历公开字段，逐个调用 map_type（含 doc 的 @var 注解）。
- doc 的自由文本作为 description。
- 片段类型为 object 且字段反射类型是 dataclass 时，整段替换为嵌套类型的 schema（内联展开，不使用 $ref）。
- 元素类型是 dataclass 的数组字段，items 同样内联展开为元素类型的 schema。
- 字段没有默认值且不可空时才进入 required；required 为空时整个键省略。

不做循环检测：自引用的 dataclass 会一直递归到 RecursionError，调用方需要避免。
"""

from typing import Any, Dict, List

from agent_kit.domain.exceptions import SchemaError

from .descriptors import ArrayType, ObjectType
from .fields import FieldSchema, is_structure, structure_fields
from .type_mapper import extract_description, map_type


def generate_schema(structure: Any) -> Dict[str, Any]:
    """返回 structure 的 object schema；structure 不是 dataclass 类型时抛 SchemaError。

    每次调用都返回全新的 dict，调用方可以放心修改。
    """

    if not is_structure(structure):
        name = getattr(structure, "__qualname__", repr(structure))
        raise SchemaError(code="UNKNOWN_STRUCTURE", message=f"Structure type {name} does not exist")

    properties: Dict[str, Any] = {}
    required: List[str] = []
    for fs in structure_fields(structure):
        fragment, nullable = _field_schema(fs)
        properties[fs.name] = fragment
        if not fs.has_default and not nullable:
            required.append(fs.name)

    schema: Dict[str, Any] = {
        "type": "object",
        "properties": properties,
    }
    if required:
        schema["required"] = required
    return schema


def _field_schema(fs: FieldSchema):
    schema = map_type(fs.descriptor, fs.doc)
    nullable = bool(schema.get("nullable"))

    description = extract_description(fs.doc)
    if description is not None:
        schema["description"] = description

    if schema.get("type") == "object" and isinstance(fs.descriptor, ObjectType):
        schema = generate_schema(fs.descriptor.structure)
    elif schema.get("type") == "array" and isinstance(fs.descriptor, ArrayType):
        element = fs.descriptor.element
        items = schema.get("items")
        # @var 改写过 items 时以注解为准
        if isinstance(element, ObjectType) and isinstance(items, dict) and items.get("type") == "object":
            schema["items"] = generate_schema(element.structure)
    return schema, nullable
