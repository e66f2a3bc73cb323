"""系统提示词。

目前只有一种：配置了输出类型时，Agent 在消息列表最前面插入的结构化输出说明，
内容是固定文本加上缩进排版的 JSON Schema。
"""

import json
from typing import Any, Dict

OUTPUT_SCHEMA_PROMPT = (
    "After you complete all tool calls and have the final answer, "
    "you MUST respond with a valid JSON object matching this exact schema:\n\n"
    "{schema}\n\n"
    "Do not include any other text, only the JSON object."
)


def build_output_instruction(schema: Dict[str, Any]) -> str:
    """根据输出类型的 schema 生成 system 提示词。"""

    return OUTPUT_SCHEMA_PROMPT.format(schema=json.dumps(schema, indent=4, ensure_ascii=False))
