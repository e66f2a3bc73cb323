"""模型最终回答 -> 结构化输出。"""

from .parser import extract_json_object, parse_output

__all__ = ["extract_json_object", "parse_output"]
