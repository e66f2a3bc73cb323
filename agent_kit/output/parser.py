"""把模型的最终文本解析为 dataclass 实例。

JSON 对象按以下顺序尽力提取，第一个得到 JSON 对象的策略生效：

1. 整段文本直接按 JSON 解析；
2. 查找 ```json 代码块并解析其中的对象；
3. 查找文本中第一个 ``{`` 到最后一个 ``}`` 的片段并解析。

顶层键中与字段同名的会被赋值，其余键静默丢弃。
"""

import json
import re
from typing import Any, Dict, Optional

from agent_kit.domain.exceptions import AgentError
from agent_kit.schema import is_structure, populate

_FENCED_JSON = re.compile(r"```json\s*(\{.*?\})\s*```", re.DOTALL)
_BARE_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def parse_output(content: Optional[str], target: Any) -> Any:
    """把 content 解析为 target（dataclass 类型）的实例。

    Raises:
        AgentError: content 为 None、target 不是 dataclass、提取不到 JSON 对象，
            或者构造实例失败。
    """

    if content is None:
        raise AgentError(code="OUTPUT_EMPTY", message="Cannot parse null content")
    if not is_structure(target):
        name = getattr(target, "__qualname__", repr(target))
        raise AgentError(code="OUTPUT_TYPE_UNKNOWN", message=f"Output type {name} does not exist")

    data = extract_json_object(content)
    if data is None:
        raise AgentError(code="OUTPUT_PARSE_ERROR", message="Could not parse output as JSON")

    try:
        return populate(target, data)
    except Exception as exc:  # noqa: BLE001 - 统一转换为 AgentError
        raise AgentError(
            code="OUTPUT_BUILD_ERROR",
            message=f"Failed to create output object: {exc}",
        ) from exc


def extract_json_object(content: str) -> Optional[Dict[str, Any]]:
    """从文本中提取第一个可解析的 JSON 对象，找不到时返回 None。"""

    data = _loads(content)
    if isinstance(data, dict):
        return data

    match = _FENCED_JSON.search(content)
    if match:
        data = _loads(match.group(1))
        if isinstance(data, dict):
            return data

    match = _BARE_OBJECT.search(content)
    if match:
        data = _loads(match.group(0))
        if isinstance(data, dict):
            return data
    return None


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None
