"""工具数据结构定义。

这些 dataclass 描述了“工具调用”的各个环节：
- ToolSpec: 通过 @tool 装饰器挂在函数上的标记（名称、描述、元数据）。
- ToolDefinition: 注册后的工具，包含参数 JSON Schema 和实际处理函数。
- ToolCall: 模型发起的一次工具调用请求（参数为原始 JSON 文本，由 Agent 解码）。
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, TypeVar

TOOL_SPEC_ATTR = "__tool_spec__"

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class ToolSpec:
    """工具标记元数据。"""

    name: str
    description: str = ""
    metadata: Mapping[str, Any] = field(default_factory=dict)


def tool(name: str, description: str = "", metadata: Optional[Mapping[str, Any]] = None) -> Callable[[F], F]:
    """把函数标记为工具，函数本身原样返回。

    被标记的函数必须只接受一个参数，且参数注解为 dataclass::

        @dataclass
        class WeatherParams:
            city: str

        @tool("get_weather", "查询城市天气")
        def get_weather(params: WeatherParams) -> dict:
            ...
    """

    spec = ToolSpec(name=name, description=description, metadata=dict(metadata or {}))

    def decorator(fn: F) -> F:
        setattr(fn, TOOL_SPEC_ATTR, spec)
        return fn

    return decorator


def get_tool_spec(fn: Any) -> Optional[ToolSpec]:
    """读取函数上的 ToolSpec；绑定方法会透传到底层函数。"""

    spec = getattr(fn, TOOL_SPEC_ATTR, None)
    return spec if isinstance(spec, ToolSpec) else None


@dataclass(frozen=True)
class ToolDefinition:
    """一个可供 LLM 调用的工具定义。"""

    name: str
    description: str
    parameters: Dict[str, Any]
    handler: Callable[[Any], Any]
    parameter_type: type
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def to_provider_format(self) -> Dict[str, Any]:
        """转成 OpenAI 兼容接口的 function tool 描述。"""

        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }


@dataclass
class ToolCall:
    """模型发起的一次工具调用请求。"""

    id: str
    name: str
    arguments: str


def arguments_text(raw: Any) -> str:
    """把工具调用参数统一为 JSON 文本。

    个别厂商（以及手写的历史消息）直接给出对象而不是字符串，这里重新序列化；
    缺失或空串视为无参数 ``{}``。
    """

    if raw is None or raw == "":
        return "{}"
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, ensure_ascii=False)
