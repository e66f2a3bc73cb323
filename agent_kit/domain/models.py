"""统一的对话与结果数据模型。

本模块定义了 Agent 循环与 Provider 之间共享的标准数据结构：

- ChatMessage: 一条对话消息（system/user/assistant/tool）。
- ChatRequest: 发给底层 LLM Provider 的完整请求。
- ChatResult: 从 Provider 解析后的统一响应结果。

Provider 适配器（如 OpenAICompatibleClient）只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass
from typing import Literal, Optional, Any, Dict, List, Mapping, TYPE_CHECKING

if TYPE_CHECKING:
    # 仅在类型检查时导入，避免运行时循环依赖
    from agent_kit.tools.definitions import ToolCall


# LLM 消息角色类型（与 OpenAI 兼容接口的 role 字段对应）
Role = Literal["system", "user", "assistant", "tool"]


@dataclass
class ChatMessage:
    """一条对话消息，既可用于请求，也可用于响应。

    - role: 消息角色，如 system/user/assistant/tool。
    - content: 纯文本内容；assistant 只发起工具调用时可以为 None。
    - tool_calls: 当 role 为 "assistant" 且模型触发工具调用时，
      这里保存模型发起的工具调用列表（参数为原始 JSON 文本）。
    - tool_call_id: 当 role 为 "tool" 时，用于关联某一次工具调用。
    """

    role: Role
    content: Optional[str] = None
    tool_calls: Optional[List["ToolCall"]] = None
    tool_call_id: Optional[str] = None

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "ChatMessage":
        """把 OpenAI 风格的 message dict 转为 ChatMessage。

        tool_calls 既可以是 ToolCall 实例，也可以是
        ``{"id", "function": {"name", "arguments"}}`` 形式的 dict。
        """

        from agent_kit.tools.definitions import ToolCall, arguments_text

        tool_calls: List[ToolCall] = []
        for idx, call in enumerate(payload.get("tool_calls") or []):
            if isinstance(call, ToolCall):
                tool_calls.append(call)
                continue
            func = call.get("function") or {}
            tool_calls.append(
                ToolCall(
                    id=call.get("id") or f"tool_call_{idx}",
                    name=func.get("name") or call.get("name") or "",
                    arguments=arguments_text(func["arguments"] if "arguments" in func else call.get("arguments")),
                )
            )
        return cls(
            role=payload.get("role") or "user",
            content=payload.get("content"),
            tool_calls=tool_calls or None,
            tool_call_id=payload.get("tool_call_id"),
        )


@dataclass
class ChatRequest:
    """一次完整的聊天请求。

    Agent 每一轮都会用完整的消息历史重新构造 ChatRequest，再交给 ProviderClient。
    Provider 适配层负责把本结构转换成各家 API 的 JSON 请求体。
    """

    model: str  # 模型名，如 "gpt-4o"（可由 registry 映射为厂商实际模型名）
    messages: List[ChatMessage]
    # OpenAI function tool 列表（已是 {"type": "function", ...} 线上格式）
    tools: Optional[List[Dict[str, Any]]] = None
    # 结构化输出指令，如 {"type": "json_schema", "json_schema": {...}}
    response_format: Optional[Dict[str, Any]] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class ChatUsage:
    """Provider 返回的 token 统计信息（统一格式）。"""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatChoice:
    """单个候选回答（Agent 只使用 index=0 的一条）。"""

    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


@dataclass
class ChatResult:
    """一次对话调用的最终结果。

    - provider: Provider 名（如 "openai"）。
    - model: 请求使用的模型名。
    - choices: 一个或多个候选回答，可能为空（由 Agent 判定为失败）。
    - usage: 可选的 token 使用统计。
    - raw: 原始响应 JSON，用于调试或日志记录。
    """

    provider: str
    model: str
    choices: List[ChatChoice]
    usage: Optional[ChatUsage] = None
    raw: Optional[dict] = None
