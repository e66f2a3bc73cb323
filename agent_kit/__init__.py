"""agent-kit 顶层包。

把带类型的本地函数（工具）暴露给 OpenAI 兼容的对话接口：

- schema: 由 dataclass 推导 JSON Schema。
- tools: @tool 标记、工具注册表与执行器。
- agents: 有上限的“模型调用 / 工具执行”循环，以及观察者回调。
- output: 把模型最终回答解析为 dataclass 实例。
- providers: 基于 httpx 的 OpenAI 兼容客户端。
"""

from agent_kit.agents.agent import MAX_ITERATIONS, Agent
from agent_kit.agents.builder import AgentBuilder, create_agent
from agent_kit.agents.callbacks import AgentCallback, LoggingCallback, TraceCallback
from agent_kit.domain.exceptions import AgentError, BusinessError, SchemaError, ToolError
from agent_kit.output import parse_output
from agent_kit.schema import doc_field, generate_schema
from agent_kit.tools import ToolExecutor, ToolRegistry, tool

__all__ = [
    "MAX_ITERATIONS",
    "Agent",
    "AgentBuilder",
    "AgentCallback",
    "AgentError",
    "BusinessError",
    "LoggingCallback",
    "SchemaError",
    "ToolError",
    "ToolExecutor",
    "ToolRegistry",
    "TraceCallback",
    "create_agent",
    "doc_field",
    "generate_schema",
    "parse_output",
    "tool",
]
