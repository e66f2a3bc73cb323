"""Agent 的链式构造器与便捷工厂函数。"""

from typing import Any, Callable, Iterable, Optional

from agent_kit.agents.agent import Agent
from agent_kit.config.settings import settings
from agent_kit.providers import create_provider
from agent_kit.providers.base import ProviderClient
from agent_kit.tools.registry import ToolRegistry


class AgentBuilder:
    """逐步配置并构建 Agent::

        agent = (
            AgentBuilder(client)
            .with_model("gpt-4o-mini")
            .with_tools([get_weather, calculate])
            .with_output(WeatherReport)
            .build()
        )
    """

    def __init__(self, client: ProviderClient, registry: Optional[ToolRegistry] = None):
        self._client = client
        self._registry = registry or ToolRegistry()
        self._model: str = settings.default_model
        self._output_type: Optional[type] = None
        self._strict_output: Optional[bool] = None

    def with_model(self, model: str) -> "AgentBuilder":
        self._model = model
        return self

    def with_output(self, output_type: Optional[type]) -> "AgentBuilder":
        self._output_type = output_type
        return self

    def with_tool(self, fn: Callable[..., Any]) -> "AgentBuilder":
        """注册单个工具，注册失败（ToolError）立即抛出。"""

        self._registry.register(fn)
        return self

    def with_tools(self, fns: Iterable[Callable[..., Any]]) -> "AgentBuilder":
        self._registry.register_many(fns)
        return self

    def with_strict_output(self, strict: bool = True) -> "AgentBuilder":
        self._strict_output = strict
        return self

    def build(self) -> Agent:
        return Agent(
            self._client,
            self._registry,
            model=self._model,
            output_type=self._output_type,
            strict_output=self._strict_output,
        )


def create_agent(
    client: Optional[ProviderClient] = None,
    tools: Iterable[Callable[..., Any]] = (),
    output: Optional[type] = None,
    model: Optional[str] = None,
    *,
    strict_output: Optional[bool] = None,
) -> Agent:
    """用工具列表和可选的输出类型创建 Agent。

    client 缺省时按配置的 default_provider 创建；model 缺省时使用 settings.default_model。
    回调在 run() 时传入，而不是在创建时绑定。
    """

    builder = AgentBuilder(client or create_provider())
    builder.with_model(model or settings.default_model).with_tools(tools).with_output(output)
    if strict_output is not None:
        builder.with_strict_output(strict_output)
    return builder.build()
