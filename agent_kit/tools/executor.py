"""按名称执行已注册的工具，并统一包装错误。"""

from typing import Any, Mapping, Optional

from agent_kit.domain.exceptions import ToolError
from agent_kit.infrastructure.logging.logger import logger
from agent_kit.schema import populate

from .definitions import ToolDefinition
from .registry import ToolRegistry


class ToolExecutor:
    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    def execute(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> Any:
        """查找工具、把参数 dict 转成参数 dataclass 实例并调用一次。

        Raises:
            ToolError: 工具未注册；参数对象构造失败（如枚举值无匹配成员）；
                工具函数抛出异常（原异常保存在 ``__cause__``）。
        """

        tool = self._registry.get(name)
        params = self._build_parameter(tool, arguments if arguments is not None else {})
        logger.debug("Executing tool", extra={"extra": {"tool_name": name}})
        try:
            return tool.handler(params)
        except Exception as exc:  # noqa: BLE001 - 统一转换为 ToolError
            raise ToolError(
                code="TOOL_EXECUTION_ERROR",
                message=f"Error executing tool '{name}': {exc}",
                tool_name=name,
            ) from exc

    @staticmethod
    def _build_parameter(tool: ToolDefinition, arguments: Mapping[str, Any]) -> Any:
        if not isinstance(arguments, Mapping):
            raise ToolError(
                code="TOOL_ARGUMENT_ERROR",
                message=f"Arguments for tool '{tool.name}' must be an object, got {type(arguments).__name__}",
                tool_name=tool.name,
            )
        try:
            return populate(tool.parameter_type, arguments)
        except Exception as exc:  # noqa: BLE001 - 枚举解析失败、__post_init__ 校验失败等
            raise ToolError(
                code="TOOL_ARGUMENT_ERROR",
                message=f"Failed to create parameter object for tool '{tool.name}': {exc}",
                tool_name=tool.name,
            ) from exc
