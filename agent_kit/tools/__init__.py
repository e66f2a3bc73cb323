"""工具系统：@tool 标记、注册表与执行器。"""

from .definitions import ToolCall, ToolDefinition, ToolSpec, arguments_text, get_tool_spec, tool
from .executor import ToolExecutor
from .registry import ToolRegistry

__all__ = [
    "ToolCall",
    "ToolDefinition",
    "ToolExecutor",
    "ToolRegistry",
    "ToolSpec",
    "arguments_text",
    "get_tool_spec",
    "tool",
]
