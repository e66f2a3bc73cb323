"""工具注册表。

register() 通过反射函数签名找到唯一参数的 dataclass 类型，生成参数 JSON Schema，
并以工具名为键保存 ToolDefinition。同名工具后注册的覆盖先注册的（保留原位置）。
"""

import inspect
import typing
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from agent_kit.domain.exceptions import ToolError
from agent_kit.infrastructure.logging.logger import logger
from agent_kit.schema import generate_schema, is_structure
from agent_kit.schema.descriptors import resolve_annotations

from .definitions import ToolDefinition, get_tool_spec


class ToolRegistry:
    def __init__(self) -> None:
        self._tools: Dict[str, ToolDefinition] = {}

    def register(
        self,
        fn: Callable[..., Any],
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> ToolDefinition:
        """注册一个工具函数。

        名称/描述/元数据优先取显式参数，其次取 @tool 标记；描述都缺省时使用 docstring 首段。

        Raises:
            ToolError: 函数既没有 @tool 标记也没有显式名称；参数个数不是 1；
                参数没有类型注解；注解不是 dataclass 类型。
        """

        spec = get_tool_spec(fn)
        if spec is None and not name:
            raise ToolError(
                code="TOOL_NOT_MARKED",
                message=f"Function {_callable_name(fn)} must be decorated with @tool or registered with a name",
            )
        tool_name = name or spec.name
        if description is None:
            description = spec.description if spec and spec.description else _doc_summary(fn)
        if metadata is None:
            metadata = spec.metadata if spec else {}

        parameter_type = _parameter_type(fn, tool_name)
        definition = ToolDefinition(
            name=tool_name,
            description=description,
            parameters=generate_schema(parameter_type),
            handler=fn,
            parameter_type=parameter_type,
            metadata=dict(metadata),
        )
        if tool_name in self._tools:
            logger.debug("Replacing tool", extra={"extra": {"tool_name": tool_name}})
        self._tools[tool_name] = definition
        logger.debug(
            "Registered tool",
            extra={"extra": {"tool_name": tool_name, "parameter_type": parameter_type.__qualname__}},
        )
        return definition

    def register_many(self, fns: Iterable[Callable[..., Any]]) -> None:
        for fn in fns:
            self.register(fn)

    def get(self, name: str) -> ToolDefinition:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolError(code="TOOL_NOT_FOUND", message=f"Tool '{name}' not found", tool_name=name) from None

    def list_all(self) -> Dict[str, ToolDefinition]:
        return dict(self._tools)

    def to_provider_format(self) -> List[Dict[str, Any]]:
        return [definition.to_provider_format() for definition in self._tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def _parameter_type(fn: Callable[..., Any], tool_name: str) -> type:
    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError) as exc:
        raise ToolError(
            code="TOOL_SIGNATURE_ERROR",
            message=f"Cannot inspect signature of tool '{tool_name}': {exc}",
            tool_name=tool_name,
        ) from exc

    params = list(signature.parameters.values())
    if len(params) != 1:
        raise ToolError(
            code="TOOL_SIGNATURE_ERROR",
            message=f"Tool '{tool_name}' must have exactly one parameter, got {len(params)}",
            tool_name=tool_name,
        )
    param = params[0]

    annotation = _resolved_hints(fn).get(param.name, param.annotation)
    if annotation is inspect.Parameter.empty:
        raise ToolError(
            code="TOOL_SIGNATURE_ERROR",
            message=f"Tool '{tool_name}' parameter must have a type hint",
            tool_name=tool_name,
        )
    if not is_structure(annotation):
        raise ToolError(
            code="TOOL_SIGNATURE_ERROR",
            message=f"Tool '{tool_name}' parameter must be a dataclass type, got {annotation!r}",
            tool_name=tool_name,
        )
    return annotation


def _resolved_hints(fn: Callable[..., Any]) -> Dict[str, Any]:
    target = fn
    if not (inspect.isfunction(fn) or inspect.ismethod(fn)):
        target = getattr(fn, "__call__", fn)
    try:
        return typing.get_type_hints(target)
    except (NameError, TypeError):
        pass
    # 比如返回值注解引用了不存在的名字：只丢弃解析失败的那一项
    globalns = getattr(inspect.unwrap(target), "__globals__", {})
    return resolve_annotations(getattr(target, "__annotations__", None) or {}, globalns)


def _doc_summary(fn: Callable[..., Any]) -> str:
    doc = inspect.getdoc(fn) or ""
    return doc.split("\n\n", 1)[0].strip()


def _callable_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or repr(fn)
