"""Agent 执行循环。

一次 run() 的状态流转：

    Starting -> (插入输出 schema 的 system 消息) -> Iterating -> {继续 | 完成 | 失败}

每一轮都把完整消息历史、工具列表（为空时省略）以及结构化输出指令发给模型：

- finish_reason == "stop": 解析最终输出（未配置输出类型时直接返回原文）并结束；
- finish_reason == "tool_calls": 按顺序执行所有工具调用，把结果以 tool 消息追加后进入下一轮；
- 其他 finish_reason: 立即失败。

最多 MAX_ITERATIONS 轮，超过即失败。失败后已追加的消息仍可通过 ``messages`` 查看。
"""

import json
import logging
import time
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from uuid import uuid4

from agent_kit.agents.callbacks import AgentCallback
from agent_kit.config.settings import settings
from agent_kit.domain.exceptions import AgentError, ToolError
from agent_kit.domain.models import ChatMessage, ChatRequest, ChatResult
from agent_kit.infrastructure.logging.logger import logger
from agent_kit.output import parse_output
from agent_kit.prompts import build_output_instruction
from agent_kit.providers.base import ProviderClient
from agent_kit.schema import generate_schema
from agent_kit.tools.definitions import ToolCall
from agent_kit.tools.executor import ToolExecutor
from agent_kit.tools.registry import ToolRegistry

MAX_ITERATIONS = 20

AgentInput = Union[str, Sequence[Union[ChatMessage, Mapping[str, Any]]]]


class Agent:
    def __init__(
        self,
        client: ProviderClient,
        registry: ToolRegistry,
        model: str = "gpt-4o",
        output_type: Optional[type] = None,
        *,
        strict_output: Optional[bool] = None,
    ):
        self._client = client
        self._registry = registry
        self._model = model
        self._output_type = output_type
        self._strict_output = settings.structured_output_strict if strict_output is None else strict_output
        self._executor = ToolExecutor(registry)
        self._messages: List[ChatMessage] = []

    @property
    def model(self) -> str:
        return self._model

    @property
    def output_type(self) -> Optional[type]:
        return self._output_type

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def messages(self) -> List[ChatMessage]:
        """最近一次 run 的消息历史（失败时为失败前的部分历史）。"""

        return list(self._messages)

    def run(self, messages: AgentInput, callbacks: Optional[Sequence[AgentCallback]] = None) -> Any:
        """执行一次 Agent 循环。

        Args:
            messages: 用户输入文本，或者已有的消息序列（ChatMessage 或 OpenAI 风格 dict）。
            callbacks: 观察者回调列表，按顺序通知。

        Returns:
            未配置输出类型时返回模型最终回答的原文；否则返回输出类型的实例。

        Raises:
            SchemaError / ToolError: 原样透传，不做重试；工具结果无法编码为 JSON 时抛 TOOL_RESULT_ERROR。
            AgentError: 无响应、工具参数 JSON 非法、未知 finish_reason、超过最大轮数、输出解析失败。
        """

        observers = list(callbacks or [])
        start_time = time.time()
        log_ctx: Dict[str, Any] = {"run_id": f"run-{uuid4().hex}", "model": self._model}

        self._notify(
            observers,
            "on_run_start",
            {
                "model": self._model,
                "input": messages,
                "has_output_type": self._output_type is not None,
            },
        )
        try:
            output = self._run(messages, observers, log_ctx)
        except Exception as exc:
            self._log(logging.ERROR, "Agent run failed", log_ctx, error=str(exc))
            self._notify(observers, "on_error", {"error": str(exc), "exception": exc})
            raise
        self._log(
            logging.INFO,
            "Agent run completed",
            log_ctx,
            elapsed_seconds=round(time.time() - start_time, 2),
            message_count=len(self._messages),
        )
        return output

    def _run(self, messages: AgentInput, observers: List[AgentCallback], log_ctx: Dict[str, Any]) -> Any:
        self._messages = self._initial_messages(messages)
        if self._output_type is not None:
            schema = generate_schema(self._output_type)
            self._messages.insert(0, ChatMessage(role="system", content=build_output_instruction(schema)))

        iteration = 0
        while iteration < MAX_ITERATIONS:
            iteration += 1
            req = self._build_request()

            self._notify(
                observers,
                "on_generation_start",
                {"iteration": iteration, "messages": list(self._messages), "model": self._model},
            )
            self._log(
                logging.INFO,
                "Calling provider",
                log_ctx,
                iteration=iteration,
                message_count=len(req.messages),
                tool_count=len(req.tools or []),
            )
            result: ChatResult = self._client.chat(req)
            if not result.choices:
                raise AgentError(code="NO_RESPONSE", message="No response from model")

            choice = result.choices[0]
            message = choice.message
            finish_reason = choice.finish_reason
            self._notify(
                observers,
                "on_generation_end",
                {
                    "iteration": iteration,
                    "finish_reason": finish_reason,
                    "content": message.content,
                    "tool_calls": message.tool_calls,
                    "usage": result.usage,
                },
            )

            self._messages.append(
                ChatMessage(role="assistant", content=message.content, tool_calls=message.tool_calls)
            )

            if finish_reason == "stop":
                output = self._parse_output(message.content)
                self._notify(observers, "on_run_end", {"output": output, "total_iterations": iteration})
                return output

            if finish_reason == "tool_calls" and message.tool_calls:
                self._log(
                    logging.INFO,
                    "Executing tool calls",
                    log_ctx,
                    iteration=iteration,
                    call_count=len(message.tool_calls),
                )
                for tool_call in message.tool_calls:
                    self._run_tool_call(tool_call, observers, log_ctx)
                continue

            raise AgentError(
                code="UNEXPECTED_FINISH_REASON",
                message=f"Unexpected finish reason: {finish_reason}",
                finish_reason=finish_reason,
            )

        raise AgentError(code="MAX_ITERATIONS", message=f"Max iterations ({MAX_ITERATIONS}) reached")

    def _build_request(self) -> ChatRequest:
        tools = self._registry.to_provider_format()
        response_format = None
        if self._output_type is not None:
            schema = generate_schema(self._output_type)
            # 只加在请求的 schema 上，system 提示词里的 schema 不带这一项
            schema["additionalProperties"] = False
            response_format = {
                "type": "json_schema",
                "json_schema": {
                    "name": "output",
                    "schema": schema,
                    "strict": self._strict_output,
                },
            }
        return ChatRequest(
            model=self._model,
            messages=list(self._messages),
            tools=tools or None,
            response_format=response_format,
        )

    def _run_tool_call(self, tool_call: ToolCall, observers: List[AgentCallback], log_ctx: Dict[str, Any]) -> None:
        arguments = self._decode_arguments(tool_call)
        self._notify(
            observers,
            "on_tool_call_start",
            {"tool_name": tool_call.name, "arguments": arguments, "tool_call_id": tool_call.id},
        )
        self._log(
            logging.INFO,
            "Tool call received",
            log_ctx,
            tool_name=tool_call.name,
            tool_call_id=tool_call.id,
        )

        result = self._executor.execute(tool_call.name, arguments)

        self._notify(
            observers,
            "on_tool_call_end",
            {
                "tool_name": tool_call.name,
                "arguments": arguments,
                "result": result,
                "tool_call_id": tool_call.id,
            },
        )
        try:
            content = json.dumps(result, ensure_ascii=False, default=_json_default)
        except (TypeError, ValueError) as exc:
            # 非字符串键、循环引用等
            raise ToolError(
                code="TOOL_RESULT_ERROR",
                message=f"Result of tool '{tool_call.name}' is not JSON serializable: {exc}",
                tool_name=tool_call.name,
            ) from exc
        self._log(
            logging.INFO,
            "Tool execution finished",
            log_ctx,
            tool_call_id=tool_call.id,
            result_preview=content[:200],
        )
        self._messages.append(ChatMessage(role="tool", content=content, tool_call_id=tool_call.id))

    @staticmethod
    def _decode_arguments(tool_call: ToolCall) -> Dict[str, Any]:
        try:
            arguments = json.loads(tool_call.arguments)
        except (TypeError, json.JSONDecodeError) as exc:
            raise AgentError(
                code="INVALID_TOOL_ARGUMENTS",
                message=f"Invalid tool call arguments JSON for '{tool_call.name}'",
                tool_name=tool_call.name,
            ) from exc
        if not isinstance(arguments, dict):
            raise AgentError(
                code="INVALID_TOOL_ARGUMENTS",
                message=f"Tool call arguments for '{tool_call.name}' must be a JSON object",
                tool_name=tool_call.name,
            )
        return arguments

    def _parse_output(self, content: Optional[str]) -> Any:
        if self._output_type is None:
            return content
        return parse_output(content, self._output_type)

    @staticmethod
    def _initial_messages(messages: AgentInput) -> List[ChatMessage]:
        if isinstance(messages, str):
            return [ChatMessage(role="user", content=messages)]
        return [m if isinstance(m, ChatMessage) else ChatMessage.from_mapping(m) for m in messages]

    @staticmethod
    def _notify(observers: List[AgentCallback], method: str, context: Dict[str, Any]) -> None:
        for observer in observers:
            handler = getattr(observer, method, None)
            if handler is None:
                continue
            try:
                handler(context)
            except Exception as exc:  # noqa: BLE001 - 回调失败只记录日志
                logger.warning(
                    f"Callback error in {method}",
                    exc_info=True,
                    extra={"extra": {"callback": type(observer).__name__, "error": str(exc)}},
                )

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})


def _json_default(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (set, frozenset, tuple)):
        return list(value)
    return str(value)
