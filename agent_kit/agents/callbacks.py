"""Agent 观察者回调。

Agent.run() 在固定节点按顺序通知回调列表，每个方法只接收一个 context dict：

- on_run_start: model, input, has_output_type
- on_generation_start: iteration, messages, model
- on_generation_end: iteration, finish_reason, content, tool_calls, usage
- on_tool_call_start: tool_name, arguments, tool_call_id
- on_tool_call_end: tool_name, arguments, result, tool_call_id
- on_run_end: output, total_iterations
- on_error: error, exception

回调只能观察，不能影响控制流；回调自身抛出的异常会被记录日志后忽略。
"""

import json
import logging
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union
from uuid import uuid4

from agent_kit.config.settings import settings
from agent_kit.infrastructure.logging.logger import logger


class AgentCallback:
    """回调基类，所有方法默认什么也不做，子类按需覆盖。"""

    def on_run_start(self, context: Dict[str, Any]) -> None:
        pass

    def on_run_end(self, context: Dict[str, Any]) -> None:
        pass

    def on_generation_start(self, context: Dict[str, Any]) -> None:
        pass

    def on_generation_end(self, context: Dict[str, Any]) -> None:
        pass

    def on_tool_call_start(self, context: Dict[str, Any]) -> None:
        pass

    def on_tool_call_end(self, context: Dict[str, Any]) -> None:
        pass

    def on_error(self, context: Dict[str, Any]) -> None:
        pass


class LoggingCallback(AgentCallback):
    """把每个事件写入 agent_kit logger（JSON 格式由 logger 的 formatter 决定）。"""

    def __init__(self, level: int = logging.INFO):
        self._level = level

    def on_run_start(self, context: Dict[str, Any]) -> None:
        self._emit("agent.run.start", model=context.get("model"), has_output_type=context.get("has_output_type"))

    def on_run_end(self, context: Dict[str, Any]) -> None:
        self._emit(
            "agent.run.end",
            total_iterations=context.get("total_iterations"),
            output_preview=_summary(_to_text(context.get("output"))),
        )

    def on_generation_start(self, context: Dict[str, Any]) -> None:
        self._emit(
            "agent.generation.start",
            iteration=context.get("iteration"),
            message_count=len(context.get("messages") or []),
        )

    def on_generation_end(self, context: Dict[str, Any]) -> None:
        usage = context.get("usage")
        self._emit(
            "agent.generation.end",
            iteration=context.get("iteration"),
            finish_reason=context.get("finish_reason"),
            tool_call_count=len(context.get("tool_calls") or []),
            total_tokens=getattr(usage, "total_tokens", None),
        )

    def on_tool_call_start(self, context: Dict[str, Any]) -> None:
        self._emit(
            "agent.tool.start",
            tool_name=context.get("tool_name"),
            tool_call_id=context.get("tool_call_id"),
        )

    def on_tool_call_end(self, context: Dict[str, Any]) -> None:
        self._emit(
            "agent.tool.end",
            tool_name=context.get("tool_name"),
            tool_call_id=context.get("tool_call_id"),
            result_preview=_summary(_to_text(context.get("result"))),
        )

    def on_error(self, context: Dict[str, Any]) -> None:
        logger.error("agent.error", extra={"extra": {"error": context.get("error")}})

    def _emit(self, message: str, **fields: Any) -> None:
        logger.log(self._level, message, extra={"extra": fields})


class TraceCallback(AgentCallback):
    """把单次 run 的关键信息写入 JSON 文件，便于审计。

    每次 on_run_start 都会开始一份新的 trace（文件名为 trace_id），
    之后每个事件都会立即落盘，run 中途失败时文件里也保留已完成的步骤。
    """

    def __init__(self, trace_dir: Optional[Union[str, Path]] = None, trace_id: Optional[str] = None):
        self.trace_dir = Path(trace_dir or settings.trace_dir)
        self._fixed_trace_id = trace_id
        self.trace_id: Optional[str] = None
        self.path: Optional[Path] = None
        self.data: Dict[str, Any] = {}

    def on_run_start(self, context: Dict[str, Any]) -> None:
        self.trace_id = self._fixed_trace_id or f"run-{uuid4().hex}"
        self.trace_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.trace_dir / f"{self.trace_id}.json"
        self.data = {
            "trace_id": self.trace_id,
            "model": context.get("model"),
            "has_output_type": context.get("has_output_type", False),
            "input_preview": _summary(_to_text(context.get("input")), limit=400),
            "started_at": _utcnow(),
            "finished_at": None,
            "final_status": None,
            "final_output_preview": None,
            "total_iterations": None,
            "steps": [],
        }
        self._flush()

    def on_generation_end(self, context: Dict[str, Any]) -> None:
        usage = context.get("usage")
        self._append_step(
            {
                "type": "llm",
                "iteration": context.get("iteration"),
                "timestamp": _utcnow(),
                "finish_reason": context.get("finish_reason"),
                "has_tool_calls": bool(context.get("tool_calls")),
                "response_summary": _summary(context.get("content")),
                "total_tokens": getattr(usage, "total_tokens", None),
            }
        )

    def on_tool_call_end(self, context: Dict[str, Any]) -> None:
        self._append_step(
            {
                "type": "tool",
                "timestamp": _utcnow(),
                "tool_name": context.get("tool_name"),
                "tool_call_id": context.get("tool_call_id"),
                "args": _trim_args(context.get("arguments") or {}),
                "result_summary": _summary(_to_text(context.get("result"))),
            }
        )

    def on_run_end(self, context: Dict[str, Any]) -> None:
        self._finalize("ok", _to_text(context.get("output")), context.get("total_iterations"))

    def on_error(self, context: Dict[str, Any]) -> None:
        self._finalize("error", context.get("error") or "", None)

    def _append_step(self, entry: Dict[str, Any]) -> None:
        if self.path is None:
            return
        self.data["steps"].append(entry)
        self._flush()

    def _finalize(self, status: str, final_text: str, total_iterations: Optional[int]) -> None:
        if self.path is None:
            return
        self.data["finished_at"] = _utcnow()
        self.data["final_status"] = status
        self.data["final_output_preview"] = (final_text or "")[:400]
        self.data["total_iterations"] = total_iterations
        self._flush()

    def _flush(self) -> None:
        self.path.write_text(json.dumps(self.data, ensure_ascii=False, indent=2, default=str), encoding="utf-8")


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, Enum):
        value = value.value
    try:
        return json.dumps(value, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return str(value)


def _summary(text: Optional[str], limit: int = 160) -> str:
    if not text:
        return ""
    text = text.strip()
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def _trim_args(args: Dict[str, Any]) -> Dict[str, Any]:
    trimmed: Dict[str, Any] = {}
    for key, value in args.items():
        if isinstance(value, str) and len(value) > 200:
            trimmed[key] = value[:200] + "..."
        else:
            trimmed[key] = value
    return trimmed
