"""OpenAI 兼容协议的 Provider 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 chat/completions 的 HTTP 请求体（messages / tools / response_format）。
3. 调用 HTTP 接口并处理网络/API 异常。
4. 将响应 JSON 解析为统一的 ChatResult / ChatMessage 结构（含工具调用）。

工具调用的 arguments 保持为原始 JSON 文本，由 Agent 负责解码并在失败时报错。
"""

from typing import Any, Dict, List, Optional

import httpx

from agent_kit.domain.exceptions import ApiError, NetworkError, RateLimitError, ValidationError
from agent_kit.domain.models import ChatChoice, ChatMessage, ChatRequest, ChatResult, ChatUsage
from agent_kit.providers.registry import OPENAI_CONFIG, ProviderConfig
from agent_kit.tools.definitions import ToolCall, arguments_text


class OpenAICompatibleClient:
    """OpenAI 兼容接口客户端。

    - name: Provider 名称（供日志/调试使用），取自 ProviderConfig。
    - chat: 对外统一调用入口，返回 ChatResult。
    """

    def __init__(self, settings, config: ProviderConfig = OPENAI_CONFIG):
        # Settings 里包含 api_key、base_url 覆盖、超时等配置
        self._settings = settings
        self._config = config
        self.name = config.name

    def chat(self, req: ChatRequest) -> ChatResult:
        """执行一次非流式对话调用。

        步骤：
        1. 读取 API Key 与基础 URL。
        2. 构造 HTTP 请求 payload。
        3. 发送请求并捕获网络错误/限流/服务端错误。
        4. 使用统一的解析函数构造 ChatResult。
        """

        api_key = getattr(self._settings, self._config.api_key_setting, None)
        if not api_key:
            # 配置缺失走 ValidationError，方便上层统一处理
            raise ValidationError(
                code="MISSING_API_KEY",
                message=f"{self._config.api_key_setting.upper()} not set",
            )
        payload = self._build_payload(req)
        base = getattr(self._settings, self._config.base_url_setting, None) or self._config.base_url
        try:
            with httpx.Client(timeout=self._settings.http_timeout, trust_env=False) as client:
                resp = client.post(
                    f"{base.rstrip('/')}/chat/completions",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {api_key}",
                        "Content-Type": "application/json",
                    },
                )
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接超时等
            raise NetworkError(code="NETWORK_ERROR", message=str(e), provider=self.name) from e
        if resp.status_code == 429:
            # 限流错误交给上层做重试/退避
            raise RateLimitError(code="RATE_LIMIT", message=f"{self.name} rate limit", http_status=429)
        if resp.status_code >= 400:
            # 其他 HTTP 错误统一包装为 ApiError
            raise ApiError(code="API_ERROR", message=resp.text, http_status=resp.status_code, provider=self.name)
        data = resp.json()
        return self._parse_response(data, req)

    def _build_payload(self, req: ChatRequest) -> dict:
        """将 ChatRequest 转成 chat/completions 请求 JSON。"""

        payload: Dict[str, Any] = {
            "model": self._config.resolve_model(req.model),
            "messages": [self._message_to_payload(m) for m in req.messages],
        }
        if req.temperature is not None:
            payload["temperature"] = req.temperature
        if req.max_tokens is not None:
            payload["max_tokens"] = req.max_tokens
        if req.tools:
            payload["tools"] = req.tools
        if req.response_format:
            payload["response_format"] = req.response_format
        return payload

    def _parse_response(self, data: dict, req: ChatRequest) -> ChatResult:
        """将原始响应 JSON 解析为统一的 ChatResult。"""

        choices: list[ChatChoice] = []
        for i, ch in enumerate(data.get("choices") or []):
            msg = ch.get("message") or {}
            cm = self._build_chat_message(msg)
            choices.append(ChatChoice(index=ch.get("index", i), message=cm, finish_reason=ch.get("finish_reason")))
        usage_raw = data.get("usage") or {}
        usage: Optional[ChatUsage] = None
        if usage_raw:
            usage = ChatUsage(
                prompt_tokens=usage_raw.get("prompt_tokens", 0),
                completion_tokens=usage_raw.get("completion_tokens", 0),
                total_tokens=usage_raw.get("total_tokens", 0),
            )
        return ChatResult(provider=self.name, model=req.model, choices=choices, usage=usage, raw=data)

    def _build_chat_message(self, payload: Dict[str, Any]) -> ChatMessage:
        """将单条厂商 message 转换为 ChatMessage。

        同时把 tool_calls 字段解析为统一的 ToolCall 列表，
        方便 Agent 后续执行工具循环。
        """

        tool_calls: List[ToolCall] = []
        for idx, call in enumerate(payload.get("tool_calls") or []):
            func = call.get("function") or {}
            tool_calls.append(
                ToolCall(
                    id=call.get("id") or f"tool_call_{idx}",
                    name=func.get("name") or call.get("name") or "",
                    arguments=arguments_text(func.get("arguments")),
                )
            )

        # 部分厂商在旧模型上仍会返回 function_call 字段
        function_call = payload.get("function_call")
        if function_call:
            tool_calls.append(
                ToolCall(
                    id=function_call.get("id") or "function_call",
                    name=function_call.get("name") or "",
                    arguments=arguments_text(function_call.get("arguments")),
                )
            )
        return ChatMessage(
            role=payload.get("role") or "assistant",
            content=payload.get("content"),
            tool_calls=tool_calls or None,
            tool_call_id=payload.get("tool_call_id"),
        )

    def _message_to_payload(self, message: ChatMessage) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"role": message.role, "content": message.content}
        if message.tool_calls:
            payload["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in message.tool_calls
            ]
        if message.tool_call_id:
            payload["tool_call_id"] = message.tool_call_id
        return payload
