"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护各 Provider 的基础 URL 与模型别名 (registry)。
- 提供 OpenAI 兼容协议的具体实现 (openai_client)。
"""

from typing import Optional

from agent_kit.config.settings import settings
from agent_kit.domain.exceptions import ValidationError
from agent_kit.providers.base import ProviderClient
from agent_kit.providers.openai_client import OpenAICompatibleClient
from agent_kit.providers.registry import get_provider_config


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取配置中的 default_provider。"""

    provider_name = name or getattr(settings, "default_provider", "openai")
    try:
        config = get_provider_config(provider_name)
    except KeyError as exc:
        raise ValidationError(code="UNKNOWN_PROVIDER", message=f"Unknown provider: {provider_name!r}") from exc
    return OpenAICompatibleClient(settings, config)


__all__ = ["OpenAICompatibleClient", "ProviderClient", "create_provider"]
