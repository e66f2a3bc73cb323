"""Provider 配置。

所有内置 Provider 都提供 OpenAI 兼容的 chat/completions 端点，差别只在于
基础 URL、API Key 所在的配置项，以及可选的模型别名（别名 -> 厂商实际模型 ID）。
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping


@dataclass
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    api_key_setting: str
    base_url_setting: str
    model_aliases: Dict[str, str] = field(default_factory=dict)

    def resolve_model(self, model: str) -> str:
        """别名映射为厂商模型 ID，未配置别名时原样返回。"""

        return self.model_aliases.get(model, model)


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    api_key_setting="openai_api_key",
    base_url_setting="openai_base_url",
)

KIMI_CONFIG = ProviderConfig(
    name="kimi",
    base_url="https://api.moonshot.cn/v1",
    api_key_setting="kimi_api_key",
    base_url_setting="kimi_base_url",
    model_aliases={"ide-chat": "kimi-k2-turbo-preview"},
)

GLM_CONFIG = ProviderConfig(
    name="glm",
    base_url="https://open.bigmodel.cn/api/paas/v4",
    api_key_setting="glm_api_key",
    base_url_setting="glm_base_url",
    model_aliases={"ide-chat": "glm-4.6"},
)

DEEPSEEK_CONFIG = ProviderConfig(
    name="deepseek",
    base_url="https://api.deepseek.com/v1",
    api_key_setting="deepseek_api_key",
    base_url_setting="deepseek_base_url",
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openai": OPENAI_CONFIG,
    "kimi": KIMI_CONFIG,
    "glm": GLM_CONFIG,
    "deepseek": DEEPSEEK_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
