"""配置管理模块。

支持从 init 参数、环境变量、.env 以及 config.yaml 加载配置，优先级依次降低。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("AGENT_KIT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class Settings(BaseSettings):
    """agent-kit 配置（使用 Pydantic Settings）。"""

    # ---- Provider 相关配置 ----
    default_provider: str = Field(
        default="openai",
        description="默认使用的 Provider 名称，例如 openai、kimi、glm、deepseek",
    )
    default_model: str = Field(default="gpt-4o", description="create_agent 未指定模型时使用的模型名")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API 密钥")
    openai_base_url: Optional[str] = Field(default=None, description="覆盖 OpenAI API 基础URL")
    kimi_api_key: Optional[str] = Field(default=None, description="Kimi API 密钥")
    kimi_base_url: Optional[str] = Field(default=None, description="覆盖 Kimi API 基础URL")
    glm_api_key: Optional[str] = Field(default=None, description="GLM API 密钥")
    glm_base_url: Optional[str] = Field(default=None, description="覆盖 GLM API 基础URL")
    deepseek_api_key: Optional[str] = Field(default=None, description="DeepSeek API 密钥")
    deepseek_base_url: Optional[str] = Field(default=None, description="覆盖 DeepSeek API 基础URL")
    http_timeout: float = Field(default=60.0, ge=1.0, description="HTTP 超时时间（秒）")

    # ---- Agent 行为 ----
    structured_output_strict: bool = Field(
        default=False,
        description="response_format.json_schema.strict 的取值（schema 本身总会带 additionalProperties=false）",
    )

    # ---- 日志与 trace ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="agent_kit logger 的日志级别")
    log_to_file: bool = Field(default=False, description="是否把 JSON 日志写入 log_dir/agent.log")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容（只保留前 64 个字符）")
    trace_dir: str = Field(default="traces", description="TraceCallback 写入 trace 文件的目录")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("openai_api_key", "kimi_api_key", "glm_api_key", "deepseek_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = Settings()
