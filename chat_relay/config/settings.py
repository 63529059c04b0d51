"""配置管理模块。

支持从环境变量、.env 以及 config.yaml 加载配置。
字段名与部署环境中的变量名一致（大小写不敏感），例如：
AZURE_API_KEY、AZURE_ENDPOINT、AZ_URL、OPENAI_API_MODEL。
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
    explicit = os.getenv("RELAY_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if path in seen:
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


class RelaySettings(BaseSettings):
    """中继服务配置。"""

    # ---- Azure OpenAI ----
    azure_api_key: Optional[str] = Field(default=None, description="Azure OpenAI API 密钥")
    azure_endpoint: Optional[str] = Field(
        default=None,
        description="Azure 资源地址，例如 https://xxx.openai.azure.com",
    )
    az_url: Optional[str] = Field(
        default=None,
        description="完整的 chat/completions 地址，设置后优先于 azure_endpoint",
    )
    azure_api_version: str = Field(default="2024-05-01-preview", description="API 版本")
    azure_deployment: str = Field(default="gpt-4o", description="部署名")
    openai_api_model: Optional[str] = Field(
        default=None,
        description="请求体中的模型 ID，缺省时使用部署名",
    )
    openai_api_disable_debug: bool = Field(
        default=False,
        description="关闭后不再记录上游原始响应",
    )

    # ---- 通用 ----
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")
    log_dir: str = Field(default="logs", description="日志目录")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("azure_api_key")
    @classmethod
    def validate_api_key(cls, v: Optional[str]) -> Optional[str]:
        if v and len(v) < 10:
            raise ValueError("API key seems too short")
        return v

    @field_validator("azure_endpoint", "az_url", "openai_api_model")
    @classmethod
    def blank_as_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

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


settings = RelaySettings()

