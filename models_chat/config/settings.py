"""配置管理模块。

支持从初始化参数、环境变量、.env 以及 YAML 配置文件加载配置，
优先级依次降低。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INFERENCE_URL = "https://models.inference.ai.azure.com/chat/completions"
DEFAULT_CATALOG_URL = "https://api.catalog.azureml.ms/asset-gallery/v1.0/models"


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 models_chat.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("MODELS_CHAT_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "models_chat.yaml",
        Path.home() / ".config" / "models-chat" / "config.yaml",
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


class Settings(BaseSettings):
    """运行时配置。"""

    # ---- 认证 ----
    github_token: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("MODELS_CHAT_TOKEN", "GITHUB_TOKEN", "github_token"),
        description="推理端点使用的 Bearer 凭据",
    )

    # ---- 端点 ----
    inference_url: str = Field(
        default=DEFAULT_INFERENCE_URL,
        description="chat/completions 端点完整 URL",
    )
    catalog_url: str = Field(
        default=DEFAULT_CATALOG_URL,
        description="模型目录查询 URL",
    )
    http_timeout: float = Field(default=30.0, ge=1.0, description="HTTP 超时时间（秒）")

    # ---- 终端输出 ----
    token_delay_ms: int = Field(
        default=10,
        ge=0,
        le=1000,
        description="输出到终端时每个增量之间的停顿（毫秒），模拟打字效果",
    )

    # ---- 日志 ----
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("github_token")
    @classmethod
    def strip_token(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unsupported log level {v!r}")
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


def load_settings(**overrides: Any) -> Settings:
    """构造一份新的配置，overrides 优先级最高。"""

    return Settings(**overrides)


settings = load_settings()
