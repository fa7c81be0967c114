"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
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
    explicit = os.getenv("PET_CONFIG_FILE")
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


class PetSettings(BaseSettings):
    """配置设置（使用 Pydantic）。"""

    # ---- Provider 相关配置 ----
    provider: str = Field(
        default="openai",
        description="Provider 预设名称，例如 openai、deepseek、kimi、glm",
    )
    api_key: Optional[str] = Field(default=None, description="Bearer 凭证")
    base_url: Optional[str] = Field(
        default=None,
        description="chat/completions 端点的基础 URL，留空则使用 provider 预设",
    )
    model: Optional[str] = Field(default=None, description="模型 ID，留空则使用 provider 预设")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="生成温度")

    # ---- 对话相关配置 ----
    max_history_pairs: int = Field(
        default=10,
        ge=0,
        le=100,
        description="发给模型的历史轮数（一问一答记为一轮）",
    )
    request_deadline: float = Field(
        default=30.0,
        ge=1.0,
        description="单次对话从发出请求起的截止时间（秒），流式与兜底请求共用",
    )
    persona_file: Optional[str] = Field(default=None, description="人设文本文件路径")
    greeting_file: Optional[str] = Field(default=None, description="开场白文本文件路径")

    # ---- 日志 ----
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

    @field_validator("api_key", "base_url", "model", "persona_file", "greeting_file")
    @classmethod
    def blank_as_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        return v.rstrip("/") if v else v

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


settings = PetSettings()
