"""LLM Provider 集成层。

该包下的模块负责：
- 定义 Provider 抽象接口 (base)。
- 维护 Provider 预设（基础 URL、默认模型）(registry)。
- 提供 OpenAI 兼容 chat/completions 的具体实现 (chat_client)。
"""

from typing import Optional

from pet_core.config.settings import settings
from pet_core.providers.base import ProviderClient
from pet_core.providers.chat_client import ChatCompletionsClient
from pet_core.providers.registry import get_provider_config


def create_provider(name: Optional[str] = None) -> ProviderClient:
    """根据名称创建 Provider 实例，默认取配置中的 provider。"""

    provider_name = (name or getattr(settings, "provider", None) or "openai").lower()
    return ChatCompletionsClient(settings, get_provider_config(provider_name))
