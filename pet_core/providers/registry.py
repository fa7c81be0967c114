"""Provider 预设配置。

所有预设都是 OpenAI 兼容的 chat/completions 接口，只是基础 URL 与默认模型不同。
配置里的 base_url / model 非空时优先于预设。"""

from dataclasses import dataclass
from typing import Mapping


COMPLETIONS_PATH = "/chat/completions"


@dataclass(frozen=True)
class ProviderConfig:
    """某个 Provider 的整体配置。"""

    name: str
    base_url: str
    default_model: str


OPENAI_CONFIG = ProviderConfig(
    name="openai",
    base_url="https://api.openai.com/v1",
    default_model="gpt-4o-mini",
)

DEEPSEEK_CONFIG = ProviderConfig(
    name="deepseek",
    base_url="https://api.deepseek.com/v1",
    default_model="deepseek-chat",
)

KIMI_CONFIG = ProviderConfig(
    name="kimi",
    base_url="https://api.moonshot.cn/v1",
    default_model="kimi-k2-turbo-preview",
)

# GLM / BigModel
GLM_CONFIG = ProviderConfig(
    name="glm",
    base_url="https://open.bigmodel.cn/api/paas/v4",
    default_model="glm-4.6",
)


PROVIDER_REGISTRY: Mapping[str, ProviderConfig] = {
    "openai": OPENAI_CONFIG,
    "deepseek": DEEPSEEK_CONFIG,
    "kimi": KIMI_CONFIG,
    "glm": GLM_CONFIG,
}


def get_provider_config(name: str) -> ProviderConfig:
    """根据名称获取 ProviderConfig，名称不区分大小写。"""

    key = name.lower()
    for k, cfg in PROVIDER_REGISTRY.items():
        if k.lower() == key:
            return cfg
    raise KeyError(f"Unknown provider: {name!r}")
