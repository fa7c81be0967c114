"""Pet Core 顶层包。

该包提供桌面宠物聊天的核心中继实现，
包括配置加载、领域模型、Provider 适配、SSE 流解码、
兜底请求、动作提取与会话历史管理等能力。
"""

from pet_core.agents.relay_engine import RelayConfig, RelayEngine

__all__ = ["RelayConfig", "RelayEngine"]
