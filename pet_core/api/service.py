"""对外 API 服务模块。

提供给 UI 层调用的简化函数接口：

- send_chat(text, on_delta): 发送一条消息，事件以 {delta}/{error}/{done} 字典回调；
- set_action_listener(cb): 注册宠物动作回调，收到 {"actions": [...]}；
- get_greeting(): 读取开场白；
- reset_conversation(): 清空当前会话历史。
"""

import threading
from typing import Any, Callable, Dict, Optional

from pet_core.agents.relay_engine import ActionSink, RelayConfig, RelayEngine
from pet_core.config.settings import settings
from pet_core.domain.conversation import ConversationStore
from pet_core.infrastructure.logging.logger import logger
from pet_core.infrastructure.storage.memory_store import InMemoryConversationStore
from pet_core.prompts import load_greeting, load_persona
from pet_core.providers import create_provider


BUSY = "busy"

_store: Optional[ConversationStore] = None
_engine: Optional[RelayEngine] = None
_action_listener: Optional[ActionSink] = None
_send_lock = threading.Lock()


def _forward_actions(payload: Dict[str, Any]) -> None:
    if _action_listener is not None:
        _action_listener(payload)


def get_default_engine() -> RelayEngine:
    """获取默认的 RelayEngine 实例（单例，整个进程共用一个会话）。"""
    global _store, _engine
    if _store is None:
        _store = InMemoryConversationStore()
    if _engine is None:
        _engine = RelayEngine(
            store=_store,
            provider_client=create_provider(),
            config=RelayConfig(
                max_history_pairs=settings.max_history_pairs,
                deadline_seconds=settings.request_deadline,
                temperature=settings.temperature,
                model=settings.model,
            ),
            persona=load_persona(settings.persona_file),
            action_sink=_forward_actions,
        )
    return _engine


def set_action_listener(callback: Optional[ActionSink]) -> None:
    """注册（或以 None 取消）宠物动作回调。"""
    global _action_listener
    _action_listener = callback


def send_chat(text: str, on_delta: Callable[[Dict[str, Any]], None]) -> None:
    """发送一条用户消息，并把本次对话的事件逐个回调给 on_delta。

    - 去掉首尾空白后为空：不发请求，也不回调任何事件；
    - 已有对话在进行：只回调一次 {"error": "busy"}。
    """
    text = (text or "").strip()
    if not text:
        return
    if not _send_lock.acquire(blocking=False):
        on_delta({"error": BUSY})
        return
    try:
        engine = get_default_engine()
        for event in engine.send(text):
            on_delta(event.to_wire())
    except Exception as e:
        logger.error(f"Chat failed: {e}", extra={"extra": {"error": str(e)}})
        raise
    finally:
        _send_lock.release()


def get_greeting() -> Dict[str, str]:
    """读取开场白，返回 {"greeting": text}，没有时为空字符串。"""
    return {"greeting": load_greeting(settings.greeting_file)}


def reset_conversation() -> None:
    """清空当前会话历史。"""
    get_default_engine().reset()
