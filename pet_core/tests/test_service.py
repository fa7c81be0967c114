from pathlib import Path

from pet_core.agents.relay_engine import RelayEngine
from pet_core.api import service
from pet_core.domain.events import DeltaEvent
from pet_core.infrastructure.storage.memory_store import InMemoryConversationStore


class FakeProvider:
    name = "fake"
    model = "fake-model"
    configured = True

    def __init__(self, events):
        self._events = events
        self.calls = 0

    def chat_stream(self, req, deadline):
        self.calls += 1
        yield from self._events

    def chat(self, req, deadline):
        raise AssertionError("fallback should not be called")


def _install_engine(monkeypatch, events):
    provider = FakeProvider(events)
    store = InMemoryConversationStore()
    engine = RelayEngine(store=store, provider_client=provider, action_sink=service._forward_actions)
    monkeypatch.setattr(service, "_engine", engine)
    monkeypatch.setattr(service, "_store", store)
    return provider, store


def test_send_chat_forwards_wire_messages(monkeypatch):
    _install_engine(monkeypatch, [DeltaEvent.delta("hi"), DeltaEvent.delta(" there"), DeltaEvent.done()])
    received = []
    service.send_chat("  hello  ", received.append)
    assert received == [{"delta": "hi"}, {"delta": " there"}, {"done": True}]
    assert service.get_default_engine().history()[0].content == "hello"


def test_send_chat_ignores_blank_input(monkeypatch):
    provider, _ = _install_engine(monkeypatch, [DeltaEvent.done()])
    received = []
    service.send_chat("   ", received.append)
    assert received == []
    assert provider.calls == 0


def test_send_chat_rejects_overlapping_call(monkeypatch):
    provider, _ = _install_engine(monkeypatch, [DeltaEvent.delta("x"), DeltaEvent.done()])
    received = []
    assert service._send_lock.acquire(blocking=False)
    try:
        service.send_chat("hello", received.append)
    finally:
        service._send_lock.release()
    assert received == [{"error": "busy"}]
    assert provider.calls == 0


def test_actions_reach_listener(monkeypatch):
    _install_engine(monkeypatch, [DeltaEvent.delta('晚安 {"actions":[{"name":"sleep"}]}'), DeltaEvent.done()])
    actions = []
    service.set_action_listener(actions.append)
    try:
        service.send_chat("去睡觉吧", lambda payload: None)
    finally:
        service.set_action_listener(None)
    assert actions == [{"actions": [{"name": "sleep"}]}]


def test_reset_conversation(monkeypatch):
    _, store = _install_engine(monkeypatch, [DeltaEvent.delta("x"), DeltaEvent.done()])
    service.send_chat("hello", lambda payload: None)
    assert len(store) == 2
    service.reset_conversation()
    assert len(store) == 0


def test_get_greeting(monkeypatch, tmp_path: Path):
    greeting = tmp_path / "greeting.txt"
    greeting.write_text("你好呀\n", encoding="utf-8")
    monkeypatch.setattr(service.settings, "greeting_file", str(greeting))
    assert service.get_greeting() == {"greeting": "你好呀"}
    monkeypatch.setattr(service.settings, "greeting_file", str(tmp_path / "missing.txt"))
    assert service.get_greeting() == {"greeting": ""}
