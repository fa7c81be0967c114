from pet_core.agents.context_builder import ContextBuilder
from pet_core.domain.conversation import Turn
from pet_core.infrastructure.storage.memory_store import InMemoryConversationStore
from pet_core.prompts import BASE_SYSTEM_PROMPT


def _store_with_pairs(n):
    store = InMemoryConversationStore()
    for i in range(n):
        store.append_exchange(f"q{i}", f"a{i}")
    return store


def test_system_message_with_and_without_persona():
    builder = ContextBuilder(max_pairs=3, base_instruction="BASE")
    assert builder.system_message("") == "BASE"
    assert builder.system_message("   ") == "BASE"
    assert builder.system_message("我是团子") == "BASE\n\n我是团子"


def test_default_base_instruction():
    req = ContextBuilder(max_pairs=1).build("hi", "", (), model="m")
    assert req.system_message == BASE_SYSTEM_PROMPT


def test_history_is_bounded_to_last_pairs():
    store = _store_with_pairs(8)
    req = ContextBuilder(max_pairs=3).build("new", "", store.snapshot(), model="m")
    assert len(req.prior_turns) == 6
    assert [t.content for t in req.prior_turns] == ["q5", "a5", "q6", "a6", "q7", "a7"]
    assert req.prior_turns[0].role == "user"


def test_history_never_exceeds_two_n_turns():
    builder = ContextBuilder(max_pairs=2)
    for n in range(0, 12):
        req = builder.build("x", "", _store_with_pairs(n).snapshot(), model="m")
        assert len(req.prior_turns) <= 4
        assert len(req.prior_turns) == min(2 * n, 4)


def test_short_history_included_whole():
    store = _store_with_pairs(1)
    req = ContextBuilder(max_pairs=5).build("x", "", store.snapshot(), model="m")
    assert req.prior_turns == (Turn("user", "q0"), Turn("assistant", "a0"))


def test_zero_pairs_means_no_history():
    req = ContextBuilder(max_pairs=0).build("x", "", _store_with_pairs(3).snapshot(), model="m")
    assert req.prior_turns == ()


def test_build_does_not_mutate_store():
    store = _store_with_pairs(4)
    before = store.snapshot()
    ContextBuilder(max_pairs=2).build("x", "persona", store.snapshot(), model="m")
    assert store.snapshot() == before


def test_request_messages_layout():
    store = _store_with_pairs(1)
    req = ContextBuilder(max_pairs=2, base_instruction="BASE").build(
        "你好", "人设", store.snapshot(), model="gpt", temperature=0.2
    )
    assert req.stream is True
    assert [m.to_payload() for m in req.to_messages()] == [
        {"role": "system", "content": "BASE\n\n人设"},
        {"role": "user", "content": "q0"},
        {"role": "assistant", "content": "a0"},
        {"role": "user", "content": "你好"},
    ]
    fallback_req = req.as_non_streaming()
    assert fallback_req.stream is False
    assert fallback_req.to_messages() == req.to_messages()
