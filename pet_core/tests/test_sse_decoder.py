import json
import random

from pet_core.domain.events import DeltaEvent
from pet_core.streaming.sse_decoder import SseDecoder, decode_stream


def _frame(content):
    return "data: " + json.dumps({"choices": [{"index": 0, "delta": {"content": content}}]}, ensure_ascii=False) + "\n\n"


STREAM = (
    ": keep-alive comment\n"
    + _frame("你好")
    + "event: message\n"
    + _frame("，我是团子")
    + "data: {not json}\n\n"
    + 'data: {"choices": [{"index": 0, "delta": {"role": "assistant"}}]}\n\n'
    + _frame("喵～")
    + "data: [DONE]\n"
).encode("utf-8")

EXPECTED = [
    DeltaEvent.delta("你好"),
    DeltaEvent.delta("，我是团子"),
    DeltaEvent.delta("喵～"),
    DeltaEvent.done(),
]


def test_decode_basic_scenario():
    raw = b'data: {"choices":[{"delta":{"content":"Hi"}}]}\n\ndata: [DONE]\n'
    assert list(decode_stream([raw])) == [DeltaEvent.delta("Hi"), DeltaEvent.done()]


def test_decode_whole_stream():
    assert list(decode_stream([STREAM])) == EXPECTED


def test_decode_is_chunk_boundary_invariant():
    # 任意两段切分（包括切在多字节字符中间）
    for cut in range(1, len(STREAM)):
        assert list(decode_stream([STREAM[:cut], STREAM[cut:]])) == EXPECTED
    # 逐字节
    assert list(decode_stream([STREAM[i:i + 1] for i in range(len(STREAM))])) == EXPECTED
    # 随机切分
    rng = random.Random(7)
    for _ in range(50):
        cuts = sorted(rng.sample(range(1, len(STREAM)), 6))
        bounds = [0] + cuts + [len(STREAM)]
        chunks = [STREAM[a:b] for a, b in zip(bounds, bounds[1:])]
        assert list(decode_stream(chunks)) == EXPECTED


def test_decode_crlf_lines():
    raw = _frame("a").replace("\n", "\r\n").encode() + b"data: [DONE]\r\n"
    for cut in range(1, len(raw)):
        assert list(decode_stream([raw[:cut], raw[cut:]])) == [DeltaEvent.delta("a"), DeltaEvent.done()]


def test_decode_final_text_accumulates():
    decoder = SseDecoder()
    events = decoder.feed(STREAM)
    assert events == EXPECTED
    assert decoder.final_text == "你好，我是团子喵～"
    assert decoder.done
    assert decoder.skipped == 2


def test_done_stops_consuming_input():
    consumed = []

    def chunks():
        for chunk in [_frame("x").encode(), b"data: [DONE]\n", _frame("late").encode()]:
            consumed.append(chunk)
            yield chunk

    assert list(decode_stream(chunks())) == [DeltaEvent.delta("x"), DeltaEvent.done()]
    assert len(consumed) == 2


def test_feed_after_done_is_ignored():
    decoder = SseDecoder()
    decoder.feed(b"data: [DONE]\n")
    assert decoder.feed(_frame("late").encode()) == []
    assert decoder.finish() == []
    assert decoder.final_text == ""


def test_implicit_done_at_end_of_stream():
    events = list(decode_stream([_frame("a").encode(), _frame("b").encode()]))
    assert events == [DeltaEvent.delta("a"), DeltaEvent.delta("b"), DeltaEvent.done()]


def test_unterminated_last_line_is_flushed():
    raw = b'data: {"choices":[{"delta":{"content":"tail"}}]}'
    assert list(decode_stream([raw])) == [DeltaEvent.delta("tail"), DeltaEvent.done()]


def test_malformed_lines_are_skipped():
    raw = (
        b"data: [1, 2]\n"
        b'data: {"choices": []}\n'
        b'data: {"choices": [{"delta": {"content": 3}}]}\n'
        b'data: {"choices": [{"delta": {"content": ""}}]}\n'
        b"data:\n"
        b"garbage\n"
        b'data:{"choices":[{"delta":{"content":"ok"}}]}\n'
    )
    decoder = SseDecoder()
    assert decoder.feed(raw) == [DeltaEvent.delta("ok")]
    assert decoder.skipped == 5
    assert decoder.finish() == [DeltaEvent.done()]


def test_empty_stream_yields_only_done():
    assert list(decode_stream([])) == [DeltaEvent.done()]
    assert list(decode_stream([b"", b"\n\n"])) == [DeltaEvent.done()]


def test_invalid_utf8_does_not_abort_stream():
    raw = b'data: {"choices":[{"delta":{"content":"a\xff"}}]}\n' + _frame("b").encode()
    events = list(decode_stream([raw]))
    assert [e.kind for e in events] == ["delta", "delta", "done"]
    assert events[0].text == "a\ufffd"
