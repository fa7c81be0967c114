"""SSE 流解码器。

把 chat/completions 流式响应的原始字节（任意切分，不保证与事件边界对齐）
增量解码为 DeltaEvent 序列：

    data: {"choices":[{"delta":{"content":"Hi"}}]}
    data: [DONE]

- 字节先经过增量 UTF-8 解码器，跨块被截断的多字节字符会留到下一块再拼；
- 按 "\\n" 切行（去掉行尾 "\\r"，兼容 "\\r\\n"），最后一段不完整的行留在缓冲区；
- 单行解析失败只记录 debug 日志并跳过，绝不中断整个流；
- 收到 [DONE] 后发出 done，之后的输入全部忽略；
- 流结束但没有 [DONE] 时，finish() 补发一个 done。

同样的字节无论怎样切块，得到的事件序列都相同。
"""

import codecs
import json
import logging
from typing import Any, Iterable, Iterator, List

from pet_core.domain.events import DeltaEvent
from pet_core.domain.exceptions import DecodeSkip
from pet_core.infrastructure.logging.logger import logger


DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


class SseDecoder:
    def __init__(self):
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._pieces: List[str] = []
        self._done = False
        self.skipped = 0

    @property
    def done(self) -> bool:
        return self._done

    @property
    def final_text(self) -> str:
        return "".join(self._pieces)

    def feed(self, chunk: bytes) -> List[DeltaEvent]:
        if self._done or not chunk:
            return []
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._process_lines(lines)

    def finish(self) -> List[DeltaEvent]:
        """输入结束：冲刷残留字节与最后一行，必要时补发 done。"""

        if self._done:
            return []
        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        events = self._process_lines([tail]) if tail else []
        if not self._done:
            self._done = True
            events.append(DeltaEvent.done())
        return events

    def _process_lines(self, lines: List[str]) -> List[DeltaEvent]:
        events: List[DeltaEvent] = []
        for raw in lines:
            line = raw.rstrip("\r").strip()
            if not line or not line.startswith(DATA_PREFIX):
                continue
            data = line[len(DATA_PREFIX):].strip()
            if data == DONE_SENTINEL:
                self._done = True
                events.append(DeltaEvent.done())
                break
            try:
                text = self._extract_delta(data)
            except DecodeSkip as e:
                self.skipped += 1
                logger.log(logging.DEBUG, "Skipped SSE line", extra={"extra": {"reason": e.message}})
                continue
            self._pieces.append(text)
            events.append(DeltaEvent.delta(text))
        return events

    @staticmethod
    def _extract_delta(data: str) -> str:
        """取 choices[0].delta.content；任何不符合预期的情况都抛 DecodeSkip。"""

        try:
            payload: Any = json.loads(data)
        except json.JSONDecodeError as e:
            raise DecodeSkip(code="BAD_JSON", message=str(e))
        try:
            content = payload["choices"][0]["delta"]["content"]
        except (KeyError, IndexError, TypeError):
            raise DecodeSkip(code="NO_DELTA", message="missing choices[0].delta.content")
        if not isinstance(content, str) or not content:
            raise DecodeSkip(code="EMPTY_DELTA", message="empty delta content")
        return content


def decode_stream(chunks: Iterable[bytes]) -> Iterator[DeltaEvent]:
    """惰性、单次的解码：遇到 done 后立即停止消费 chunks。"""

    decoder = SseDecoder()
    for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
        if decoder.done:
            return
    yield from decoder.finish()
