"""流式响应处理。

- sse_decoder: 把 SSE 字节流增量解码为 DeltaEvent。
- deadline: 单次对话的截止时间 / 取消令牌。
- watchdog: 在工作线程里推进阻塞的网络调用，按 Deadline 限制总耗时。
"""

from pet_core.streaming.deadline import Deadline
from pet_core.streaming.sse_decoder import SseDecoder, decode_stream
from pet_core.streaming.watchdog import call_within, iterate_within

__all__ = ["Deadline", "SseDecoder", "call_within", "decode_stream", "iterate_within"]
