"""Provider 抽象接口。

RelayEngine 不直接依赖 httpx，而是依赖此协议：

- configured: 凭证与端点是否齐全，不齐全时 RelayEngine 不会发起任何请求。
- chat_stream(req, deadline): 流式调用，逐个产出 DeltaEvent（以 done 结束）。
- chat(req, deadline): 非流式调用，返回统一的 ChatResult，用于兜底。

两个方法都接收同一个 Deadline，作为本次对话的取消令牌。
"""

from typing import Iterator, Protocol

from pet_core.domain.events import DeltaEvent
from pet_core.domain.models import ChatRequest, ChatResult
from pet_core.streaming.deadline import Deadline


class ProviderClient(Protocol):
    name: str

    @property
    def configured(self) -> bool:
        ...

    def chat(self, req: ChatRequest, deadline: Deadline) -> ChatResult:
        ...

    def chat_stream(self, req: ChatRequest, deadline: Deadline) -> Iterator[DeltaEvent]:
        ...
