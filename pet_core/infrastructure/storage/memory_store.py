"""进程内会话历史存储。

实现 domain.conversation.ConversationStore 协议：

- append_exchange: 一问一答成对写入，任一方为空时拒绝写入；
- snapshot: 返回不可变的元组快照，读者之间互不影响；
- clear: 开始新会话。

所有读写都在同一把锁内完成，调用方永远看不到只写入一半的轮次。
"""

import threading
from typing import List, Tuple

from pet_core.domain.conversation import ConversationStore, Turn
from pet_core.domain.exceptions import BusinessError


class InMemoryConversationStore(ConversationStore):
    """进程内会话历史，随进程退出而丢失。"""

    def __init__(self):
        self._turns: List[Turn] = []
        self._lock = threading.Lock()

    def append_exchange(self, user_text: str, assistant_text: str) -> None:
        if not user_text or not assistant_text:
            raise BusinessError(code="STORE_WRITE_ERROR", message="exchange must have both user and assistant text")
        pair = [Turn(role="user", content=user_text), Turn(role="assistant", content=assistant_text)]
        with self._lock:
            self._turns.extend(pair)

    def snapshot(self) -> Tuple[Turn, ...]:
        with self._lock:
            return tuple(self._turns)

    def clear(self) -> None:
        with self._lock:
            self._turns.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._turns)
