from dataclasses import dataclass
from typing import Literal, Protocol, Tuple


TurnRole = Literal["user", "assistant"]


@dataclass(frozen=True)
class Turn:
    role: TurnRole
    content: str


class ConversationStore(Protocol):
    """会话历史存储。

    写入方只有 RelayEngine，且只在一次对话完整成功后成对追加；
    读取方拿到的是不可变快照，不会看到只追加了一半的一问一答。
    """

    def append_exchange(self, user_text: str, assistant_text: str) -> None:
        ...

    def snapshot(self) -> Tuple[Turn, ...]:
        ...

    def clear(self) -> None:
        ...

    def __len__(self) -> int:
        ...
