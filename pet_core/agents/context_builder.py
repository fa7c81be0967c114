"""出站请求构造。

系统消息 = 固定基础指令 + 空行 + 人设文本（人设为空时只有基础指令）；
历史只取最近 max_pairs 轮（最多 2*max_pairs 条），按时间正序，最旧的在前。
"""

from typing import Sequence

from pet_core.domain.conversation import Turn
from pet_core.domain.models import ChatRequest
from pet_core.prompts import BASE_SYSTEM_PROMPT


class ContextBuilder:
    def __init__(self, max_pairs: int, base_instruction: str = BASE_SYSTEM_PROMPT):
        self._max_pairs = max(0, max_pairs)
        self._base_instruction = base_instruction

    def system_message(self, persona: str) -> str:
        persona = (persona or "").strip()
        if not persona:
            return self._base_instruction
        return f"{self._base_instruction}\n\n{persona}"

    def bounded_history(self, turns: Sequence[Turn]) -> tuple:
        if self._max_pairs == 0:
            return ()
        return tuple(turns[-2 * self._max_pairs:])

    def build(
        self,
        user_text: str,
        persona: str,
        turns: Sequence[Turn],
        *,
        model: str,
        stream: bool = True,
        temperature: float = 0.7,
    ) -> ChatRequest:
        return ChatRequest(
            system_message=self.system_message(persona),
            prior_turns=self.bounded_history(turns),
            user_message=user_text,
            model=model,
            stream=stream,
            temperature=temperature,
        )
