"""统一的请求与结果数据模型。

本模块定义了对话链路中在 Provider 与 RelayEngine 之间共享的标准数据结构：

- ChatMessage: 一条发给 Provider 的消息（system/user/assistant）。
- ChatRequest: 单次对话的出站请求（系统消息 + 有界历史 + 新的用户消息）。
- ChatResult: 非流式响应解析后的统一结果。

Provider 适配器（如 ChatCompletionsClient）只依赖这些模型，
并负责在各自的 API JSON 和这些模型之间做转换。
"""

from dataclasses import dataclass, replace
from typing import Literal, List, Tuple, Dict

from pet_core.domain.conversation import Turn


# LLM 消息角色类型（与 OpenAI 兼容接口的 role 字段对应）
Role = Literal["system", "user", "assistant"]


@dataclass
class ChatMessage:
    """一条对话消息，既可用于请求，也可用于响应。"""

    role: Role
    content: str

    def to_payload(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ChatRequest:
    """一次完整的出站请求，每次对话新建，不会被保留。

    ContextBuilder 负责从会话快照构造本结构；Provider 适配层
    负责把它转换成 chat/completions 的 JSON 请求体。
    """

    system_message: str
    prior_turns: Tuple[Turn, ...]
    user_message: str
    model: str
    stream: bool = True
    temperature: float = 0.7

    def to_messages(self) -> List[ChatMessage]:
        msgs = [ChatMessage(role="system", content=self.system_message)]
        for turn in self.prior_turns:
            msgs.append(ChatMessage(role=turn.role, content=turn.content))
        msgs.append(ChatMessage(role="user", content=self.user_message))
        return msgs

    def as_non_streaming(self) -> "ChatRequest":
        """内容完全相同、仅关闭流式的副本（用于兜底请求）。"""

        return replace(self, stream=False)


@dataclass
class ChatChoice:
    """单个候选回答（目前通常只用 index=0 的一条）。"""

    index: int
    message: ChatMessage


@dataclass
class ChatResult:
    """一次非流式调用的最终结果。

    - provider: Provider 名（如 "openai"）。
    - model: 实际使用的模型 ID。
    - choices: 一个或多个候选回答。
    """

    provider: str
    model: str
    choices: List[ChatChoice]

    @property
    def text(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""
