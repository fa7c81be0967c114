"""对话事件模型。

- DeltaEvent: 一次对话过程中发给调用方的事件（delta / error / done）。
  每次对话以且仅以一个 error 或 done 结束，之前可有零到多个 delta。
- CompletionOutcome: 流式阶段与兜底阶段统一的结果类型，RelayEngine
  只按 ok / text / error 处理，不关心结果来自哪条路径。
"""

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional


EventKind = Literal["delta", "error", "done"]
OutcomeSource = Literal["stream", "fallback"]


@dataclass(frozen=True)
class DeltaEvent:
    kind: EventKind
    text: str = ""

    @classmethod
    def delta(cls, text: str) -> "DeltaEvent":
        return cls(kind="delta", text=text)

    @classmethod
    def error(cls, message: str) -> "DeltaEvent":
        return cls(kind="error", text=message)

    @classmethod
    def done(cls) -> "DeltaEvent":
        return cls(kind="done")

    def to_wire(self) -> Dict[str, Any]:
        """转换为发给 UI 层的消息：{delta} / {error} / {done: true}。"""

        if self.kind == "delta":
            return {"delta": self.text}
        if self.kind == "error":
            return {"error": self.text}
        return {"done": True}


@dataclass(frozen=True)
class CompletionOutcome:
    source: OutcomeSource
    text: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, source: OutcomeSource, message: str) -> "CompletionOutcome":
        return cls(source=source, error=message)
