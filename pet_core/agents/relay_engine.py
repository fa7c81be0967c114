"""对话中继引擎。

一次 send() 就是一次完整的请求/响应周期：

1. 检查凭证，缺失时直接返回 error，不发任何请求；
2. 用 ContextBuilder 从会话快照构造出站请求；
3. 创建 Deadline（默认 30 秒），作为流式与兜底请求共用的取消令牌；
4. 流式请求的 delta 逐个转发给调用方；
5. 流式阶段没有任何内容时，交给 FallbackController 发一次非流式请求；
6. 成功后成对写入会话历史，提取动作发给 action_sink，最后发出 done；
7. 任何失败都只发一个 error，会话历史保持不变。

同一个 RelayEngine 同一时间只应有一个 send() 在进行，串行化由调用方负责。
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generator, Iterator, Optional, Tuple
from uuid import uuid4
import time
import logging

from pet_core.agents.action_extractor import extract_actions
from pet_core.agents.context_builder import ContextBuilder
from pet_core.agents.fallback import FallbackController
from pet_core.domain.conversation import ConversationStore, Turn
from pet_core.domain.events import CompletionOutcome, DeltaEvent
from pet_core.domain.exceptions import ConfigError, RelayTimeoutError, TransportError
from pet_core.domain.models import ChatRequest
from pet_core.infrastructure.logging.logger import logger
from pet_core.providers.base import ProviderClient
from pet_core.streaming.deadline import Deadline


MISSING_CREDENTIAL = "missing credential"
MAX_ERROR_CHARS = 500

ActionSink = Callable[[Dict[str, Any]], None]


@dataclass
class RelayConfig:
    max_history_pairs: int = 10
    deadline_seconds: float = 30.0
    temperature: float = 0.7
    model: Optional[str] = None  # 为空时使用 provider 的默认模型
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)


class RelayEngine:
    def __init__(
        self,
        store: ConversationStore,
        provider_client: ProviderClient,
        config: Optional[RelayConfig] = None,
        persona: str = "",
        action_sink: Optional[ActionSink] = None,
    ):
        self._store = store
        self._provider_client = provider_client
        self._config = config or RelayConfig()
        self._context = ContextBuilder(self._config.max_history_pairs)
        self._fallback = FallbackController(provider_client)
        self.persona = persona
        self.action_sink = action_sink
        self._active_deadline: Optional[Deadline] = None

    def history(self) -> Tuple[Turn, ...]:
        return self._store.snapshot()

    def reset(self) -> None:
        """清空会话历史，开始新的会话。"""
        self._store.clear()
        logger.log(logging.INFO, "Conversation reset", extra={"extra": {}})

    def cancel(self) -> None:
        """取消正在进行的对话；该对话会以 error("cancelled") 结束。"""
        if self._active_deadline is not None:
            self._active_deadline.cancel()

    def send(self, user_text: str) -> Iterator[DeltaEvent]:
        """执行一次对话，产出若干 delta 与恰好一个 error/done。

        调用方需保证 user_text 去掉首尾空白后非空。
        """
        start_time = time.time()
        log_ctx: Dict[str, Any] = {
            "trace_id": f"tr-{uuid4().hex}",
            "provider": getattr(self._provider_client, "name", "unknown"),
        }

        if not self._provider_client.configured:
            self._log(logging.WARNING, "Missing credential, request skipped", log_ctx)
            yield DeltaEvent.error(MISSING_CREDENTIAL)
            return

        turns = self._store.snapshot()
        req = self._context.build(
            user_text,
            self.persona,
            turns,
            model=self._config.model or getattr(self._provider_client, "model", ""),
            temperature=self._config.temperature,
        )
        self._log(
            logging.INFO,
            "Calling provider (stream)",
            log_ctx,
            model=req.model,
            prior_turns=len(req.prior_turns),
            trimmed=len(turns) - len(req.prior_turns),
        )

        deadline = Deadline(self._config.deadline_seconds, clock=self._config.clock)
        self._active_deadline = deadline
        try:
            outcome = yield from self._stream_phase(req, deadline, log_ctx)
            if outcome.ok and not outcome.text:
                outcome = self._fallback.run(req, deadline, log_ctx)
                if outcome.ok:
                    yield DeltaEvent.delta(outcome.text)
        finally:
            self._active_deadline = None

        elapsed = round(time.time() - start_time, 2)
        if not outcome.ok:
            self._log(
                logging.WARNING,
                "Exchange failed",
                log_ctx,
                source=outcome.source,
                error=outcome.error,
                elapsed_seconds=elapsed,
            )
            yield DeltaEvent.error(outcome.error or "unknown error")
            return

        self._store.append_exchange(user_text, outcome.text)
        self._log(
            logging.INFO,
            "Completed exchange",
            log_ctx,
            source=outcome.source,
            reply_chars=len(outcome.text),
            elapsed_seconds=elapsed,
        )
        self._dispatch_actions(outcome.text, log_ctx)
        yield DeltaEvent.done()

    def _stream_phase(
        self,
        req: ChatRequest,
        deadline: Deadline,
        log_ctx: Dict[str, Any],
    ) -> Generator[DeltaEvent, None, CompletionOutcome]:
        """流式阶段：转发 delta，返回（而非产出）本阶段的 CompletionOutcome。"""

        pieces = []
        stream = self._provider_client.chat_stream(req, deadline)
        try:
            for event in stream:
                if event.kind == "delta":
                    pieces.append(event.text)
                    yield event
                elif event.kind == "done":
                    break
                else:
                    return CompletionOutcome.failed("stream", self._truncate(event.text))
        except RelayTimeoutError as e:
            return CompletionOutcome.failed("stream", e.message)
        except ConfigError:
            return CompletionOutcome.failed("stream", MISSING_CREDENTIAL)
        except TransportError as e:
            self._log(
                logging.ERROR,
                "Stream request failed",
                log_ctx,
                error_code=e.code,
                http_status=e.http_status,
                error=e.message,
            )
            return CompletionOutcome.failed("stream", self._truncate(e.message))
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()
        return CompletionOutcome(source="stream", text="".join(pieces))

    def _dispatch_actions(self, text: str, log_ctx: Dict[str, Any]) -> None:
        actions = extract_actions(text)
        if not actions or self.action_sink is None:
            return
        self._log(logging.INFO, "Forwarding pet actions", log_ctx, action_count=len(actions))
        try:
            self.action_sink({"actions": actions})
        except Exception as e:
            self._log(logging.ERROR, "Action sink failed", log_ctx, error=str(e))

    @staticmethod
    def _truncate(message: str) -> str:
        message = message or "request failed"
        if len(message) <= MAX_ERROR_CHARS:
            return message
        return message[:MAX_ERROR_CHARS] + "..."

    @staticmethod
    def _log(level: int, message: str, log_ctx: Dict[str, Any], **fields: Any) -> None:
        payload = dict(log_ctx)
        payload.update(fields)
        logger.log(level, message, extra={"extra": payload})
