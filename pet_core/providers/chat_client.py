"""OpenAI 兼容 chat/completions 适配器。

本模块负责：

1. 接收统一的 ChatRequest。
2. 将其转换为 chat/completions 的 HTTP 请求：
   - URL: {base_url}/chat/completions
   - 认证: Authorization: Bearer <api_key>
   - 请求体: {model, stream, messages: [{role, content}, ...], temperature}
3. 调用 HTTP 接口并把网络/API 异常映射为统一的业务异常。
4. 流式响应交给 SseDecoder 解码为 DeltaEvent；非流式响应解析为 ChatResult。

超时不单独配置：每次请求都以 Deadline 的剩余时间作为 httpx 超时；
真正的网络调用在 watchdog 的工作线程里执行，Deadline 到期或被取消时
调用方立即得到 RelayTimeoutError，不会被阻塞中的读取拖住。
流式读取时每个数据块也会检查一次 Deadline。
"""

import json
from typing import Any, Dict, Iterator, List, Optional

import httpx

from pet_core.config.settings import settings
from pet_core.domain.events import DeltaEvent
from pet_core.domain.exceptions import (
    ApiError,
    ConfigError,
    NetworkError,
    RateLimitError,
    RelayTimeoutError,
)
from pet_core.domain.models import ChatChoice, ChatMessage, ChatRequest, ChatResult
from pet_core.providers.registry import COMPLETIONS_PATH, ProviderConfig, get_provider_config
from pet_core.streaming.deadline import Deadline
from pet_core.streaming.sse_decoder import SseDecoder
from pet_core.streaming.watchdog import call_within, iterate_within


class ChatCompletionsClient:
    """OpenAI 兼容 Provider 客户端实现。

    - name: Provider 名称（供日志/调试使用）。
    - chat_stream / chat: 对外统一调用入口。
    """

    def __init__(self, cfg=settings, provider_cfg: Optional[ProviderConfig] = None):
        # Settings 里包含 api_key、base_url、model 等配置
        self._settings = cfg
        self._provider = provider_cfg or get_provider_config(getattr(cfg, "provider", None) or "openai")
        self.name = self._provider.name

    @property
    def base_url(self) -> str:
        base = getattr(self._settings, "base_url", None) or self._provider.base_url
        return base.rstrip("/")

    @property
    def model(self) -> str:
        return getattr(self._settings, "model", None) or self._provider.default_model

    @property
    def configured(self) -> bool:
        return bool(getattr(self._settings, "api_key", None) and self.base_url)

    # ---- 非流式 ----

    def chat(self, req: ChatRequest, deadline: Deadline) -> ChatResult:
        self._ensure_configured()
        deadline.check()
        payload = self._build_payload(req, stream=False)
        resp = call_within(deadline, lambda: self._post(payload, deadline))
        self._raise_for_status(resp.status_code, resp.text)
        try:
            data = resp.json()
        except ValueError:
            raise ApiError(code="MALFORMED_RESPONSE", message="response body is not JSON")
        if not isinstance(data, dict):
            raise ApiError(code="MALFORMED_RESPONSE", message="response body is not a JSON object")
        return self._parse_response(data, req)

    # ---- 流式 ----

    def chat_stream(self, req: ChatRequest, deadline: Deadline) -> Iterator[DeltaEvent]:
        """执行一次流式调用，逐个 yield DeltaEvent，最后一个一定是 done。

        调用方提前停止迭代、Deadline 过期时，with 语句都会关闭响应。
        """

        self._ensure_configured()
        deadline.check()
        payload = self._build_payload(req, stream=True)
        yield from iterate_within(deadline, lambda: self._stream_events(payload, deadline))

    # ---- 辅助方法 ----

    def _post(self, payload: Dict[str, Any], deadline: Deadline) -> httpx.Response:
        try:
            with httpx.Client(timeout=deadline.remaining(), trust_env=False) as client:
                return client.post(self._url(), json=payload, headers=self._headers())
        except httpx.TimeoutException:
            raise RelayTimeoutError(code="TIMEOUT", message="timeout")
        except httpx.RequestError as e:
            # 网络错误：DNS 失败、连接被拒绝/重置等
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)

    def _stream_events(self, payload: Dict[str, Any], deadline: Deadline) -> Iterator[DeltaEvent]:
        try:
            with httpx.Client(timeout=deadline.remaining(), trust_env=False) as client:
                with client.stream("POST", self._url(), json=payload, headers=self._headers()) as resp:
                    if not 200 <= resp.status_code < 300:
                        resp.read()
                        self._raise_for_status(resp.status_code, resp.text)
                    decoder = SseDecoder()
                    for chunk in resp.iter_bytes():
                        deadline.check()
                        for event in decoder.feed(chunk):
                            yield event
                        if decoder.done:
                            return
                    yield from decoder.finish()
        except httpx.TimeoutException:
            raise RelayTimeoutError(code="TIMEOUT", message="timeout")
        except httpx.RequestError as e:
            raise NetworkError(code="NETWORK_ERROR", message=str(e) or type(e).__name__)

    def _ensure_configured(self) -> None:
        if not self.configured:
            # 配置缺失走 ConfigError，方便上层统一处理
            raise ConfigError(code="MISSING_API_KEY", message="missing credential")

    def _url(self) -> str:
        return f"{self.base_url}{COMPLETIONS_PATH}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._settings.api_key}",
            "Content-Type": "application/json",
        }

    def _build_payload(self, req: ChatRequest, stream: bool) -> Dict[str, Any]:
        return {
            "model": req.model or self.model,
            "stream": stream,
            "messages": [m.to_payload() for m in req.to_messages()],
            "temperature": req.temperature,
        }

    def _raise_for_status(self, status_code: int, body: str) -> None:
        if status_code == 429:
            # 限流单独区分，便于日志统计
            raise RateLimitError(code="RATE_LIMIT", message=f"{self.name} rate limit", http_status=429)
        if not 200 <= status_code < 300:
            raise ApiError(
                code="API_ERROR",
                message=f"HTTP {status_code}: {self._error_detail(body)}",
                http_status=status_code,
            )

    @staticmethod
    def _error_detail(body: str) -> str:
        """尽量取出 {"error": {"message": ...}} 中的可读信息。"""

        try:
            data = json.loads(body)
        except (TypeError, json.JSONDecodeError):
            return body
        if isinstance(data, dict):
            err = data.get("error")
            if isinstance(err, dict) and err.get("message"):
                return str(err["message"])
            if isinstance(err, str):
                return err
        return body

    def _parse_response(self, data: dict, req: ChatRequest) -> ChatResult:
        """将原始响应 JSON 解析为统一的 ChatResult。

        choices 不是数组、某个 choice 或其 message 不是对象时，视为响应格式错误。
        """

        raw_choices = data.get("choices")
        if not isinstance(raw_choices, list):
            raise ApiError(code="MALFORMED_RESPONSE", message="response has no choices array")
        choices: List[ChatChoice] = []
        for i, ch in enumerate(raw_choices):
            msg = ch.get("message") if isinstance(ch, dict) else None
            if not isinstance(msg, dict):
                raise ApiError(code="MALFORMED_RESPONSE", message=f"choice {i} has no message object")
            content = msg.get("content")
            choices.append(
                ChatChoice(
                    index=ch.get("index", i),
                    message=ChatMessage(role="assistant", content=content if isinstance(content, str) else ""),
                )
            )
        return ChatResult(provider=self.name, model=req.model or self.model, choices=choices)
