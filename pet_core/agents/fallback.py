"""流式结果为空时的兜底请求。

用相同的请求内容发起一次非流式调用，最多一次，不会再回到流式路径。
"""

import logging
from typing import Any, Dict, Optional

from pet_core.domain.events import CompletionOutcome
from pet_core.domain.exceptions import BusinessError, RelayTimeoutError
from pet_core.domain.models import ChatRequest
from pet_core.infrastructure.logging.logger import logger
from pet_core.providers.base import ProviderClient
from pet_core.streaming.deadline import Deadline


FALLBACK_FAILED = "stream and fallback both failed"


class FallbackController:
    def __init__(self, provider_client: ProviderClient):
        self._provider_client = provider_client

    def run(self, req: ChatRequest, deadline: Deadline, log_ctx: Optional[Dict[str, Any]] = None) -> CompletionOutcome:
        ctx = dict(log_ctx or {})
        logger.log(logging.INFO, "Stream yielded no content, calling fallback", extra={"extra": ctx})
        try:
            result = self._provider_client.chat(req.as_non_streaming(), deadline)
        except RelayTimeoutError as e:
            return CompletionOutcome.failed("fallback", e.message)
        except BusinessError as e:
            # 包括 TransportError 与 ConfigError
            ctx.update(error_code=e.code, error=e.message)
            logger.log(logging.WARNING, "Fallback request failed", extra={"extra": ctx})
            return CompletionOutcome.failed("fallback", FALLBACK_FAILED)
        text = result.text
        if not text:
            logger.log(logging.WARNING, "Fallback returned empty content", extra={"extra": ctx})
            return CompletionOutcome.failed("fallback", FALLBACK_FAILED)
        return CompletionOutcome(source="fallback", text=text)
