"""单次对话的截止时间 / 取消令牌。

Deadline 在请求发出时创建，并同时传给流式请求与兜底请求：

- Provider 用 remaining() 作为 httpx 的超时时间；
- watchdog 在等待工作线程时按 remaining() 计时，到期即调用 check()；
- 每收到一个数据块也调用 check()，过期或被 cancel() 后抛出 RelayTimeoutError。
"""

import time
from typing import Callable

from pet_core.domain.exceptions import RelayTimeoutError


class Deadline:
    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._seconds = seconds
        self._expires_at = clock() + seconds
        self._cancelled = False

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def check(self) -> None:
        if self._cancelled:
            raise RelayTimeoutError(code="CANCELLED", message="cancelled")
        if self.expired:
            raise RelayTimeoutError(code="TIMEOUT", message="timeout", deadline=self._seconds)
