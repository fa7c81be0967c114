"""按 Deadline 限制阻塞网络调用的总耗时。

httpx 的 timeout 只约束单次连接/单次读取，不约束整个请求：服务端每隔一会儿
发一点数据，请求就能一直拖下去。这里把真正的网络读取放到工作线程里，
调用方线程每次最多等到 Deadline 到期（或被 cancel()），之后立即抛出
RelayTimeoutError，不再等待阻塞中的读取返回。

工作线程按需推进：调用方每要一个元素，工作线程才 next() 一次，不会提前读取。
调用方停止迭代后，工作线程在当前读取返回时关闭数据源、释放连接。
"""

import queue
import threading
from typing import Any, Callable, Iterator, Tuple, TypeVar

from pet_core.streaming.deadline import Deadline


T = TypeVar("T")

POLL_INTERVAL = 0.05

_NEXT = "next"
_STOP = "stop"


def iterate_within(
    deadline: Deadline,
    produce: Callable[[], Iterator[T]],
    poll_interval: float = POLL_INTERVAL,
) -> Iterator[T]:
    """在工作线程中迭代 produce() 的结果，按 deadline 把元素逐个交给调用方。

    produce 抛出的异常会原样在调用方线程重新抛出。
    """

    requests: "queue.Queue[str]" = queue.Queue()
    results: "queue.Queue[Tuple[str, Any]]" = queue.Queue()

    def worker() -> None:
        source = None
        try:
            while requests.get() == _NEXT:
                try:
                    if source is None:
                        source = iter(produce())
                    results.put(("item", next(source)))
                except StopIteration:
                    results.put(("end", None))
                    return
                except Exception as e:
                    results.put(("error", e))
                    return
        finally:
            close = getattr(source, "close", None)
            if close is not None:
                close()

    threading.Thread(target=worker, name="pet-http", daemon=True).start()
    try:
        while True:
            requests.put(_NEXT)
            kind, value = _wait(results, deadline, poll_interval)
            if kind == "end":
                return
            if kind == "error":
                raise value
            yield value
    finally:
        requests.put(_STOP)


def call_within(deadline: Deadline, fn: Callable[[], T], poll_interval: float = POLL_INTERVAL) -> T:
    """在工作线程中执行一次 fn()，最多等到 deadline 到期。"""

    def produce() -> Iterator[T]:
        yield fn()

    results = iterate_within(deadline, produce, poll_interval)
    try:
        return next(results)
    finally:
        results.close()


def _wait(results: "queue.Queue[Tuple[str, Any]]", deadline: Deadline, poll_interval: float) -> Tuple[str, Any]:
    while True:
        try:
            return results.get(timeout=min(poll_interval, deadline.remaining()))
        except queue.Empty:
            deadline.check()
