"""
Running blocking backend calls without freezing the Tk event loop.

A runner is any callable ``runner(fn, on_success, on_error)``. The Tk runner
executes ``fn`` on a worker thread and delivers the outcome on the Tk thread
by polling with ``widget.after``; ``run_inline`` does it all synchronously.
"""
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]


def run_inline(fn: Callable[[], Any], on_success: Callback, on_error: Callback) -> None:
    try:
        result = fn()
    except Exception as e:
        on_error(e)
        return
    on_success(result)


class TkRunner:
    def __init__(self, widget, executor: Optional[ThreadPoolExecutor] = None, poll_ms: int = 50):
        self.widget = widget
        self.poll_ms = poll_ms
        self._executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="clinic-io")

    def __call__(self, fn: Callable[[], Any], on_success: Callback, on_error: Callback) -> None:
        self._poll(self._executor.submit(fn), on_success, on_error)

    def _poll(self, fut: Future, on_success: Callback, on_error: Callback) -> None:
        if not fut.done():
            self.widget.after(self.poll_ms, lambda: self._poll(fut, on_success, on_error))
            return
        exc = fut.exception()
        if exc is not None:
            logger.error("background call failed: %s", exc)
            on_error(exc)
        else:
            on_success(fut.result())

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
