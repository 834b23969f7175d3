"""Serialized delivery of completion callbacks."""

import sys
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, TypeVar

from weboperations.models import Result

T = TypeVar("T")

Completion = Callable[[Result[Any]], None]


class CallbackContext:
    """Single-threaded context on which all completions are delivered.

    Work may finish on any queue or transport thread; posting its completion
    here means callers observe results one at a time, in the order they were
    posted.
    """

    def __init__(self, *, name: str = "weboperations.callbacks", debug: bool = False) -> None:
        self._name = name
        self._debug = debug
        self._thread: threading.Thread | None = None
        self._executor = ThreadPoolExecutor(
            max_workers=1,
            thread_name_prefix=name,
            initializer=self._bind_thread,
        )

    def _bind_thread(self) -> None:
        self._thread = threading.current_thread()

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[weboperations:callbacks] {message}", file=sys.stderr)

    @property
    def is_current(self) -> bool:
        """True when called from the callback thread."""
        return threading.current_thread() is self._thread

    def post(self, fn: Callable[..., Any], *args: Any) -> Future[Any]:
        """Schedule `fn(*args)` on the callback thread.

        After `shutdown()` the callback runs inline on the calling thread, so
        work finishing late still delivers its completion.
        """
        try:
            return self._executor.submit(self._invoke, fn, *args)
        except RuntimeError:
            self._log_debug("Callback context closed, delivering inline")
            future: Future[Any] = Future()
            self._invoke(fn, *args)
            future.set_result(None)
            return future

    def _invoke(self, fn: Callable[..., Any], *args: Any) -> None:
        try:
            fn(*args)
        except Exception as e:
            self._log_debug(f"Callback {getattr(fn, '__name__', fn)!r} raised: {e!r}")

    def deliver(
        self,
        future: Future[T],
        result: Result[T],
        completion: Completion | None = None,
    ) -> None:
        """Resolve `future` with `result`, then invoke `completion`, on the callback thread."""
        self.post(resolve_future, future, result, completion)

    def flush(self, timeout: float | None = None) -> None:
        """Block until every callback posted so far has run."""
        self.post(_noop).result(timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the callback thread after already-posted callbacks have run."""
        # Joining the callback thread from itself would deadlock.
        if self.is_current:
            wait = False
        self._executor.shutdown(wait=wait)


def resolve_future(future: Future[Any], result: Result[Any], completion: Completion | None) -> None:
    if not future.done():
        if result.error is not None:
            future.set_exception(result.error)
        else:
            future.set_result(result.value)
    if completion is not None:
        completion(result)


def _noop() -> None:
    pass
