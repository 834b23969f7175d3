"""Operation queues with a concurrency bound and suspension."""

import os
import sys
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor

from weboperations.operations.base import BaseOperation

# Same default as ThreadPoolExecutor.
DEFAULT_MAX_CONCURRENT = min(32, (os.cpu_count() or 1) + 4)


class OperationQueue:
    """Ordered work list backed by a thread pool.

    An operation holds one concurrency slot from `start()` until it finishes,
    so `max_concurrent=1` gives a strictly sequential queue even when
    operations finish asynchronously. With `max_concurrent=None` the bound is
    the thread pool's default worker count.

    Args:
        name: Queue name, used for worker threads and debug output.
        max_concurrent: Maximum number of operations in flight.
        executor: Optional executor to run operations on. Owned executors are
            shut down by `close()`.
        debug: Enable debug logging to stderr.
    """

    def __init__(
        self,
        name: str = "",
        *,
        max_concurrent: int | None = None,
        executor: ThreadPoolExecutor | None = None,
        debug: bool = False,
    ) -> None:
        if max_concurrent is not None and max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.name = name
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_concurrent, thread_name_prefix=name or "weboperations.queue"
        )
        self._max_concurrent = max_concurrent or DEFAULT_MAX_CONCURRENT
        self._debug = debug
        self._lock = threading.Lock()
        self._pending: deque[BaseOperation] = deque()
        self._running: set[BaseOperation] = set()
        self._suspended = False
        self._closed = False

    def __repr__(self) -> str:
        return (
            f"<OperationQueue name={self.name!r} max_concurrent={self._max_concurrent} "
            f"pending={self.pending_count} running={self.running_count}>"
        )

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[weboperations:queue:{self.name}] {message}", file=sys.stderr)

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def suspended(self) -> bool:
        return self._suspended

    @suspended.setter
    def suspended(self, value: bool) -> None:
        with self._lock:
            self._suspended = value
        self._log_debug("Suspended" if value else "Resumed")
        if not value:
            self._schedule()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def running_count(self) -> int:
        return len(self._running)

    @property
    def operation_count(self) -> int:
        with self._lock:
            return len(self._pending) + len(self._running)

    def add(self, operation: BaseOperation) -> None:
        """Enqueue an operation for execution."""
        operation._mark_enqueued()
        operation._add_finish_hook(self._on_finished)
        with self._lock:
            closed = self._closed
            if not closed:
                self._pending.append(operation)

        if closed:
            self._log_debug(f"Queue closed, cancelling {operation!r}")
            operation.cancel()
            operation.start()
            return
        self._schedule()

    def cancel_all(self) -> None:
        """Cancel every operation.

        Pending operations finish right away without executing. Operations
        already running are only flagged.
        """
        with self._lock:
            pending = list(self._pending)
            self._pending.clear()
            running = list(self._running)

        self._log_debug(f"Cancelling {len(pending)} pending, {len(running)} running")
        for operation in running:
            operation.cancel()
        for operation in pending:
            operation.cancel()
            operation.start()

    def close(self) -> None:
        """Cancel all work and release an owned executor."""
        with self._lock:
            self._closed = True
        self.cancel_all()
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def _schedule(self) -> None:
        to_start: list[BaseOperation] = []
        with self._lock:
            while (
                self._pending
                and not self._suspended
                and len(self._running) < self._max_concurrent
            ):
                operation = self._pending.popleft()
                self._running.add(operation)
                to_start.append(operation)

        for operation in to_start:
            try:
                self._executor.submit(operation.start)
            except RuntimeError as e:
                # Executor already shut down.
                operation.finish(error=e)

    def _on_finished(self, operation: BaseOperation) -> None:
        with self._lock:
            self._running.discard(operation)
        self._schedule()
