"""Routing of operations onto the sequential, concurrent and custom queues."""

import sys
import threading
import uuid
from concurrent.futures import Future
from typing import Any

from weboperations._internal.callbacks import CallbackContext, Completion
from weboperations.exceptions import QueueNotFoundError
from weboperations.models import QueueTarget
from weboperations.operations.base import BaseOperation
from weboperations.operations.queue import OperationQueue


class Dispatcher:
    """Holds the built-in queues and the registry of named custom queues.

    The sequential queue runs one operation at a time in submission order.
    The concurrent queue runs operations in parallel, with no ordering
    guarantee. Custom queues are registered by name; registering under an
    existing name cancels and evicts the previous queue.
    """

    def __init__(
        self,
        callbacks: CallbackContext,
        *,
        queue_name_prefix: str = "",
        max_concurrent_operations: int | None = None,
        debug: bool = False,
    ) -> None:
        self._callbacks = callbacks
        self._debug = debug
        instance = uuid.uuid4()
        self.sequential = OperationQueue(
            f"{queue_name_prefix}.{instance}.seq", max_concurrent=1, debug=debug
        )
        self.concurrent = OperationQueue(
            f"{queue_name_prefix}.{instance}.multi",
            max_concurrent=max_concurrent_operations,
            debug=debug,
        )
        self._custom: dict[str, OperationQueue] = {}
        self._lock = threading.Lock()

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[weboperations:dispatcher] {message}", file=sys.stderr)

    @property
    def custom_queue_names(self) -> list[str]:
        with self._lock:
            return list(self._custom)

    def queue(self, name: str) -> OperationQueue:
        """Look up a registered custom queue.

        Raises:
            QueueNotFoundError: If no queue is registered under `name`.
        """
        with self._lock:
            try:
                return self._custom[name]
            except KeyError:
                raise QueueNotFoundError(name) from None

    # =========================================================================
    # Submission
    # =========================================================================

    def submit(
        self,
        operation: BaseOperation,
        target: QueueTarget | str = QueueTarget.SEQUENTIAL,
        completion: Completion | None = None,
    ) -> Future[Any]:
        """Run an operation on the selected queue.

        Args:
            operation: The operation to run.
            target: `QueueTarget.SEQUENTIAL`, `QueueTarget.CONCURRENT`, or
                the name of a registered custom queue.
            completion: Optional callback receiving the operation's `Result`.
                Replaces any completion the operation was created with.

        Returns:
            The operation's future. For an unknown custom queue name it fails
            with `QueueNotFoundError` and the operation is never enqueued.
        """
        if completion is not None:
            operation.completion = completion
        operation._attach(self._callbacks)

        if target is QueueTarget.SEQUENTIAL:
            queue = self.sequential
        elif target is QueueTarget.CONCURRENT:
            queue = self.concurrent
        else:
            try:
                queue = self.queue(target)
            except QueueNotFoundError as e:
                self._log_debug(f"Rejected {operation!r}: {e}")
                operation._mark_enqueued()
                operation.finish(error=e)
                return operation.future

        self._log_debug(f"Adding {operation!r} to {queue.name}")
        queue.add(operation)
        return operation.future

    def add_seq(self, operation: BaseOperation, completion: Completion | None = None) -> Future[Any]:
        """Run an operation on the sequential queue."""
        return self.submit(operation, QueueTarget.SEQUENTIAL, completion)

    def add_multi(self, operation: BaseOperation, completion: Completion | None = None) -> Future[Any]:
        """Run an operation on the concurrent queue."""
        return self.submit(operation, QueueTarget.CONCURRENT, completion)

    # =========================================================================
    # Queue management
    # =========================================================================

    def register_queue(self, name: str, queue: OperationQueue) -> OperationQueue:
        """Install `queue` under `name`, cancelling and evicting any previous one."""
        with self._lock:
            previous = self._custom.get(name)
            self._custom[name] = queue
        if previous is not None and previous is not queue:
            self._log_debug(f"Replacing queue {name!r}")
            previous.close()
        return queue

    def cancel_queue(self, name: str) -> None:
        """Remove and cancel one custom queue. Unknown names are ignored."""
        with self._lock:
            queue = self._custom.pop(name, None)
        if queue is not None:
            self._log_debug(f"Cancelling queue {name!r}")
            queue.close()

    def _all_queues(self) -> list[OperationQueue]:
        with self._lock:
            return [self.sequential, self.concurrent, *self._custom.values()]

    def suspend_all(self, is_suspended: bool) -> None:
        """Suspend or resume dequeuing on every queue."""
        for queue in self._all_queues():
            queue.suspended = is_suspended

    def cancel_all(self) -> None:
        """Cancel every operation on every queue."""
        for queue in self._all_queues():
            queue.cancel_all()

    def close(self) -> None:
        """Cancel everything and shut down all queues."""
        with self._lock:
            custom = list(self._custom.values())
            self._custom.clear()
        for queue in [self.sequential, self.concurrent, *custom]:
            queue.close()
