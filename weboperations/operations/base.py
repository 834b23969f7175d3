"""Base class for units of work run on WebOperations queues."""

import threading
from collections.abc import Callable
from concurrent.futures import Future
from enum import Enum
from typing import Any

from weboperations._internal.callbacks import CallbackContext, Completion, resolve_future
from weboperations.models import Result


class OperationState(str, Enum):
    NOT_STARTED = "not_started"
    EXECUTING = "executing"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class BaseOperation:
    """Cancellable unit of work with a single completion.

    Create your own operations by subclassing and overriding `main()`. The
    operation stays in flight until `finish()` is called, so `main()` may
    return early and finish later from a network callback. See
    `BasicGetOperation` for an example.

    `finish()` is effective once. The completion receives exactly one
    `Result` and `future` is resolved with the same outcome; both happen on
    the callback context of the queue the operation was submitted to.
    """

    def __init__(self, completion: Completion | None = None) -> None:
        self.completion = completion
        self.future: Future[Any] = Future()
        self._lock = threading.Lock()
        self._callbacks: CallbackContext | None = None
        self._finish_hooks: list[Callable[["BaseOperation"], None]] = []
        self._started = False
        self._executing = False
        self._finished = False
        self._cancelled = False
        self._enqueued = False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} state={self.state.value}>"

    # =========================================================================
    # State
    # =========================================================================

    @property
    def state(self) -> OperationState:
        with self._lock:
            if self._finished:
                return OperationState.FINISHED
            if self._executing:
                return OperationState.EXECUTING
            if self._cancelled:
                return OperationState.CANCELLED
            return OperationState.NOT_STARTED

    @property
    def is_executing(self) -> bool:
        return self._executing

    @property
    def is_finished(self) -> bool:
        return self._finished

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def main(self) -> None:
        """Perform the work. Must eventually call `finish()`."""
        raise NotImplementedError(f"{self.__class__.__name__} must implement main()")

    def start(self) -> None:
        """Run the operation.

        A cancelled operation finishes immediately with no value and no error,
        without ever executing. Exceptions escaping `main()` finish the
        operation with that error.
        """
        with self._lock:
            if self._started or self._finished:
                return
            self._started = True
            run = not self._cancelled
            self._executing = run

        if not run:
            self.finish()
            return

        try:
            self.main()
        except Exception as e:
            self.finish(error=e)

    def finish(self, value: Any = None, error: BaseException | None = None) -> None:
        """Deliver the outcome and mark the operation finished.

        Only the first call has any effect.
        """
        with self._lock:
            if self._finished:
                return
            self._executing = False
            self._finished = True
            hooks = list(self._finish_hooks)

        self._deliver(Result(value=value, error=error))
        for hook in hooks:
            hook(self)

    def cancel(self) -> None:
        """Mark the operation cancelled.

        Not-yet-started work will finish without executing. Work already in
        `main()` keeps running; subclasses may poll `is_cancelled`.
        """
        with self._lock:
            self._cancelled = True

    # =========================================================================
    # Queue integration
    # =========================================================================

    def _attach(self, callbacks: CallbackContext) -> None:
        if self._callbacks is None:
            self._callbacks = callbacks

    def _mark_enqueued(self) -> None:
        with self._lock:
            rejected = self._enqueued or self._started or self._finished
            if not rejected:
                self._enqueued = True
        if rejected:
            raise ValueError(f"{self!r} was already added to a queue or finished")

    def _add_finish_hook(self, hook: Callable[["BaseOperation"], None]) -> None:
        self._finish_hooks.append(hook)

    def _deliver(self, result: Result[Any]) -> None:
        if self._callbacks is not None:
            self._callbacks.deliver(self.future, result, self.completion)
        else:
            resolve_future(self.future, result, self.completion)


class FunctionOperation(BaseOperation):
    """Operation that runs a plain callable and finishes with its return value."""

    def __init__(self, fn: Callable[[], Any], completion: Completion | None = None) -> None:
        super().__init__(completion)
        self._fn = fn

    def main(self) -> None:
        self.finish(self._fn())
