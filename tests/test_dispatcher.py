"""Tests for Dispatcher."""

import threading
import time

import pytest

from weboperations._internal.callbacks import CallbackContext
from weboperations.dispatcher import Dispatcher
from weboperations.exceptions import QueueNotFoundError
from weboperations.models import QueueTarget
from weboperations.operations.base import BaseOperation, FunctionOperation, OperationState
from weboperations.operations.queue import OperationQueue


class BlockingOperation(BaseOperation):
    """Operation that blocks its worker until released."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.started = threading.Event()
        self.release = threading.Event()

    def main(self):
        self.started.set()
        self.release.wait(5)
        self.finish("released")


@pytest.fixture
def callbacks():
    context = CallbackContext()
    yield context
    context.shutdown()


@pytest.fixture
def dispatcher(callbacks):
    instance = Dispatcher(callbacks, queue_name_prefix="com.test")
    yield instance
    instance.close()


class TestQueues:
    """Tests for the built-in queues."""

    def test_queue_names_use_prefix(self, dispatcher):
        """Should name the queues <prefix>.<uuid>.seq and .multi."""
        assert dispatcher.sequential.name.startswith("com.test.")
        assert dispatcher.sequential.name.endswith(".seq")
        assert dispatcher.concurrent.name.endswith(".multi")

    def test_sequential_queue_is_serial(self, dispatcher):
        """The sequential queue should admit one operation at a time."""
        assert dispatcher.sequential.max_concurrent == 1
        assert dispatcher.concurrent.max_concurrent > 1


class TestSubmit:
    """Tests for Dispatcher.submit()."""

    def test_sequential_completions_in_submission_order(self, dispatcher, callbacks):
        """Completions should be observed in submission order."""
        observed = []
        futures = [
            dispatcher.add_seq(
                FunctionOperation(lambda i=i: i),
                completion=lambda result: observed.append(result.value),
            )
            for i in range(25)
        ]
        for future in futures:
            future.result(timeout=5)
        callbacks.flush(timeout=5)
        assert observed == list(range(25))

    def test_completion_runs_on_callback_context(self, dispatcher, callbacks):
        """Completions should run on the callback thread."""
        on_callback_thread = []
        future = dispatcher.add_multi(
            FunctionOperation(lambda: "ok"),
            completion=lambda result: on_callback_thread.append(callbacks.is_current),
        )
        assert future.result(timeout=5) == "ok"
        callbacks.flush(timeout=5)
        assert on_callback_thread == [True]

    def test_submit_to_custom_queue(self, dispatcher):
        """Should run an operation on a registered custom queue."""
        dispatcher.register_queue("uploads", OperationQueue("uploads"))
        future = dispatcher.submit(FunctionOperation(lambda: "uploaded"), "uploads")
        assert future.result(timeout=5) == "uploaded"

    def test_unknown_custom_queue_fails_without_enqueueing(self, dispatcher, callbacks):
        """Should deliver QueueNotFoundError through the operation's completion."""
        results = []
        operation = FunctionOperation(lambda: "never")
        future = dispatcher.submit(operation, "missing", completion=results.append)

        with pytest.raises(QueueNotFoundError) as exc_info:
            future.result(timeout=5)
        callbacks.flush(timeout=5)

        assert exc_info.value.name == "missing"
        assert len(results) == 1
        assert isinstance(results[0].error, QueueNotFoundError)
        assert operation.state is OperationState.FINISHED
        assert dispatcher.sequential.operation_count == 0
        assert dispatcher.concurrent.operation_count == 0

    def test_rejected_operation_cannot_block_sequential_queue(self, dispatcher):
        """Resubmitting an operation rejected for an unknown queue should fail fast."""
        operation = FunctionOperation(lambda: "never")
        with pytest.raises(QueueNotFoundError):
            dispatcher.submit(operation, "missing").result(timeout=5)

        with pytest.raises(ValueError):
            dispatcher.add_seq(operation)

        assert dispatcher.add_seq(FunctionOperation(lambda: "next")).result(timeout=5) == "next"

    def test_explicit_targets(self, dispatcher):
        """Should accept QueueTarget values."""
        seq = dispatcher.submit(FunctionOperation(lambda: "s"), QueueTarget.SEQUENTIAL)
        multi = dispatcher.submit(FunctionOperation(lambda: "m"), QueueTarget.CONCURRENT)
        assert seq.result(timeout=5) == "s"
        assert multi.result(timeout=5) == "m"


class TestQueueRegistry:
    """Tests for custom queue registration."""

    def test_queue_lookup(self, dispatcher):
        """Should return the registered queue and raise for unknown names."""
        queue = dispatcher.register_queue("images", OperationQueue("images"))
        assert dispatcher.queue("images") is queue
        assert dispatcher.custom_queue_names == ["images"]
        with pytest.raises(QueueNotFoundError):
            dispatcher.queue("videos")

    def test_register_replaces_and_cancels_previous(self, dispatcher):
        """Registering under an existing name should cancel the prior occupant's pending work."""
        old = dispatcher.register_queue("sync", OperationQueue("sync.old", max_concurrent=1))
        old.suspended = True
        pending = FunctionOperation(lambda: "never")
        dispatcher.submit(pending, "sync")

        new = dispatcher.register_queue("sync", OperationQueue("sync.new"))

        assert pending.future.result(timeout=5) is None
        assert pending.is_cancelled is True
        assert dispatcher.queue("sync") is new
        assert dispatcher.submit(FunctionOperation(lambda: "new"), "sync").result(timeout=5) == "new"

    def test_cancel_queue_only_affects_named_queue(self, dispatcher):
        """Should remove and cancel one queue and leave the others alone."""
        a = dispatcher.register_queue("a", OperationQueue("a"))
        dispatcher.register_queue("b", OperationQueue("b"))
        a.suspended = True
        pending = FunctionOperation(lambda: "never")
        a.add(pending)

        dispatcher.cancel_queue("a")

        assert pending.future.result(timeout=5) is None
        assert dispatcher.custom_queue_names == ["b"]
        assert dispatcher.submit(FunctionOperation(lambda: "b"), "b").result(timeout=5) == "b"

    def test_cancel_unknown_queue_is_ignored(self, dispatcher):
        """Should not raise for a name that was never registered."""
        dispatcher.cancel_queue("nothing")


class TestSuspendAndCancelAll:
    """Tests for suspend_all() and cancel_all()."""

    def test_suspend_all_applies_to_every_queue(self, dispatcher):
        """Should suspend sequential, concurrent and custom queues."""
        custom = dispatcher.register_queue("custom", OperationQueue("custom"))
        dispatcher.suspend_all(True)
        assert dispatcher.sequential.suspended
        assert dispatcher.concurrent.suspended
        assert custom.suspended

        operation = FunctionOperation(lambda: "later")
        dispatcher.submit(operation, "custom")
        time.sleep(0.05)
        assert operation.state is OperationState.NOT_STARTED

        dispatcher.suspend_all(False)
        assert operation.future.result(timeout=5) == "later"

    def test_cancel_all_applies_to_every_queue(self, dispatcher):
        """Should cancel pending work everywhere."""
        dispatcher.register_queue("custom", OperationQueue("custom"))
        dispatcher.suspend_all(True)
        operations = [FunctionOperation(lambda: "never") for _ in range(3)]
        dispatcher.add_seq(operations[0])
        dispatcher.add_multi(operations[1])
        dispatcher.submit(operations[2], "custom")

        dispatcher.cancel_all()

        for operation in operations:
            assert operation.future.result(timeout=5) is None
            assert operation.is_cancelled

    def test_cancel_all_does_not_preempt_running(self, dispatcher):
        """Executing operations should run to completion."""
        operation = BlockingOperation()
        dispatcher.add_seq(operation)
        assert operation.started.wait(5)
        dispatcher.cancel_all()
        operation.release.set()
        assert operation.future.result(timeout=5) == "released"
