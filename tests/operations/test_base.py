"""Tests for BaseOperation."""

import threading

import pytest

from weboperations._internal.callbacks import CallbackContext
from weboperations.models import Result
from weboperations.operations.base import BaseOperation, FunctionOperation, OperationState


class RecordingOperation(BaseOperation):
    """Operation that records whether main() ran and finishes with a value."""

    def __init__(self, value=None, **kwargs):
        super().__init__(**kwargs)
        self.value = value
        self.ran = False

    def main(self):
        self.ran = True
        self.finish(self.value)


class PendingOperation(BaseOperation):
    """Operation that stays executing until finished from outside."""

    def main(self):
        pass


class TestOperationLifecycle:
    """Tests for start/finish/cancel state transitions."""

    def test_initial_state(self):
        """Should start out not started."""
        operation = RecordingOperation()
        assert operation.state is OperationState.NOT_STARTED
        assert not operation.is_executing
        assert not operation.is_finished
        assert not operation.is_cancelled

    def test_start_runs_main_and_finishes(self):
        """Should run main() and deliver its value."""
        results = []
        operation = RecordingOperation("done", completion=results.append)
        operation.start()
        assert operation.ran is True
        assert operation.state is OperationState.FINISHED
        assert operation.future.result(timeout=1) == "done"
        assert results == [Result(value="done")]

    def test_executing_until_finished(self):
        """Should stay executing after main() returns until finish() is called."""
        operation = PendingOperation()
        operation.start()
        assert operation.state is OperationState.EXECUTING
        operation.finish("late")
        assert operation.state is OperationState.FINISHED
        assert operation.future.result(timeout=1) == "late"

    def test_cancel_before_start_skips_main(self):
        """Cancelling a not-yet-started operation finishes it with no value and no error."""
        results = []
        states = []
        operation = RecordingOperation("never", completion=results.append)
        original_main = operation.main

        def tracking_main():
            states.append(operation.state)
            original_main()

        operation.main = tracking_main
        operation.cancel()
        assert operation.state is OperationState.CANCELLED
        operation.start()

        assert operation.ran is False
        assert states == []
        assert operation.state is OperationState.FINISHED
        assert results == [Result(value=None, error=None)]
        assert operation.future.result(timeout=1) is None

    def test_cancel_while_executing_is_cooperative(self):
        """Cancelling an executing operation only flags it."""
        operation = PendingOperation()
        operation.start()
        operation.cancel()
        assert operation.is_cancelled is True
        assert operation.state is OperationState.EXECUTING
        operation.finish("still delivered")
        assert operation.future.result(timeout=1) == "still delivered"

    def test_finish_is_effective_once(self):
        """Should deliver exactly one result even if finish() is called twice."""
        results = []
        operation = PendingOperation(completion=results.append)
        operation.start()
        operation.finish("first")
        operation.finish("second", error=RuntimeError("ignored"))
        assert results == [Result(value="first")]
        assert operation.future.result(timeout=1) == "first"

    def test_finish_with_error(self):
        """Should fail the future with the given error."""
        operation = PendingOperation()
        operation.start()
        operation.finish(error=ValueError("bad"))
        with pytest.raises(ValueError, match="bad"):
            operation.future.result(timeout=1)

    def test_exception_in_main_finishes_with_error(self):
        """Should turn an exception escaping main() into the operation's error."""

        class Broken(BaseOperation):
            def main(self):
                raise RuntimeError("broken")

        results = []
        operation = Broken(completion=results.append)
        operation.start()
        assert operation.is_finished
        assert isinstance(results[0].error, RuntimeError)

    def test_base_main_not_implemented(self):
        """A bare BaseOperation should finish with NotImplementedError."""
        operation = BaseOperation()
        operation.start()
        with pytest.raises(NotImplementedError):
            operation.future.result(timeout=1)

    def test_start_twice_runs_once(self):
        """Should ignore a second start()."""
        calls = []
        operation = FunctionOperation(lambda: calls.append(1))
        operation.start()
        operation.start()
        assert calls == [1]


class TestCallbackDelivery:
    """Tests for delivery on an attached callback context."""

    def test_completion_runs_on_callback_thread(self):
        """Should deliver the completion on the callback context, not the finishing thread."""
        callbacks = CallbackContext()
        try:
            threads = []
            done = threading.Event()

            def completion(result):
                threads.append(threading.current_thread())
                done.set()

            operation = FunctionOperation(lambda: "ok", completion=completion)
            operation._attach(callbacks)
            operation.start()

            assert done.wait(5)
            assert threads[0] is not threading.current_thread()
            assert operation.future.result(timeout=1) == "ok"
        finally:
            callbacks.shutdown()


class TestFunctionOperation:
    """Tests for FunctionOperation."""

    def test_returns_function_value(self):
        """Should finish with the callable's return value."""
        operation = FunctionOperation(lambda: 7)
        operation.start()
        assert operation.future.result(timeout=1) == 7

    def test_function_error(self):
        """Should finish with the callable's exception."""

        def fail():
            raise KeyError("missing")

        operation = FunctionOperation(fail)
        operation.start()
        with pytest.raises(KeyError):
            operation.future.result(timeout=1)
