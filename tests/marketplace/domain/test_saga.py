"""Tests for compensating write sequences."""

import pytest

from marketplace.shared.saga import Saga, SagaStatus, StepStatus


class TestSaga:
    def test_completed_saga_keeps_its_writes(self):
        undone = []
        with Saga("demo") as saga:
            saga.run("one", lambda: 1, compensate=lambda: undone.append("one"))
            result = saga.run("two", lambda: 2, compensate=lambda: undone.append("two"))

        assert result == 2
        assert undone == []
        assert saga.status is SagaStatus.COMPLETED

    def test_failure_compensates_completed_steps_in_reverse(self):
        undone = []

        def explode():
            raise RuntimeError("disk full")

        with pytest.raises(RuntimeError, match="disk full"):
            with Saga("demo", order_id="ord-1") as saga:
                saga.run("one", lambda: None, compensate=lambda: undone.append("one"))
                saga.run("two", lambda: None, compensate=lambda: undone.append("two"))
                saga.run("three", explode, compensate=lambda: undone.append("three"))

        assert undone == ["two", "one"]
        assert saga.status is SagaStatus.COMPENSATED
        assert [step.status for step in saga.steps] == [StepStatus.COMPENSATED, StepStatus.COMPENSATED]

    def test_failed_compensation_does_not_stop_the_others(self):
        undone = []

        def broken_undo():
            raise RuntimeError("connection reset")

        with pytest.raises(ValueError):
            with Saga("demo") as saga:
                saga.run("one", lambda: None, compensate=lambda: undone.append("one"))
                saga.run("two", lambda: None, compensate=broken_undo)
                saga.run("three", lambda: None)
                raise ValueError("boom")

        assert undone == ["one"]
        assert saga.status is SagaStatus.PARTIALLY_COMPENSATED
        assert saga.steps[1].status is StepStatus.COMPENSATION_FAILED
        assert saga.steps[1].error == "connection reset"
