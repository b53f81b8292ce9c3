"""Compensating write sequences.

The store offers no multi-statement transaction, so multi-step writes
run as a saga: each step registers the action that undoes it, and a
failure in any step undoes the completed steps in reverse order before
the original error propagates.

Usage::

    with Saga("place_order", order_id=order.id) as saga:
        saga.run("insert_order", lambda: store.add(order), compensate=lambda: store.delete(order))
        saga.run("insert_items", insert_items, compensate=delete_items)

A compensation that itself fails is logged with the step name and the
saga's context and the remaining compensations still run; the records
that step created may be left orphaned.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import structlog

logger = structlog.get_logger(__name__)


class SagaStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    COMPENSATED = "compensated"
    PARTIALLY_COMPENSATED = "partially_compensated"


class StepStatus(Enum):
    COMPLETED = "completed"
    COMPENSATED = "compensated"
    COMPENSATION_FAILED = "compensation_failed"


@dataclass
class SagaStep:
    name: str
    compensate: Callable[[], Any] | None = None
    status: StepStatus = StepStatus.COMPLETED
    error: str | None = None


class Saga:
    def __init__(self, name: str, **context: Any) -> None:
        self.name = name
        self.context = context
        self.steps: list[SagaStep] = []
        self.status = SagaStatus.RUNNING

    def __enter__(self) -> "Saga":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is None:
            self.status = SagaStatus.COMPLETED
            return False

        logger.warning(
            "Saga step failed, compensating",
            saga=self.name,
            error=str(exc),
            completed_steps=[step.name for step in self.steps],
            **self.context,
        )
        self.compensate()
        return False

    def run(self, name: str, action: Callable[[], Any], compensate: Callable[[], Any] | None = None) -> Any:
        """Execute ``action`` now; remember ``compensate`` once it succeeds."""
        result = action()
        self.steps.append(SagaStep(name=name, compensate=compensate))
        return result

    def compensate(self) -> None:
        failed = False
        for step in reversed(self.steps):
            if step.compensate is None or step.status is not StepStatus.COMPLETED:
                continue
            try:
                step.compensate()
                step.status = StepStatus.COMPENSATED
            except Exception as exc:
                failed = True
                step.status = StepStatus.COMPENSATION_FAILED
                step.error = str(exc)
                logger.error(
                    "Saga compensation failed, records may be orphaned",
                    saga=self.name,
                    step=step.name,
                    error=str(exc),
                    **self.context,
                )

        self.status = SagaStatus.PARTIALLY_COMPENSATED if failed else SagaStatus.COMPENSATED
