"""Fan-out / fan-in of independent store reads within one request.

Tasks run on a short-lived thread pool. Protean keeps the active domain
in a context-local stack, so each worker pushes its own domain context
before running its task.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Mapping

import structlog

from marketplace.config import settings

logger = structlog.get_logger(__name__)


class TaskFailed:
    """Placeholder result for a task that raised; carries the exception."""

    def __init__(self, name: str, error: BaseException):
        self.name = name
        self.error = error

    def __repr__(self):
        return f"TaskFailed({self.name!r}, {self.error!r})"


def _in_context(domain, func: Callable[[], Any]) -> Callable[[], Any]:
    def runner():
        with domain.domain_context():
            return func()

    return runner


def fan_out(
    domain,
    tasks: Mapping[str, Callable[[], Any]],
    max_workers: int | None = None,
) -> dict[str, Any]:
    """Run ``tasks`` concurrently and join on all of them.

    Returns a mapping of task name to result. A task that raises yields a
    ``TaskFailed`` in its slot; other tasks are unaffected. Callers decide
    whether a failure is fatal.
    """
    if not tasks:
        return {}

    workers = min(max_workers or settings.fanout_workers, len(tasks))
    results: dict[str, Any] = {}
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fanout") as executor:
        futures = {name: executor.submit(_in_context(domain, func)) for name, func in tasks.items()}
        for name, future in futures.items():
            try:
                results[name] = future.result()
            except Exception as exc:
                logger.warning("Concurrent task failed", task=name, error=str(exc))
                results[name] = TaskFailed(name, exc)
    return results


def settle(results: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Replace failed task results with their default values."""
    return {
        name: (defaults[name] if isinstance(value, TaskFailed) else value) for name, value in results.items()
    }
