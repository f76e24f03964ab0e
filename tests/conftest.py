import os
import sys
from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

# Headless test runs: Qt needs a platform plugin that works without a display.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from roster.domain.models import ServerId, StudentRecord, StudentStatus  # noqa: E402


@dataclass
class _QueuedTask:
    fn: Callable[[], Any]
    on_finished: Callable[[Any], None]
    on_error: Optional[Callable[[BaseException], None]]


class ManualDispatcher:
    """Task dispatcher whose tasks only complete when a test says so.

    Lets a test resolve remote calls in any order, which is how out-of-order
    responses are reproduced without threads.
    """

    def __init__(self) -> None:
        self.pending: "OrderedDict[str, _QueuedTask]" = OrderedDict()
        self.submitted: List[str] = []

    def submit(self, task_id, fn, *, on_finished, on_error=None) -> None:
        if task_id in self.pending:
            raise ValueError(f"Task '{task_id}' is already active")
        self.pending[task_id] = _QueuedTask(fn, on_finished, on_error)
        self.submitted.append(task_id)

    def find(self, prefix: str) -> List[str]:
        return [task_id for task_id in self.pending if task_id.startswith(prefix)]

    def only(self, prefix: str = "") -> str:
        matches = self.find(prefix)
        assert len(matches) == 1, f"expected one pending '{prefix}' task, got {matches}"
        return matches[0]

    def call_of(self, task_id: str):
        """Return the ``functools.partial`` queued for *task_id*."""
        return self.pending[task_id].fn

    def succeed(self, task_id: str, result: Any = None) -> None:
        self.pending.pop(task_id).on_finished(result)

    def fail(self, task_id: str, error: BaseException) -> None:
        task = self.pending.pop(task_id)
        assert task.on_error is not None
        task.on_error(error)

    def run(self, task_id: str) -> None:
        task = self.pending.pop(task_id)
        try:
            result = task.fn()
        except Exception as exc:
            assert task.on_error is not None
            task.on_error(exc)
        else:
            task.on_finished(result)


@pytest.fixture
def dispatcher() -> ManualDispatcher:
    return ManualDispatcher()


def make_record(record_id: int, name: Optional[str] = None, **overrides) -> StudentRecord:
    values = dict(
        id=ServerId(record_id),
        name=name or f"Student {record_id}",
        email=f"s{record_id}@example.edu",
        program="CS",
        grade=Decimal("8.5"),
        status=StudentStatus.ACTIVE,
    )
    values.update(overrides)
    return StudentRecord(**values)


@pytest.fixture
def records_factory():
    return make_record
