"""Transfer execution durability models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any


class ExecutionStatus(StrEnum):
    """Durable execution lifecycle states."""

    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TERMINATED = "TERMINATED"


TERMINAL_EXECUTION_STATUSES = frozenset(
    {
        ExecutionStatus.COMPLETED,
        ExecutionStatus.FAILED,
        ExecutionStatus.TERMINATED,
    }
)


@dataclass(slots=True, frozen=True)
class StepRecord:
    """Persisted result of one successfully completed durable step."""

    execution_id: str
    step_name: str
    result: Any
    recorded_at: datetime


__all__ = ["ExecutionStatus", "StepRecord", "TERMINAL_EXECUTION_STATUSES"]
