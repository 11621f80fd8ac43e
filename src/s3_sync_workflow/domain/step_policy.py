"""Retry, backoff and timeout policy for durable steps."""

from __future__ import annotations

from dataclasses import dataclass

from s3_sync_workflow.domain.transfer_types import BackoffKind


@dataclass(slots=True, frozen=True)
class StepPolicy:
    """Retry budget for one named step.

    `timeout_seconds` bounds the step as a whole: the time spent inside all
    attempts together must fit inside it. Backoff delays are not charged.
    """

    max_attempts: int
    base_delay_seconds: float
    backoff: BackoffKind = BackoffKind.CONSTANT
    timeout_seconds: float = 60.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1.")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0.")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0.")

    def delay_after(self, attempt: int) -> float:
        """Return the wait before the attempt following `attempt` (1-based)."""

        if self.backoff is BackoffKind.EXPONENTIAL:
            return self.base_delay_seconds * attempt
        return self.base_delay_seconds


# 1 initial attempt + 5 retries.
DEFAULT_CONTROL_STEP_POLICY = StepPolicy(
    max_attempts=6,
    base_delay_seconds=10.0,
    backoff=BackoffKind.CONSTANT,
    timeout_seconds=60.0,
)
DEFAULT_PART_STEP_POLICY = StepPolicy(
    max_attempts=6,
    base_delay_seconds=30.0,
    backoff=BackoffKind.CONSTANT,
    timeout_seconds=3600.0,
)


__all__ = ["DEFAULT_CONTROL_STEP_POLICY", "DEFAULT_PART_STEP_POLICY", "StepPolicy"]
