"""Domain entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from s3_sync_workflow.domain.executions import TERMINAL_EXECUTION_STATUSES, ExecutionStatus
from s3_sync_workflow.domain.parts import PartResult


@dataclass(slots=True, frozen=True)
class TransferRequest:
    """Request to copy one object key from the source to the destination store."""

    key: str


@dataclass(slots=True)
class TransferExecution:
    """Mutable representation of one durable transfer run."""

    execution_id: str
    key: str
    status: ExecutionStatus = ExecutionStatus.QUEUED
    last_error: str | None = None
    bytes_transferred: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_EXECUTION_STATUSES

    def transition(self, status: ExecutionStatus, last_error: str | None = None) -> None:
        """Apply a status change and refresh timestamps."""

        now = datetime.now(UTC)
        self.status = status
        self.last_error = last_error
        self.updated_at = now
        self.completed_at = now if status in TERMINAL_EXECUTION_STATUSES else None


@dataclass(slots=True, frozen=True)
class CompletedTransfer:
    """Reference to an object fully assembled at the destination."""

    key: str
    size: int
    upload_id: str | None
    parts: tuple[PartResult, ...] = ()

    @property
    def multipart(self) -> bool:
        return self.upload_id is not None


@dataclass(slots=True, frozen=True)
class TransferOutcome:
    """Result of one orchestrated transfer: a completed object or a tagged failure."""

    execution_id: str
    key: str
    completed: CompletedTransfer | None = None
    error: BaseException | None = None
    abort_error: BaseException | None = None

    @property
    def succeeded(self) -> bool:
        return self.completed is not None

    @property
    def error_message(self) -> str | None:
        if self.error is None:
            return None
        return str(self.error).strip() or type(self.error).__name__


__all__ = ["CompletedTransfer", "TransferExecution", "TransferOutcome", "TransferRequest"]
