"""Ports for object stores, durable steps and execution persistence."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Any, Protocol, TypeVar, runtime_checkable

from s3_sync_workflow.domain.entities import TransferExecution
from s3_sync_workflow.domain.executions import ExecutionStatus, StepRecord
from s3_sync_workflow.domain.parts import PartResult
from s3_sync_workflow.domain.step_policy import StepPolicy

T = TypeVar("T")


class ObjectSource(Protocol):
    """Read port for the source object store."""

    async def probe_size(self, key: str) -> int:
        """Return the object's size in bytes."""

    def read_range(self, key: str, start: int, end: int) -> AsyncIterator[bytes]:
        """Stream the inclusive byte range [start, end]."""

    def read_all(self, key: str) -> AsyncIterator[bytes]:
        """Stream the whole object sequentially."""


class MultipartDestination(Protocol):
    """Write port for the destination object store."""

    async def initiate(self, key: str) -> str:
        """Start a multipart upload and return its upload id."""

    async def upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> PartResult:
        """Upload one part and return its ETag."""

    async def complete(self, key: str, upload_id: str, parts: Sequence[PartResult]) -> None:
        """Assemble the object from the ordered part list."""

    async def abort(self, key: str, upload_id: str) -> None:
        """Release a multipart upload."""

    async def put_object(self, key: str, body: bytes) -> None:
        """Write a whole object with a single request."""


class StepRunner(Protocol):
    """Durable step host."""

    async def run_step(
        self,
        name: str,
        policy: StepPolicy,
        unit: Callable[[], Awaitable[T]],
    ) -> T:
        """Run `unit` under `policy`, replaying a recorded result when present."""


@runtime_checkable
class StepRecordRepository(Protocol):
    """Persistence port for completed step results."""

    async def get_step_record(self, execution_id: str, step_name: str) -> StepRecord | None:
        """Return the recorded result of one step, if any."""

    async def save_step_record(self, execution_id: str, step_name: str, result: Any) -> None:
        """Record a step result; the first record for a step wins."""

    async def list_step_records(self, execution_id: str) -> list[StepRecord]:
        """Return all step records of one execution."""


@runtime_checkable
class ExecutionRepository(Protocol):
    """Persistence port for transfer executions."""

    async def get_execution(self, execution_id: str) -> TransferExecution | None:
        """Return an execution by id."""

    async def upsert_execution(self, execution: TransferExecution) -> None:
        """Create or update an execution."""

    async def list_executions(
        self,
        statuses: frozenset[ExecutionStatus] | None = None,
    ) -> list[TransferExecution]:
        """Return executions, optionally filtered by status."""


__all__ = [
    "ExecutionRepository",
    "MultipartDestination",
    "ObjectSource",
    "StepRecordRepository",
    "StepRunner",
]
