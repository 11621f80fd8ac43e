"""In-memory repository implementation for executions and step records."""

from __future__ import annotations

import asyncio
import json
from copy import deepcopy
from datetime import UTC, datetime
from typing import Any

from s3_sync_workflow.domain.entities import TransferExecution
from s3_sync_workflow.domain.executions import ExecutionStatus, StepRecord
from s3_sync_workflow.domain.ports import ExecutionRepository, StepRecordRepository


class InMemoryTransferRepository(ExecutionRepository, StepRecordRepository):
    """Simple repository for local development and tests.

    Step results go through a JSON round trip so values that could not be
    persisted by the PostgreSQL backend fail here too.
    """

    def __init__(self) -> None:
        self._executions: dict[str, TransferExecution] = {}
        self._step_records: dict[tuple[str, str], StepRecord] = {}
        self._lock = asyncio.Lock()

    async def get_execution(self, execution_id: str) -> TransferExecution | None:
        """Return by execution id."""

        execution = self._executions.get(execution_id)
        return None if execution is None else deepcopy(execution)

    async def upsert_execution(self, execution: TransferExecution) -> None:
        """Persist execution state."""

        async with self._lock:
            self._executions[execution.execution_id] = deepcopy(execution)

    async def list_executions(
        self,
        statuses: frozenset[ExecutionStatus] | None = None,
    ) -> list[TransferExecution]:
        """Return executions ordered by creation time."""

        executions = sorted(self._executions.values(), key=lambda item: item.created_at)
        return [
            deepcopy(execution)
            for execution in executions
            if statuses is None or execution.status in statuses
        ]

    async def get_step_record(self, execution_id: str, step_name: str) -> StepRecord | None:
        """Return one step record."""

        record = self._step_records.get((execution_id, step_name))
        return None if record is None else deepcopy(record)

    async def save_step_record(self, execution_id: str, step_name: str, result: Any) -> None:
        """Record a step result unless one already exists."""

        encoded = json.loads(json.dumps(result))
        async with self._lock:
            self._step_records.setdefault(
                (execution_id, step_name),
                StepRecord(
                    execution_id=execution_id,
                    step_name=step_name,
                    result=encoded,
                    recorded_at=datetime.now(UTC),
                ),
            )

    async def list_step_records(self, execution_id: str) -> list[StepRecord]:
        """Return step records of one execution in recording order."""

        return [
            deepcopy(record)
            for (record_execution_id, _), record in self._step_records.items()
            if record_execution_id == execution_id
        ]


__all__ = ["InMemoryTransferRepository"]
