"""PostgreSQL repository implementation for executions and step records."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import asyncpg  # type: ignore[import-untyped]

from s3_sync_workflow.domain.entities import TransferExecution
from s3_sync_workflow.domain.executions import ExecutionStatus, StepRecord
from s3_sync_workflow.domain.ports import ExecutionRepository, StepRecordRepository

_EXECUTION_COLUMNS = """
    execution_id,
    object_key,
    status,
    last_error,
    bytes_transferred,
    created_at,
    updated_at,
    completed_at
"""


class PostgresTransferRepository(ExecutionRepository, StepRecordRepository):
    """Execution and step-record repository backed by PostgreSQL."""

    def __init__(
        self,
        dsn: str,
        min_pool_size: int = 1,
        max_pool_size: int = 10,
    ) -> None:
        self._dsn = dsn
        self._min_pool_size = min_pool_size
        self._max_pool_size = max_pool_size
        self._pool: asyncpg.Pool | None = None
        self._pool_lock = asyncio.Lock()

    async def get_execution(self, execution_id: str) -> TransferExecution | None:
        """Return by execution id."""

        pool = await self._get_pool()
        row = await pool.fetchrow(
            f"SELECT {_EXECUTION_COLUMNS} FROM transfer_executions WHERE execution_id = $1",
            execution_id,
        )
        if row is None:
            return None
        return self._to_execution(row)

    async def upsert_execution(self, execution: TransferExecution) -> None:
        """Persist execution state."""

        pool = await self._get_pool()
        await pool.execute(
            """
            INSERT INTO transfer_executions (
                execution_id,
                object_key,
                status,
                last_error,
                bytes_transferred,
                created_at,
                updated_at,
                completed_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
            ON CONFLICT (execution_id) DO UPDATE SET
                object_key = EXCLUDED.object_key,
                status = EXCLUDED.status,
                last_error = EXCLUDED.last_error,
                bytes_transferred = EXCLUDED.bytes_transferred,
                updated_at = EXCLUDED.updated_at,
                completed_at = EXCLUDED.completed_at
            """,
            execution.execution_id,
            execution.key,
            execution.status.value,
            execution.last_error,
            execution.bytes_transferred,
            execution.created_at,
            execution.updated_at,
            execution.completed_at,
        )

    async def list_executions(
        self,
        statuses: frozenset[ExecutionStatus] | None = None,
    ) -> list[TransferExecution]:
        """Return executions ordered by creation time."""

        pool = await self._get_pool()
        if statuses is None:
            rows = await pool.fetch(
                f"SELECT {_EXECUTION_COLUMNS} FROM transfer_executions "
                "ORDER BY created_at ASC, execution_id ASC",
            )
        else:
            rows = await pool.fetch(
                f"SELECT {_EXECUTION_COLUMNS} FROM transfer_executions "
                "WHERE status = ANY($1::text[]) "
                "ORDER BY created_at ASC, execution_id ASC",
                sorted(status.value for status in statuses),
            )
        return [self._to_execution(row) for row in rows]

    async def get_step_record(self, execution_id: str, step_name: str) -> StepRecord | None:
        """Return one step record."""

        pool = await self._get_pool()
        row = await pool.fetchrow(
            """
            SELECT execution_id, step_name, result_json, recorded_at
            FROM transfer_step_records
            WHERE execution_id = $1 AND step_name = $2
            """,
            execution_id,
            step_name,
        )
        if row is None:
            return None
        return self._to_step_record(row)

    async def save_step_record(self, execution_id: str, step_name: str, result: Any) -> None:
        """Record a step result; an existing record for the step is kept."""

        pool = await self._get_pool()
        await pool.execute(
            """
            INSERT INTO transfer_step_records (
                execution_id,
                step_name,
                result_json,
                recorded_at
            ) VALUES ($1, $2, $3::jsonb, NOW())
            ON CONFLICT (execution_id, step_name) DO NOTHING
            """,
            execution_id,
            step_name,
            json.dumps(result),
        )

    async def list_step_records(self, execution_id: str) -> list[StepRecord]:
        """Return step records of one execution in recording order."""

        pool = await self._get_pool()
        rows = await pool.fetch(
            """
            SELECT execution_id, step_name, result_json, recorded_at
            FROM transfer_step_records
            WHERE execution_id = $1
            ORDER BY recorded_at ASC, step_name ASC
            """,
            execution_id,
        )
        return [self._to_step_record(row) for row in rows]

    async def close(self) -> None:
        """Close the pool if it was initialized."""

        pool = self._pool
        self._pool = None
        if pool is not None:
            await pool.close()

    async def _get_pool(self) -> asyncpg.Pool:
        if self._pool is not None:
            return self._pool

        async with self._pool_lock:
            if self._pool is None:
                pool = await asyncpg.create_pool(
                    dsn=self._dsn,
                    min_size=self._min_pool_size,
                    max_size=self._max_pool_size,
                )
                await self._ensure_schema(pool)
                self._pool = pool
        assert self._pool is not None
        return self._pool

    async def _ensure_schema(self, pool: asyncpg.Pool) -> None:
        await pool.execute(
            """
            CREATE TABLE IF NOT EXISTS transfer_executions (
                execution_id TEXT PRIMARY KEY,
                object_key TEXT NOT NULL,
                status TEXT NOT NULL,
                last_error TEXT,
                bytes_transferred BIGINT NOT NULL DEFAULT 0,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                completed_at TIMESTAMPTZ
            );
            CREATE INDEX IF NOT EXISTS idx_transfer_executions_recovery
                ON transfer_executions (status, created_at)
                WHERE status IN ('QUEUED', 'RUNNING');
            """
        )
        await pool.execute(
            """
            CREATE TABLE IF NOT EXISTS transfer_step_records (
                execution_id TEXT NOT NULL
                    REFERENCES transfer_executions(execution_id) ON DELETE CASCADE,
                step_name TEXT NOT NULL,
                result_json JSONB,
                recorded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                PRIMARY KEY (execution_id, step_name)
            );
            """
        )

    def _to_execution(self, row: asyncpg.Record) -> TransferExecution:
        return TransferExecution(
            execution_id=str(row["execution_id"]),
            key=str(row["object_key"]),
            status=ExecutionStatus(str(row["status"])),
            last_error=self._as_optional_str(row["last_error"]),
            bytes_transferred=int(row["bytes_transferred"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
        )

    def _to_step_record(self, row: asyncpg.Record) -> StepRecord:
        return StepRecord(
            execution_id=str(row["execution_id"]),
            step_name=str(row["step_name"]),
            result=self._decode_json_field(row["result_json"]),
            recorded_at=row["recorded_at"],
        )

    def _decode_json_field(self, value: object) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            return json.loads(value)
        return value

    def _as_optional_str(self, value: object) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            return value
        raise TypeError(f"Expected optional string value, got {type(value)!r}.")


__all__ = ["PostgresTransferRepository"]
