"""Transfer execution use-case service."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from contextlib import suppress
from uuid import uuid4

from s3_sync_workflow.application.transfers.transfer_orchestrator import TransferOrchestrator
from s3_sync_workflow.domain.entities import TransferExecution, TransferOutcome, TransferRequest
from s3_sync_workflow.domain.errors import (
    ExecutionConflictError,
    ExecutionNotFoundError,
    TransferValidationError,
)
from s3_sync_workflow.domain.executions import TERMINAL_EXECUTION_STATUSES, ExecutionStatus
from s3_sync_workflow.domain.ports import ExecutionRepository

_RECOVERABLE_STATUSES = frozenset(
    status for status in ExecutionStatus if status not in TERMINAL_EXECUTION_STATUSES
)

logger = logging.getLogger(__name__)


def _new_execution_id() -> str:
    return str(uuid4())


class TransferService:
    """Create, observe and terminate durable transfer executions.

    Each execution runs as one background task. Persisted executions that
    have not reached a terminal status are resumed on `startup`, and the
    orchestrator replays every step they already recorded.
    """

    def __init__(
        self,
        repository: ExecutionRepository,
        orchestrator: TransferOrchestrator,
        execution_id_factory: Callable[[], str] = _new_execution_id,
        closers: Sequence[Callable[[], Awaitable[None]]] = (),
    ) -> None:
        self._repository = repository
        self._orchestrator = orchestrator
        self._execution_id_factory = execution_id_factory
        self._closers = tuple(closers)
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._progress_lock = asyncio.Lock()
        self._service_running = False

    @property
    def running_execution_ids(self) -> list[str]:
        return sorted(self._tasks)

    async def startup(self) -> None:
        """Start the service and resume unfinished executions."""

        if self._service_running:
            return
        self._service_running = True
        pending = await self._repository.list_executions(_RECOVERABLE_STATUSES)
        for execution in pending:
            logger.info(
                "Recovering execution '%s' for '%s' from status %s.",
                execution.execution_id,
                execution.key,
                execution.status,
            )
            self._schedule(execution.execution_id)

    async def shutdown(self) -> None:
        """Cancel running executions without changing their persisted status."""

        self._service_running = False
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        for close in self._closers:
            await close()

    async def create(self, request: TransferRequest) -> TransferExecution:
        """Persist a QUEUED execution for one key and schedule it."""

        self._validate_request(request)
        execution = TransferExecution(
            execution_id=self._execution_id_factory(),
            key=request.key,
        )
        if await self._repository.get_execution(execution.execution_id) is not None:
            raise ExecutionConflictError(
                f"Execution '{execution.execution_id}' already exists."
            )
        await self._repository.upsert_execution(execution)
        logger.info("Created execution '%s' for '%s'.", execution.execution_id, execution.key)
        if self._service_running:
            self._schedule(execution.execution_id)
        return execution

    async def get_status(self, execution_id: str) -> TransferExecution:
        """Return the persisted execution, including transferred bytes."""

        return await self._get_execution_or_raise(execution_id)

    async def wait_for(self, execution_id: str) -> TransferExecution:
        """Wait for the execution's background task to settle and return its state."""

        task = self._tasks.get(execution_id)
        if task is not None:
            await asyncio.wait({task})
        return await self._get_execution_or_raise(execution_id)

    async def list_executions(self) -> list[TransferExecution]:
        """Return all known executions."""

        return await self._repository.list_executions()

    async def terminate(self, execution_id: str) -> TransferExecution:
        """Stop an execution and mark it TERMINATED.

        An initiated multipart upload is left in place at the destination.
        """

        execution = await self._get_execution_or_raise(execution_id)
        if execution.is_terminal:
            raise ExecutionConflictError(
                f"Cannot terminate execution '{execution_id}' in terminal status "
                f"'{execution.status}'."
            )

        task = self._tasks.pop(execution_id, None)
        if task is not None:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

        execution = await self._get_execution_or_raise(execution_id)
        if execution.is_terminal:
            raise ExecutionConflictError(
                f"Execution '{execution_id}' reached terminal status '{execution.status}' "
                "before it could be terminated."
            )
        execution.transition(ExecutionStatus.TERMINATED, last_error="Terminated by request.")
        await self._repository.upsert_execution(execution)
        logger.warning(
            "Execution '%s' for '%s' terminated; any initiated multipart upload was not aborted.",
            execution_id,
            execution.key,
        )
        return execution

    def _validate_request(self, request: TransferRequest) -> None:
        key = request.key
        if not key or not key.strip():
            raise TransferValidationError("key must be a non-empty object key.")
        if key.startswith("/"):
            raise TransferValidationError("key must not start with '/'.")

    async def _get_execution_or_raise(self, execution_id: str) -> TransferExecution:
        execution = await self._repository.get_execution(execution_id)
        if execution is None:
            raise ExecutionNotFoundError(f"Execution '{execution_id}' not found.")
        return execution

    def _schedule(self, execution_id: str) -> None:
        existing = self._tasks.get(execution_id)
        if existing is not None and not existing.done():
            return
        task = asyncio.create_task(
            self._run_execution(execution_id),
            name=f"transfer-execution-{execution_id}",
        )
        self._tasks[execution_id] = task
        task.add_done_callback(lambda done: self._forget_task(execution_id, done))

    def _forget_task(self, execution_id: str, task: asyncio.Task[None]) -> None:
        if self._tasks.get(execution_id) is task:
            del self._tasks[execution_id]

    async def _run_execution(self, execution_id: str) -> None:
        execution = await self._repository.get_execution(execution_id)
        if execution is None or execution.is_terminal:
            return

        execution.transition(ExecutionStatus.RUNNING)
        await self._repository.upsert_execution(execution)

        try:
            outcome = await self._orchestrator.run(
                execution_id,
                TransferRequest(key=execution.key),
                on_progress=lambda transferred: self._record_progress(execution_id, transferred),
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Execution '%s' failed unexpectedly.", execution_id)
            outcome = TransferOutcome(execution_id=execution_id, key=execution.key, error=exc)

        await self._finish(execution_id, outcome)

    async def _finish(self, execution_id: str, outcome: TransferOutcome) -> None:
        execution = await self._repository.get_execution(execution_id)
        if execution is None or execution.is_terminal:
            return

        if outcome.completed is not None:
            execution.bytes_transferred = outcome.completed.size
            execution.transition(ExecutionStatus.COMPLETED)
            logger.info(
                "Execution '%s' completed: '%s' (%d bytes).",
                execution_id,
                execution.key,
                outcome.completed.size,
            )
        else:
            execution.transition(ExecutionStatus.FAILED, last_error=outcome.error_message)
            if outcome.abort_error is not None:
                logger.error(
                    "Execution '%s' failed and its multipart upload could not be aborted: %s",
                    execution_id,
                    outcome.abort_error,
                )
        await self._repository.upsert_execution(execution)

    async def _record_progress(self, execution_id: str, transferred: int) -> None:
        async with self._progress_lock:
            execution = await self._repository.get_execution(execution_id)
            if execution is None or execution.is_terminal:
                return
            if transferred <= execution.bytes_transferred:
                return
            execution.bytes_transferred = transferred
            await self._repository.upsert_execution(execution)


__all__ = ["TransferService"]
