"""Named, checkpointed step execution with retry, backoff and timeout."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from s3_sync_workflow.domain.errors import StepExhaustedError, StepTimeoutError
from s3_sync_workflow.domain.ports import StepRecordRepository, StepRunner
from s3_sync_workflow.domain.step_policy import StepPolicy

T = TypeVar("T")

logger = logging.getLogger(__name__)


class DurableStepExecutor(StepRunner):
    """Run named units of work for one execution.

    - A step whose result is already recorded is replayed without running.
    - Failed attempts are retried per `StepPolicy`; exhaustion raises
      `StepExhaustedError` chained to the last failure.
    - The policy timeout is a budget shared by all attempts of the step.
    - Successful results are recorded before they are returned.
    """

    def __init__(
        self,
        execution_id: str,
        repository: StepRecordRepository,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._execution_id = execution_id
        self._repository = repository
        self._sleep = sleep

    @property
    def execution_id(self) -> str:
        return self._execution_id

    async def run_step(
        self,
        name: str,
        policy: StepPolicy,
        unit: Callable[[], Awaitable[T]],
    ) -> T:
        """Run or replay one step."""

        record = await self._repository.get_step_record(self._execution_id, name)
        if record is not None:
            logger.info(
                "Replaying recorded step '%s' for execution '%s'.",
                name,
                self._execution_id,
            )
            return record.result

        attempt = 0
        spent_seconds = 0.0
        last_error: BaseException | None = None

        while attempt < policy.max_attempts:
            remaining_seconds = policy.timeout_seconds - spent_seconds
            if remaining_seconds <= 0:
                break

            attempt += 1
            started = time.monotonic()
            timeout = asyncio.timeout(remaining_seconds)
            try:
                async with timeout:
                    result = await unit()
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                spent_seconds += time.monotonic() - started
                if isinstance(exc, TimeoutError) and timeout.expired():
                    last_error = StepTimeoutError(
                        f"Step '{name}' exceeded its {policy.timeout_seconds}s timeout."
                    )
                    last_error.__cause__ = exc
                else:
                    last_error = exc
            else:
                await self._record(name, result)
                return result

            logger.warning(
                "Step '%s' attempt %d/%d failed for execution '%s': %s",
                name,
                attempt,
                policy.max_attempts,
                self._execution_id,
                last_error,
            )
            if attempt < policy.max_attempts and spent_seconds < policy.timeout_seconds:
                await self._sleep(policy.delay_after(attempt))

        assert last_error is not None
        raise StepExhaustedError(name, attempt, last_error) from last_error

    async def _record(self, name: str, result: Any) -> None:
        await self._repository.save_step_record(self._execution_id, name, result)


__all__ = ["DurableStepExecutor"]
