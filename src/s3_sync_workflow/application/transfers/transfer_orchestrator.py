"""Durable multipart transfer of one object from the source to the destination store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Sequence
from contextlib import aclosing, asynccontextmanager

from s3_sync_workflow.application.transfers.chunk_planner import (
    fill_buffers,
    plan_ranges,
    plan_slices,
)
from s3_sync_workflow.application.transfers.part_uploader import (
    BodyLoader,
    PartSource,
    PartUploader,
    load_part_body,
)
from s3_sync_workflow.domain.entities import CompletedTransfer, TransferOutcome, TransferRequest
from s3_sync_workflow.domain.errors import EmptyObjectUnsupportedError
from s3_sync_workflow.domain.parts import PartDescriptor
from s3_sync_workflow.domain.ports import MultipartDestination, ObjectSource, StepRunner
from s3_sync_workflow.domain.step_policy import (
    DEFAULT_CONTROL_STEP_POLICY,
    DEFAULT_PART_STEP_POLICY,
    StepPolicy,
)
from s3_sync_workflow.domain.transfer_types import ChunkPlanKind, SmallObjectStrategy, UploadMode
from s3_sync_workflow.domain.upload_session import UploadSession

logger = logging.getLogger(__name__)

PROBE_SIZE_STEP = "Probe size"
INIT_UPLOAD_STEP = "Init upload"
COMPLETE_UPLOAD_STEP = "Complete upload"
ABORT_UPLOAD_STEP = "Abort upload"
PUT_OBJECT_STEP = "Put object"

DEFAULT_PART_SIZE = 20 * 1024 * 1024

ProgressCallback = Callable[[int], Awaitable[None]]
StepRunnerFactory = Callable[[str], StepRunner]


class _ProgressTracker:
    """Cumulative byte count of uploaded parts, replayed parts included."""

    def __init__(self, callback: ProgressCallback | None) -> None:
        self._callback = callback
        self.transferred = 0

    async def advance(self, descriptor: PartDescriptor) -> None:
        self.transferred += descriptor.size
        if self._callback is not None:
            await self._callback(self.transferred)


class TransferOrchestrator:
    """Drive probe-or-stream, initiate, part uploads and complete for one key.

    Every network-facing action runs as a named step of the execution's step
    runner, so calling `transfer` again with the same execution id resumes
    from the first step that has no recorded result. Once a multipart upload
    is initiated it is either completed or aborted before control returns,
    except on cancellation, which leaves the session to the resumed run.
    """

    def __init__(
        self,
        source: ObjectSource,
        destination: MultipartDestination,
        step_runner_factory: StepRunnerFactory,
        *,
        chunk_plan: ChunkPlanKind = ChunkPlanKind.STREAM,
        part_size: int = DEFAULT_PART_SIZE,
        upload_mode: UploadMode = UploadMode.CONCURRENT,
        upload_concurrency: int = 4,
        small_object_strategy: SmallObjectStrategy = SmallObjectStrategy.SINGLE_PUT,
        control_policy: StepPolicy = DEFAULT_CONTROL_STEP_POLICY,
        part_policy: StepPolicy = DEFAULT_PART_STEP_POLICY,
    ) -> None:
        if part_size < 1:
            raise ValueError("part_size must be >= 1.")
        if upload_concurrency < 1:
            raise ValueError("upload_concurrency must be >= 1.")
        self._source = source
        self._destination = destination
        self._step_runner_factory = step_runner_factory
        self._chunk_plan = chunk_plan
        self._part_size = part_size
        self._upload_mode = upload_mode
        self._upload_concurrency = upload_concurrency
        self._small_object_strategy = small_object_strategy
        self._control_policy = control_policy
        self._part_policy = part_policy

    @property
    def part_size(self) -> int:
        return self._part_size

    async def run(
        self,
        execution_id: str,
        request: TransferRequest,
        on_progress: ProgressCallback | None = None,
    ) -> TransferOutcome:
        """Transfer one object and report the outcome as a value."""

        abort_failures: list[BaseException] = []
        try:
            completed = await self._transfer(execution_id, request.key, on_progress, abort_failures)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.warning("Transfer of '%s' failed for execution '%s': %s", request.key, execution_id, exc)
            return TransferOutcome(
                execution_id=execution_id,
                key=request.key,
                error=exc,
                abort_error=abort_failures[0] if abort_failures else None,
            )
        return TransferOutcome(execution_id=execution_id, key=request.key, completed=completed)

    async def transfer(
        self,
        execution_id: str,
        request: TransferRequest,
        on_progress: ProgressCallback | None = None,
    ) -> CompletedTransfer:
        """Transfer one object, raising the root-cause failure."""

        return await self._transfer(execution_id, request.key, on_progress, [])

    async def upload_blob(
        self,
        execution_id: str,
        key: str,
        blob: bytes,
        on_progress: ProgressCallback | None = None,
    ) -> CompletedTransfer:
        """Upload an object already held in memory, sliced into parts."""

        steps = self._step_runner_factory(execution_id)
        progress = _ProgressTracker(on_progress)
        descriptors = plan_slices(blob, self._part_size)
        return await self._deliver(steps, key, descriptors, descriptors, progress, None, [])

    async def _transfer(
        self,
        execution_id: str,
        key: str,
        on_progress: ProgressCallback | None,
        abort_failures: list[BaseException],
    ) -> CompletedTransfer:
        steps = self._step_runner_factory(execution_id)
        progress = _ProgressTracker(on_progress)

        if self._chunk_plan is ChunkPlanKind.RANGE:
            size = await steps.run_step(
                PROBE_SIZE_STEP,
                self._control_policy,
                lambda: self._source.probe_size(key),
            )
            descriptors = plan_ranges(size, self._part_size)
            return await self._deliver(
                steps,
                key,
                descriptors,
                descriptors,
                progress,
                self._range_loader(key),
                abort_failures,
            )

        async with (
            aclosing(self._source.read_all(key)) as body,
            aclosing(fill_buffers(body, self._part_size)) as buffered,
        ):
            # Two buffers are enough to tell a single-part object from a multipart one.
            head: list[PartDescriptor] = []
            async for descriptor in buffered:
                head.append(descriptor)
                if len(head) == 2:
                    break
            descriptors = _chain(head, buffered) if len(head) == 2 else head
            return await self._deliver(
                steps,
                key,
                head,
                descriptors,
                progress,
                None,
                abort_failures,
            )

    async def _deliver(
        self,
        steps: StepRunner,
        key: str,
        head: Sequence[PartDescriptor],
        descriptors: PartSource,
        progress: _ProgressTracker,
        body_loader: BodyLoader | None,
        abort_failures: list[BaseException],
    ) -> CompletedTransfer:
        if len(head) <= 1:
            single = head[0] if head else None
            if self._small_object_strategy is SmallObjectStrategy.SINGLE_PUT:
                return await self._put_whole_object(steps, key, single, progress, body_loader)
            if single is None:
                raise EmptyObjectUnsupportedError(
                    f"Object '{key}' is empty; a multipart upload needs at least one part."
                )
        return await self._multipart(steps, key, descriptors, progress, body_loader, abort_failures)

    async def _put_whole_object(
        self,
        steps: StepRunner,
        key: str,
        descriptor: PartDescriptor | None,
        progress: _ProgressTracker,
        body_loader: BodyLoader | None,
    ) -> CompletedTransfer:
        async def unit() -> dict[str, object]:
            body = b"" if descriptor is None else await load_part_body(descriptor, body_loader)
            await self._destination.put_object(key, body)
            return {"key": key, "size": len(body)}

        await steps.run_step(PUT_OBJECT_STEP, self._control_policy, unit)
        if descriptor is not None:
            await progress.advance(descriptor)
        logger.info("Object '%s' written with a single put (%d bytes).", key, progress.transferred)
        return CompletedTransfer(key=key, size=progress.transferred, upload_id=None)

    async def _multipart(
        self,
        steps: StepRunner,
        key: str,
        descriptors: PartSource,
        progress: _ProgressTracker,
        body_loader: BodyLoader | None,
        abort_failures: list[BaseException],
    ) -> CompletedTransfer:
        upload_id = await steps.run_step(
            INIT_UPLOAD_STEP,
            self._control_policy,
            lambda: self._destination.initiate(key),
        )
        session = UploadSession(destination_key=key)
        session.mark_initiated(upload_id)
        logger.info("Multipart upload '%s' initiated for '%s'.", upload_id, key)

        async with self._abort_on_failure(steps, session, abort_failures):
            uploader = PartUploader(
                self._destination,
                steps,
                self._part_policy,
                body_loader=body_loader,
                on_part_uploaded=progress.advance,
            )
            if self._upload_mode is UploadMode.SEQUENTIAL:
                parts = await uploader.upload_sequential(session, descriptors)
            else:
                parts = await uploader.upload_concurrent(
                    session,
                    descriptors,
                    self._upload_concurrency,
                )

            async def complete() -> int:
                await self._destination.complete(key, upload_id, parts)
                return len(parts)

            await steps.run_step(COMPLETE_UPLOAD_STEP, self._control_policy, complete)
            session.mark_completed()

        logger.info(
            "Multipart upload '%s' completed for '%s' with %d part(s).",
            upload_id,
            key,
            len(parts),
        )
        return CompletedTransfer(
            key=key,
            size=progress.transferred,
            upload_id=upload_id,
            parts=tuple(parts),
        )

    @asynccontextmanager
    async def _abort_on_failure(
        self,
        steps: StepRunner,
        session: UploadSession,
        abort_failures: list[BaseException],
    ) -> AsyncIterator[UploadSession]:
        """Abort an initiated session when the enclosed block fails.

        The block's failure is always re-raised; an abort failure is logged
        and collected. Cancellation passes through without aborting.
        """

        try:
            yield session
        except Exception:
            if session.is_open:
                upload_id = session.upload_id
                assert upload_id is not None
                try:
                    await steps.run_step(
                        ABORT_UPLOAD_STEP,
                        self._control_policy,
                        lambda: self._destination.abort(session.destination_key, upload_id),
                    )
                except Exception as abort_exc:  # noqa: BLE001
                    logger.exception(
                        "Aborting multipart upload '%s' for '%s' failed.",
                        upload_id,
                        session.destination_key,
                    )
                    abort_failures.append(abort_exc)
                else:
                    session.mark_aborted()
                    logger.info(
                        "Multipart upload '%s' aborted for '%s'.",
                        upload_id,
                        session.destination_key,
                    )
            raise

    def _range_loader(self, key: str) -> BodyLoader:
        async def load(descriptor: PartDescriptor) -> bytes:
            chunks = [
                chunk
                async for chunk in self._source.read_range(key, descriptor.start, descriptor.end)
            ]
            return b"".join(chunks)

        return load


async def _chain(
    head: Iterable[PartDescriptor],
    rest: AsyncIterator[PartDescriptor],
) -> AsyncIterator[PartDescriptor]:
    for descriptor in head:
        yield descriptor
    async for descriptor in rest:
        yield descriptor


__all__ = [
    "ABORT_UPLOAD_STEP",
    "COMPLETE_UPLOAD_STEP",
    "DEFAULT_PART_SIZE",
    "INIT_UPLOAD_STEP",
    "PROBE_SIZE_STEP",
    "PUT_OBJECT_STEP",
    "TransferOrchestrator",
]
