"""Durable part uploads in sequential or concurrent mode."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable, Iterable

from s3_sync_workflow.domain.parts import PartDescriptor, PartResult
from s3_sync_workflow.domain.ports import MultipartDestination, StepRunner
from s3_sync_workflow.domain.step_policy import StepPolicy
from s3_sync_workflow.domain.upload_session import UploadSession

logger = logging.getLogger(__name__)

BodyLoader = Callable[[PartDescriptor], Awaitable[bytes]]
PartUploadedCallback = Callable[[PartDescriptor], Awaitable[None]]
PartSource = Iterable[PartDescriptor] | AsyncIterable[PartDescriptor]


def part_step_name(part_number: int) -> str:
    """Durable step name of one part upload."""

    return f"Upload part {part_number}"


class PartUploader:
    """Upload planned parts into an initiated session through durable steps.

    Range descriptors carry no bytes; `body_loader` fetches them inside the
    part's step so a replayed part never touches the source again.
    """

    def __init__(
        self,
        destination: MultipartDestination,
        step_runner: StepRunner,
        policy: StepPolicy,
        body_loader: BodyLoader | None = None,
        on_part_uploaded: PartUploadedCallback | None = None,
    ) -> None:
        self._destination = destination
        self._steps = step_runner
        self._policy = policy
        self._body_loader = body_loader
        self._on_part_uploaded = on_part_uploaded

    async def upload_part(self, session: UploadSession, descriptor: PartDescriptor) -> PartResult:
        """Upload one part and record its result on the session."""

        upload_id = session.upload_id
        if upload_id is None or not session.is_open:
            raise RuntimeError("Parts can only be uploaded into an initiated session.")

        async def unit() -> dict[str, object]:
            body = await load_part_body(descriptor, self._body_loader)
            result = await self._destination.upload_part(
                session.destination_key,
                upload_id,
                descriptor.part_number,
                body,
            )
            return result.to_record()

        record = await self._steps.run_step(
            part_step_name(descriptor.part_number),
            self._policy,
            unit,
        )
        result = PartResult.from_record(record)
        await session.record_part(result)
        if self._on_part_uploaded is not None:
            await self._on_part_uploaded(descriptor)
        return result

    async def upload_sequential(
        self,
        session: UploadSession,
        descriptors: PartSource,
    ) -> list[PartResult]:
        """Upload parts one at a time; the first failure stops the pipeline."""

        async for descriptor in _iterate(descriptors):
            await self.upload_part(session, descriptor)
        return session.ordered_parts()

    async def upload_concurrent(
        self,
        session: UploadSession,
        descriptors: PartSource,
        max_in_flight: int,
    ) -> list[PartResult]:
        """Dispatch parts without waiting for earlier ones to finish.

        At most `max_in_flight` uploads run at once, which also bounds how many
        streamed buffers are held in memory. After a failure no new parts are
        dispatched, uploads already in flight are allowed to settle, and the
        failure of the lowest-numbered part is raised. Cancellation cancels
        every in-flight upload before propagating.
        """

        slots = asyncio.Semaphore(max(1, max_in_flight))
        failed = asyncio.Event()
        tasks: list[asyncio.Task[PartResult]] = []

        async def upload_in_slot(descriptor: PartDescriptor) -> PartResult:
            try:
                return await self.upload_part(session, descriptor)
            except Exception:
                failed.set()
                raise
            finally:
                slots.release()

        try:
            async for descriptor in _iterate(descriptors):
                await slots.acquire()
                if failed.is_set():
                    slots.release()
                    break
                tasks.append(
                    asyncio.create_task(
                        upload_in_slot(descriptor),
                        name=f"upload-part-{descriptor.part_number}",
                    )
                )
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        except Exception:
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        # Cancelling the gather cancels every part task with it.
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        failures = [
            (task, outcome)
            for task, outcome in zip(tasks, outcomes, strict=True)
            if isinstance(outcome, BaseException)
        ]
        if failures:
            for task, outcome in failures[1:]:
                logger.warning("Concurrent part upload %s also failed: %s", task.get_name(), outcome)
            raise failures[0][1]
        return session.ordered_parts()


async def load_part_body(descriptor: PartDescriptor, body_loader: BodyLoader | None) -> bytes:
    """Bytes of one part, fetched through `body_loader` for range descriptors."""

    if descriptor.data is not None:
        return descriptor.data
    if body_loader is None:
        raise RuntimeError(f"Part {descriptor.part_number} has no bytes and no body loader.")
    return await body_loader(descriptor)


async def _iterate(descriptors: PartSource) -> AsyncIterator[PartDescriptor]:
    if isinstance(descriptors, AsyncIterable):
        async for descriptor in descriptors:
            yield descriptor
    else:
        for descriptor in descriptors:
            yield descriptor


__all__ = ["BodyLoader", "PartSource", "PartUploader", "load_part_body", "part_step_name"]
