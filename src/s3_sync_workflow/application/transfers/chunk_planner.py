"""Policies that divide an object into multipart parts.

Every policy numbers parts 1..N contiguously and covers the object's bytes
with no gaps or overlaps.
"""

from __future__ import annotations

import math
from collections.abc import AsyncIterable, AsyncIterator

from s3_sync_workflow.domain.parts import PartDescriptor


def part_count(size: int, part_size: int) -> int:
    """Number of parts for an object of `size` bytes."""

    _require_positive(part_size, "part_size")
    if size < 0:
        raise ValueError("size must be >= 0.")
    return math.ceil(size / part_size)


def plan_ranges(size: int, part_size: int) -> list[PartDescriptor]:
    """Split [0, size) into fixed-size inclusive byte ranges; the last may be short."""

    return [
        PartDescriptor(
            part_number=index + 1,
            start=index * part_size,
            end=min(size, (index + 1) * part_size) - 1,
        )
        for index in range(part_count(size, part_size))
    ]


def plan_slices(blob: bytes | bytearray | memoryview, chunk_size: int) -> list[PartDescriptor]:
    """Slice an in-memory object with the range arithmetic, materialising each part."""

    view = memoryview(blob)
    return [
        PartDescriptor(
            part_number=descriptor.part_number,
            start=descriptor.start,
            end=descriptor.end,
            data=bytes(view[descriptor.start : descriptor.end + 1]),
        )
        for descriptor in plan_ranges(len(view), chunk_size)
    ]


async def fill_buffers(
    stream: AsyncIterable[bytes],
    capacity: int,
) -> AsyncIterator[PartDescriptor]:
    """Re-chunk a byte stream into parts of exactly `capacity` bytes.

    Upstream chunk sizes do not matter: a full buffer is emitted as soon as
    it fills and the buffer is reused; leftover bytes at stream end become
    one final short part. An empty stream yields nothing.
    """

    _require_positive(capacity, "capacity")
    buffer = bytearray(capacity)
    window = memoryview(buffer)
    filled = 0
    offset = 0
    part_number = 1

    async for chunk in stream:
        incoming = memoryview(chunk)
        position = 0
        while position < len(incoming):
            count = min(capacity - filled, len(incoming) - position)
            window[filled : filled + count] = incoming[position : position + count]
            filled += count
            position += count
            if filled == capacity:
                yield PartDescriptor(
                    part_number=part_number,
                    start=offset,
                    end=offset + capacity - 1,
                    data=bytes(buffer),
                )
                part_number += 1
                offset += capacity
                filled = 0

    if filled:
        yield PartDescriptor(
            part_number=part_number,
            start=offset,
            end=offset + filled - 1,
            data=bytes(window[:filled]),
        )


def _require_positive(value: int, name: str) -> None:
    if value < 1:
        raise ValueError(f"{name} must be >= 1.")


__all__ = ["fill_buffers", "part_count", "plan_ranges", "plan_slices"]
