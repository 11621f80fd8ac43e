"""Destination-side multipart upload session state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum

from s3_sync_workflow.domain.parts import PartResult


class UploadSessionState(StrEnum):
    """Multipart upload protocol states."""

    UNINITIATED = "UNINITIATED"
    INITIATED = "INITIATED"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"


@dataclass(slots=True)
class UploadSession:
    """Mutable state for one multipart upload.

    Parts are recorded under a lock so concurrent uploaders never lose an
    update; each part number is recorded once.
    """

    destination_key: str
    upload_id: str | None = None
    state: UploadSessionState = UploadSessionState.UNINITIATED
    _parts: dict[int, PartResult] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    def mark_initiated(self, upload_id: str) -> None:
        """Move UNINITIATED -> INITIATED."""

        if self.state is not UploadSessionState.UNINITIATED:
            raise RuntimeError(f"Cannot initiate an upload session in state {self.state}.")
        self.upload_id = upload_id
        self.state = UploadSessionState.INITIATED

    def mark_completed(self) -> None:
        """Move INITIATED -> COMPLETED."""

        self._require_initiated("complete")
        self.state = UploadSessionState.COMPLETED

    def mark_aborted(self) -> None:
        """Move INITIATED -> ABORTED."""

        self._require_initiated("abort")
        self.state = UploadSessionState.ABORTED

    @property
    def is_open(self) -> bool:
        """Whether the upload still needs completing or aborting."""

        return self.state is UploadSessionState.INITIATED

    async def record_part(self, result: PartResult) -> None:
        """Append one successful part result."""

        async with self._lock:
            self._require_initiated("record parts for")
            existing = self._parts.get(result.part_number)
            if existing is not None and existing != result:
                raise RuntimeError(
                    f"Part {result.part_number} already recorded with ETag {existing.etag}."
                )
            self._parts[result.part_number] = result

    def ordered_parts(self) -> list[PartResult]:
        """Return recorded parts ascending by part number."""

        return [self._parts[number] for number in sorted(self._parts)]

    @property
    def part_count(self) -> int:
        return len(self._parts)

    def _require_initiated(self, action: str) -> None:
        if self.state is not UploadSessionState.INITIATED:
            raise RuntimeError(f"Cannot {action} an upload session in state {self.state}.")


__all__ = ["UploadSession", "UploadSessionState"]
