"""Part descriptors and results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True, frozen=True)
class PartDescriptor:
    """One planned part: either an inclusive byte range or materialised bytes."""

    part_number: int
    start: int
    end: int
    data: bytes | None = None

    def __post_init__(self) -> None:
        if self.part_number < 1:
            raise ValueError("part_number must be >= 1.")
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid byte range [{self.start}, {self.end}].")
        if self.data is not None and len(self.data) != self.size:
            raise ValueError("Part data length does not match its byte range.")

    @property
    def size(self) -> int:
        """Number of bytes in the part."""

        return self.end - self.start + 1

    @property
    def range_header(self) -> str:
        """HTTP Range header value for this part."""

        return f"bytes={self.start}-{self.end}"


@dataclass(slots=True, frozen=True)
class PartResult:
    """Destination acknowledgement for one uploaded part."""

    part_number: int
    etag: str

    def to_record(self) -> dict[str, Any]:
        """Serialise for step-record persistence."""

        return {"partNumber": self.part_number, "etag": self.etag}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> PartResult:
        """Rebuild from a persisted step record."""

        return cls(part_number=int(record["partNumber"]), etag=str(record["etag"]))


__all__ = ["PartDescriptor", "PartResult"]
