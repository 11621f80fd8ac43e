"""Transfer mode and policy enumerations."""

from enum import StrEnum


class ChunkPlanKind(StrEnum):
    """How the source object is divided into parts."""

    RANGE = "RANGE"
    STREAM = "STREAM"


class UploadMode(StrEnum):
    """How planned parts are dispatched to the destination."""

    SEQUENTIAL = "SEQUENTIAL"
    CONCURRENT = "CONCURRENT"


class SmallObjectStrategy(StrEnum):
    """Handling for objects that fit in a single part."""

    SINGLE_PUT = "SINGLE_PUT"
    MULTIPART = "MULTIPART"


class BackoffKind(StrEnum):
    """Growth pattern of the delay between step attempts."""

    CONSTANT = "constant"
    EXPONENTIAL = "exponential"


__all__ = ["BackoffKind", "ChunkPlanKind", "SmallObjectStrategy", "UploadMode"]
