"""Domain exceptions for object transfer operations."""

from __future__ import annotations


class TransferError(Exception):
    """Base class for transfer errors."""


class SourceError(TransferError):
    """Base class for source-store failures."""


class SizeUnavailableError(SourceError):
    """Raised when the source store does not report an object size."""


class RangeReadFailedError(SourceError):
    """Raised when a ranged GET returns neither 200 nor 206."""


class DownloadFailedError(SourceError):
    """Raised when a full-object GET is not successful."""


class DestinationError(TransferError):
    """Base class for destination-store failures."""


class InitiateFailedError(DestinationError):
    """Raised when a multipart upload cannot be initiated."""


class UploadIdMissingError(InitiateFailedError):
    """Raised when the initiate response carries no parseable UploadId."""


class PartUploadFailedError(DestinationError):
    """Raised when one part upload is rejected."""

    def __init__(self, message: str, part_number: int) -> None:
        super().__init__(message)
        self.part_number = part_number


class ETagMissingError(PartUploadFailedError):
    """Raised when a part upload response omits its ETag."""


class CompleteFailedError(DestinationError):
    """Raised when the destination rejects the completion request."""


class AbortFailedError(DestinationError):
    """Raised when the destination rejects an abort request."""


class PutObjectFailedError(DestinationError):
    """Raised when a single-request object put is rejected."""


class EmptyObjectUnsupportedError(TransferError):
    """Raised when a zero-length object would need an empty multipart upload."""


class StepTimeoutError(TransferError):
    """Raised when a step attempt runs past the step's timeout budget."""


class StepExhaustedError(TransferError):
    """Raised when a step fails on every attempt its policy allows."""

    def __init__(self, step_name: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Step '{step_name}' failed after {attempts} attempt(s): {last_error}")
        self.step_name = step_name
        self.attempts = attempts
        self.last_error = last_error


class ExecutionError(Exception):
    """Base class for execution registry errors."""


class ExecutionNotFoundError(ExecutionError):
    """Raised when an execution cannot be found."""


class ExecutionConflictError(ExecutionError):
    """Raised when an operation conflicts with the execution's current status."""


class TransferValidationError(ExecutionError):
    """Raised when a transfer request is invalid."""


__all__ = [
    "AbortFailedError",
    "CompleteFailedError",
    "DestinationError",
    "DownloadFailedError",
    "ETagMissingError",
    "EmptyObjectUnsupportedError",
    "ExecutionConflictError",
    "ExecutionError",
    "ExecutionNotFoundError",
    "InitiateFailedError",
    "PartUploadFailedError",
    "PutObjectFailedError",
    "RangeReadFailedError",
    "SizeUnavailableError",
    "SourceError",
    "StepExhaustedError",
    "StepTimeoutError",
    "TransferError",
    "TransferValidationError",
    "UploadIdMissingError",
]
