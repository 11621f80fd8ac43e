"""Domain public API."""

from s3_sync_workflow.domain.entities import (
    CompletedTransfer,
    TransferExecution,
    TransferOutcome,
    TransferRequest,
)
from s3_sync_workflow.domain.errors import (
    AbortFailedError,
    CompleteFailedError,
    DestinationError,
    DownloadFailedError,
    EmptyObjectUnsupportedError,
    ETagMissingError,
    ExecutionConflictError,
    ExecutionError,
    ExecutionNotFoundError,
    InitiateFailedError,
    PartUploadFailedError,
    PutObjectFailedError,
    RangeReadFailedError,
    SizeUnavailableError,
    SourceError,
    StepExhaustedError,
    StepTimeoutError,
    TransferError,
    TransferValidationError,
    UploadIdMissingError,
)
from s3_sync_workflow.domain.executions import (
    TERMINAL_EXECUTION_STATUSES,
    ExecutionStatus,
    StepRecord,
)
from s3_sync_workflow.domain.parts import PartDescriptor, PartResult
from s3_sync_workflow.domain.ports import (
    ExecutionRepository,
    MultipartDestination,
    ObjectSource,
    StepRecordRepository,
    StepRunner,
)
from s3_sync_workflow.domain.step_policy import (
    DEFAULT_CONTROL_STEP_POLICY,
    DEFAULT_PART_STEP_POLICY,
    StepPolicy,
)
from s3_sync_workflow.domain.transfer_models import (
    TransferCreatedResponse,
    TransferCreateMessage,
    TransferListResponse,
    TransferStatusResponse,
)
from s3_sync_workflow.domain.transfer_types import (
    BackoffKind,
    ChunkPlanKind,
    SmallObjectStrategy,
    UploadMode,
)
from s3_sync_workflow.domain.upload_session import UploadSession, UploadSessionState

__all__ = [
    "AbortFailedError",
    "BackoffKind",
    "ChunkPlanKind",
    "CompleteFailedError",
    "CompletedTransfer",
    "DEFAULT_CONTROL_STEP_POLICY",
    "DEFAULT_PART_STEP_POLICY",
    "DestinationError",
    "DownloadFailedError",
    "ETagMissingError",
    "EmptyObjectUnsupportedError",
    "ExecutionConflictError",
    "ExecutionError",
    "ExecutionNotFoundError",
    "ExecutionRepository",
    "ExecutionStatus",
    "InitiateFailedError",
    "MultipartDestination",
    "ObjectSource",
    "PartDescriptor",
    "PartResult",
    "PartUploadFailedError",
    "PutObjectFailedError",
    "RangeReadFailedError",
    "SizeUnavailableError",
    "SmallObjectStrategy",
    "SourceError",
    "StepExhaustedError",
    "StepPolicy",
    "StepRecord",
    "StepRecordRepository",
    "StepRunner",
    "StepTimeoutError",
    "TERMINAL_EXECUTION_STATUSES",
    "TransferCreateMessage",
    "TransferCreatedResponse",
    "TransferError",
    "TransferExecution",
    "TransferListResponse",
    "TransferOutcome",
    "TransferRequest",
    "TransferStatusResponse",
    "TransferValidationError",
    "UploadIdMissingError",
    "UploadMode",
    "UploadSession",
    "UploadSessionState",
]
