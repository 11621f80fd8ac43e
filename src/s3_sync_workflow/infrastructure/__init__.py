"""Infrastructure layer public API."""

from s3_sync_workflow.infrastructure.object_store import (
    S3MultipartDestination,
    S3SourceReader,
    SignedHttpClient,
)
from s3_sync_workflow.infrastructure.repositories import (
    InMemoryTransferRepository,
    PostgresTransferRepository,
)
from s3_sync_workflow.infrastructure.steps import DurableStepExecutor

__all__ = [
    "DurableStepExecutor",
    "InMemoryTransferRepository",
    "PostgresTransferRepository",
    "S3MultipartDestination",
    "S3SourceReader",
    "SignedHttpClient",
]
