"""Repository implementations."""

from s3_sync_workflow.infrastructure.repositories.in_memory_transfer_repository import (
    InMemoryTransferRepository,
)
from s3_sync_workflow.infrastructure.repositories.postgres_transfer_repository import (
    PostgresTransferRepository,
)

__all__ = ["InMemoryTransferRepository", "PostgresTransferRepository"]
