"""HTTP payload models for the transfer execution API."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from s3_sync_workflow.domain.entities import TransferExecution
from s3_sync_workflow.domain.executions import ExecutionStatus


class TransferApiModel(BaseModel):
    """Base model for API payloads."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class TransferCreateMessage(TransferApiModel):
    """Request to copy one key from the source to the destination bucket."""

    key: str = Field(min_length=1)


class TransferCreatedResponse(TransferApiModel):
    """Identifier of a newly created execution."""

    instance_id: str = Field(alias="instanceId")


class TransferStatusResponse(TransferApiModel):
    """Observable state of one execution."""

    instance_id: str = Field(alias="instanceId")
    key: str
    status: ExecutionStatus
    error: str | None = None
    bytes_transferred: int = Field(alias="bytesTransferred")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    completed_at: datetime | None = Field(default=None, alias="completedAt")

    @classmethod
    def from_execution(cls, execution: TransferExecution) -> TransferStatusResponse:
        return cls(
            instance_id=execution.execution_id,
            key=execution.key,
            status=execution.status,
            error=execution.last_error,
            bytes_transferred=execution.bytes_transferred,
            created_at=execution.created_at,
            updated_at=execution.updated_at,
            completed_at=execution.completed_at,
        )


class TransferListResponse(TransferApiModel):
    """All known executions."""

    transfers: list[TransferStatusResponse] = Field(default_factory=list)


__all__ = [
    "TransferCreateMessage",
    "TransferCreatedResponse",
    "TransferListResponse",
    "TransferStatusResponse",
]
