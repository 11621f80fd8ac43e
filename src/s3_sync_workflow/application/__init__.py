"""Application layer public API."""

from s3_sync_workflow.application.services import TransferService
from s3_sync_workflow.application.transfers import TransferOrchestrator

__all__ = ["TransferOrchestrator", "TransferService"]
