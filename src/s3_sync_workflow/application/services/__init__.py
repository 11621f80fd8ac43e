"""Application services public API."""

from s3_sync_workflow.application.services.transfer_service import TransferService

__all__ = ["TransferService"]
