"""HTTP API package."""

from s3_sync_workflow.api.router import api_router

__all__ = ["api_router"]
