"""Route modules public API."""

from s3_sync_workflow.api.routes.health import router as health_router
from s3_sync_workflow.api.routes.transfers import router as transfers_router

__all__ = ["health_router", "transfers_router"]
