"""Top-level API router composition."""

from fastapi import APIRouter

from s3_sync_workflow.api.routes import health_router, transfers_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(transfers_router)

__all__ = ["api_router"]
