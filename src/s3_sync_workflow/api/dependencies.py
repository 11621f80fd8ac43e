"""Dependency providers for FastAPI routes."""

from functools import lru_cache

from s3_sync_workflow.application.services import TransferService
from s3_sync_workflow.bootstrap import build_transfer_service
from s3_sync_workflow.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return singleton settings."""

    return Settings()


@lru_cache(maxsize=1)
def get_transfer_service() -> TransferService:
    """Return singleton service graph."""

    return build_transfer_service(get_settings())


__all__ = ["get_settings", "get_transfer_service"]
