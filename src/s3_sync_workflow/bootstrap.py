"""Application bootstrap/wiring."""

import logging
from dataclasses import dataclass

import httpx

from s3_sync_workflow.application.services import TransferService
from s3_sync_workflow.application.transfers import TransferOrchestrator
from s3_sync_workflow.config import RepositoryBackend, Settings
from s3_sync_workflow.domain.ports import StepRunner
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

logger = logging.getLogger(__name__)

_SIGNING_SERVICE = "s3"


@dataclass(slots=True, frozen=True)
class _StoreBinding:
    endpoint: str
    bucket: str
    client: SignedHttpClient


def _require(value: str | None, env_name: str) -> str:
    if not value:
        raise ValueError(f"{env_name} is required.")
    return value


def _build_repository(
    settings: Settings,
) -> InMemoryTransferRepository | PostgresTransferRepository:
    if settings.repository_backend == RepositoryBackend.POSTGRES:
        if settings.postgres_dsn is None:
            raise ValueError(
                "S3_SYNC_POSTGRES_DSN is required when S3_SYNC_REPOSITORY_BACKEND=postgres."
            )
        return PostgresTransferRepository(
            dsn=settings.postgres_dsn,
            min_pool_size=settings.postgres_pool_min_size,
            max_pool_size=settings.postgres_pool_max_size,
        )
    return InMemoryTransferRepository()


def _build_store(
    settings: Settings,
    side: str,
    transport: httpx.AsyncBaseTransport | None,
) -> _StoreBinding:
    env_prefix = f"S3_SYNC_{side.upper()}"
    client = SignedHttpClient(
        service=_SIGNING_SERVICE,
        access_key_id=_require(
            getattr(settings, f"{side}_access_key_id"), f"{env_prefix}_ACCESS_KEY_ID"
        ),
        secret_access_key=_require(
            getattr(settings, f"{side}_secret_access_key"), f"{env_prefix}_SECRET_ACCESS_KEY"
        ),
        region=getattr(settings, f"{side}_region"),
        session_token=getattr(settings, f"{side}_session_token"),
        timeout_seconds=settings.http_timeout_seconds,
        max_connections=settings.http_max_connections,
        transport=transport,
    )
    return _StoreBinding(
        endpoint=_require(getattr(settings, f"{side}_endpoint"), f"{env_prefix}_ENDPOINT"),
        bucket=_require(getattr(settings, f"{side}_bucket"), f"{env_prefix}_BUCKET"),
        client=client,
    )


def build_transfer_service(
    settings: Settings,
    source_transport: httpx.AsyncBaseTransport | None = None,
    destination_transport: httpx.AsyncBaseTransport | None = None,
) -> TransferService:
    """Compose service graph."""

    repository = _build_repository(settings)
    source = _build_store(settings, "source", source_transport)
    destination = _build_store(settings, "destination", destination_transport)

    def step_runner_for(execution_id: str) -> StepRunner:
        return DurableStepExecutor(execution_id=execution_id, repository=repository)

    orchestrator = TransferOrchestrator(
        source=S3SourceReader(source.client, source.endpoint, source.bucket),
        destination=S3MultipartDestination(
            destination.client,
            destination.endpoint,
            destination.bucket,
        ),
        step_runner_factory=step_runner_for,
        chunk_plan=settings.chunk_plan,
        part_size=settings.part_size_bytes,
        upload_mode=settings.upload_mode,
        upload_concurrency=settings.upload_concurrency,
        small_object_strategy=settings.small_object_strategy,
        control_policy=settings.control_step_policy,
        part_policy=settings.part_step_policy,
    )

    closers = [source.client.aclose, destination.client.aclose]
    if isinstance(repository, PostgresTransferRepository):
        closers.append(repository.close)

    logger.info(
        "Transfers from %s/%s to %s/%s use %s plan, %d MiB parts, %s uploads.",
        source.endpoint,
        source.bucket,
        destination.endpoint,
        destination.bucket,
        settings.chunk_plan,
        settings.part_size_mb,
        settings.upload_mode,
    )
    return TransferService(repository=repository, orchestrator=orchestrator, closers=closers)


__all__ = ["build_transfer_service"]
