"""Application settings."""

from enum import StrEnum

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from s3_sync_workflow.domain.step_policy import StepPolicy
from s3_sync_workflow.domain.transfer_types import (
    BackoffKind,
    ChunkPlanKind,
    SmallObjectStrategy,
    UploadMode,
)

_MEBIBYTE = 1024 * 1024
# Smallest non-final part S3-compatible stores accept.
MIN_PART_SIZE_MB = 5


class RepositoryBackend(StrEnum):
    """Available persistence adapters for executions and step records."""

    IN_MEMORY = "in_memory"
    POSTGRES = "postgres"


class Settings(BaseSettings):
    """Runtime settings loaded from environment variables."""

    app_name: str = "S3 Sync Workflow"
    api_prefix: str = ""
    host: str = "0.0.0.0"
    port: int = 8080

    source_endpoint: str | None = None
    source_bucket: str | None = None
    source_access_key_id: str | None = None
    source_secret_access_key: str | None = None
    source_session_token: str | None = None
    source_region: str = "auto"

    destination_endpoint: str | None = None
    destination_bucket: str | None = None
    destination_access_key_id: str | None = None
    destination_secret_access_key: str | None = None
    destination_session_token: str | None = None
    destination_region: str = "auto"

    chunk_plan: ChunkPlanKind = ChunkPlanKind.STREAM
    part_size_mb: int = 20
    upload_mode: UploadMode = UploadMode.CONCURRENT
    upload_concurrency: int = 4
    small_object_strategy: SmallObjectStrategy = SmallObjectStrategy.SINGLE_PUT

    control_step_max_attempts: int = 6
    control_step_delay_seconds: float = 10.0
    control_step_backoff: BackoffKind = BackoffKind.CONSTANT
    control_step_timeout_seconds: float = 60.0
    part_step_max_attempts: int = 6
    part_step_delay_seconds: float = 30.0
    part_step_backoff: BackoffKind = BackoffKind.CONSTANT
    part_step_timeout_seconds: float = 3600.0

    http_timeout_seconds: float = 60.0
    http_max_connections: int = 16

    repository_backend: RepositoryBackend = RepositoryBackend.IN_MEMORY
    postgres_dsn: str | None = None
    postgres_pool_min_size: int = 1
    postgres_pool_max_size: int = 10

    @property
    def part_size_bytes(self) -> int:
        return self.part_size_mb * _MEBIBYTE

    @property
    def control_step_policy(self) -> StepPolicy:
        return StepPolicy(
            max_attempts=self.control_step_max_attempts,
            base_delay_seconds=self.control_step_delay_seconds,
            backoff=self.control_step_backoff,
            timeout_seconds=self.control_step_timeout_seconds,
        )

    @property
    def part_step_policy(self) -> StepPolicy:
        return StepPolicy(
            max_attempts=self.part_step_max_attempts,
            base_delay_seconds=self.part_step_delay_seconds,
            backoff=self.part_step_backoff,
            timeout_seconds=self.part_step_timeout_seconds,
        )

    @model_validator(mode="after")
    def validate_transfer_settings(self) -> "Settings":
        """Ensure planning, step policy and HTTP settings are valid."""

        if self.part_size_mb < MIN_PART_SIZE_MB:
            raise ValueError(f"S3_SYNC_PART_SIZE_MB must be >= {MIN_PART_SIZE_MB}.")
        if self.upload_concurrency < 1:
            raise ValueError("S3_SYNC_UPLOAD_CONCURRENCY must be >= 1.")
        if self.http_max_connections < 1:
            raise ValueError("S3_SYNC_HTTP_MAX_CONNECTIONS must be >= 1.")
        if self.upload_concurrency > self.http_max_connections:
            raise ValueError(
                "S3_SYNC_UPLOAD_CONCURRENCY must be <= S3_SYNC_HTTP_MAX_CONNECTIONS."
            )
        if self.http_timeout_seconds <= 0:
            raise ValueError("S3_SYNC_HTTP_TIMEOUT_SECONDS must be > 0.")
        for prefix in ("control_step", "part_step"):
            if getattr(self, f"{prefix}_max_attempts") < 1:
                raise ValueError(f"S3_SYNC_{prefix.upper()}_MAX_ATTEMPTS must be >= 1.")
            if getattr(self, f"{prefix}_delay_seconds") < 0:
                raise ValueError(f"S3_SYNC_{prefix.upper()}_DELAY_SECONDS must be >= 0.")
            if getattr(self, f"{prefix}_timeout_seconds") <= 0:
                raise ValueError(f"S3_SYNC_{prefix.upper()}_TIMEOUT_SECONDS must be > 0.")
        return self

    @model_validator(mode="after")
    def validate_repository_settings(self) -> "Settings":
        """Ensure backend-specific settings are valid."""

        if self.repository_backend == RepositoryBackend.POSTGRES and not self.postgres_dsn:
            raise ValueError(
                "S3_SYNC_POSTGRES_DSN is required when S3_SYNC_REPOSITORY_BACKEND=postgres."
            )
        if self.postgres_pool_min_size < 1:
            raise ValueError("S3_SYNC_POSTGRES_POOL_MIN_SIZE must be >= 1.")
        if self.postgres_pool_max_size < self.postgres_pool_min_size:
            raise ValueError(
                "S3_SYNC_POSTGRES_POOL_MAX_SIZE must be >= S3_SYNC_POSTGRES_POOL_MIN_SIZE."
            )
        return self

    model_config = SettingsConfigDict(env_prefix="S3_SYNC_", extra="ignore")


__all__ = ["MIN_PART_SIZE_MB", "RepositoryBackend", "Settings"]
