"""S3-compatible object store adapters."""

from s3_sync_workflow.infrastructure.object_store.s3_multipart_destination import (
    S3MultipartDestination,
)
from s3_sync_workflow.infrastructure.object_store.s3_source_reader import S3SourceReader
from s3_sync_workflow.infrastructure.object_store.signed_http_client import (
    SigV4HttpxAuth,
    SignedHttpClient,
)

__all__ = ["S3MultipartDestination", "S3SourceReader", "SigV4HttpxAuth", "SignedHttpClient"]
