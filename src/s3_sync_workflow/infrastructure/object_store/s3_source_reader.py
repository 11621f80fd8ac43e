"""Source-side reads against an S3-compatible store."""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx

from s3_sync_workflow.domain.errors import (
    DownloadFailedError,
    RangeReadFailedError,
    SizeUnavailableError,
)
from s3_sync_workflow.domain.ports import ObjectSource
from s3_sync_workflow.infrastructure.object_store.object_urls import (
    describe_failure,
    object_url,
)
from s3_sync_workflow.infrastructure.object_store.signed_http_client import SignedHttpClient

_DEFAULT_STREAM_CHUNK_SIZE = 1024 * 1024


class S3SourceReader(ObjectSource):
    """Reads object size, byte ranges and full streams from the source bucket."""

    def __init__(
        self,
        http_client: SignedHttpClient,
        endpoint: str,
        bucket: str,
        stream_chunk_size: int = _DEFAULT_STREAM_CHUNK_SIZE,
    ) -> None:
        self._http = http_client
        self._endpoint = endpoint
        self._bucket = bucket
        self._stream_chunk_size = max(1, stream_chunk_size)

    async def probe_size(self, key: str) -> int:
        """HEAD the object and return its Content-Length."""

        url = object_url(self._endpoint, self._bucket, key)
        try:
            response = await self._http.request("HEAD", url)
        except httpx.HTTPError as exc:
            raise SizeUnavailableError(f"HEAD {url} failed: {exc}") from exc

        if not response.is_success:
            raise SizeUnavailableError(f"HEAD {url} failed: {describe_failure(response)}")

        raw_length = response.headers.get("Content-Length")
        if raw_length is None:
            raise SizeUnavailableError(f"HEAD {url} did not report Content-Length.")
        try:
            size = int(raw_length)
        except ValueError as exc:
            raise SizeUnavailableError(
                f"HEAD {url} returned invalid Content-Length '{raw_length}'."
            ) from exc
        if size < 0:
            raise SizeUnavailableError(f"HEAD {url} returned negative Content-Length.")
        return size

    async def read_range(self, key: str, start: int, end: int) -> AsyncIterator[bytes]:
        """Stream exactly the inclusive byte range [start, end].

        A store that ignores the Range header and answers 200 with the full
        body is tolerated: the requested window is cut out of the stream.
        """

        url = object_url(self._endpoint, self._bucket, key)
        headers = {"Range": f"bytes={start}-{end}"}
        try:
            async with self._http.stream("GET", url, headers=headers) as response:
                if response.status_code not in (200, 206):
                    await response.aread()
                    raise RangeReadFailedError(
                        f"GET {url} [{headers['Range']}] failed: {describe_failure(response)}"
                    )

                skip = start if response.status_code == 200 else 0
                remaining = end - start + 1
                async for chunk in response.aiter_bytes(self._stream_chunk_size):
                    if skip:
                        if len(chunk) <= skip:
                            skip -= len(chunk)
                            continue
                        chunk = chunk[skip:]
                        skip = 0
                    if len(chunk) > remaining:
                        chunk = chunk[:remaining]
                    remaining -= len(chunk)
                    if chunk:
                        yield chunk
                    if remaining == 0:
                        return
        except httpx.HTTPError as exc:
            raise RangeReadFailedError(f"GET {url} [{headers['Range']}] failed: {exc}") from exc

        if remaining:
            raise RangeReadFailedError(
                f"GET {url} [{headers['Range']}] ended {remaining} byte(s) short."
            )

    async def read_all(self, key: str) -> AsyncIterator[bytes]:
        """Stream the whole object."""

        url = object_url(self._endpoint, self._bucket, key)
        try:
            async with self._http.stream("GET", url) as response:
                if not response.is_success:
                    await response.aread()
                    raise DownloadFailedError(f"GET {url} failed: {describe_failure(response)}")
                async for chunk in response.aiter_bytes(self._stream_chunk_size):
                    yield chunk
        except httpx.HTTPError as exc:
            raise DownloadFailedError(f"GET {url} failed: {exc}") from exc


__all__ = ["S3SourceReader"]
