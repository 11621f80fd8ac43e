from __future__ import annotations

import hashlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import unquote
from xml.etree.ElementTree import fromstring

import httpx
import pytest

from s3_sync_workflow.domain.step_policy import StepPolicy
from s3_sync_workflow.infrastructure.object_store import SignedHttpClient

ZERO_DELAY_POLICY = StepPolicy(max_attempts=3, base_delay_seconds=0.0, timeout_seconds=30.0)


def make_payload(size: int) -> bytes:
    """Deterministic payload whose parts differ from each other."""

    block = hashlib.sha256(str(size).encode()).digest() * 8
    repeats, remainder = divmod(size, len(block) + 1)
    chunks = [block + bytes([index % 251]) for index in range(repeats)]
    return b"".join(chunks) + block[:remainder]


@dataclass
class _MultipartUpload:
    key: str
    parts: dict[int, tuple[str, bytes]] = field(default_factory=dict)


class FakeS3:
    """In-memory S3-compatible store served through `httpx.MockTransport`."""

    def __init__(self, bucket: str, objects: dict[str, bytes] | None = None) -> None:
        self.bucket = bucket
        self.objects: dict[str, bytes] = dict(objects or {})
        self.uploads: dict[str, _MultipartUpload] = {}
        self.requests: list[tuple[str, str]] = []
        self.completed_part_lists: list[list[int]] = []
        self.uploaded_part_numbers: list[int] = []
        self.abort_calls = 0
        self.put_calls = 0
        self.initiate_calls = 0
        self.range_gets = 0
        self.full_gets = 0
        self.ignore_range = False
        self.part_failures: dict[int, int] = {}
        self.failing_parts: set[int] = set()
        self.abort_status: int | None = None
        self.omit_etag = False
        self._upload_counter = 0
        self.transport = httpx.MockTransport(self._handle)

    def client(self) -> SignedHttpClient:
        return SignedHttpClient(
            service="s3",
            access_key_id="test-access-key",
            secret_access_key="test-secret-key",
            region="auto",
            transport=self.transport,
        )

    def method_count(self, method: str) -> int:
        return sum(1 for seen, _ in self.requests if seen == method)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        assert request.headers["Authorization"].startswith("AWS4-HMAC-SHA256 ")
        self.requests.append((request.method, str(request.url)))

        bucket, _, raw_key = request.url.path.lstrip("/").partition("/")
        if bucket != self.bucket:
            return httpx.Response(404, text="<Error><Code>NoSuchBucket</Code></Error>")
        key = unquote(raw_key)
        params = request.url.params

        if request.method == "HEAD":
            return self._head(key)
        if request.method == "GET":
            return self._get(key, request.headers.get("Range"))
        if request.method == "POST" and "uploads" in params:
            return self._initiate(key)
        if request.method == "PUT" and "partNumber" in params:
            return self._upload_part(params["uploadId"], int(params["partNumber"]), request.content)
        if request.method == "PUT":
            self.put_calls += 1
            self.objects[key] = request.content
            return httpx.Response(200, headers={"ETag": _etag(request.content)})
        if request.method == "POST" and "uploadId" in params:
            return self._complete(key, params["uploadId"], request.content)
        if request.method == "DELETE" and "uploadId" in params:
            return self._abort(params["uploadId"])
        return httpx.Response(400, text="<Error><Code>InvalidRequest</Code></Error>")

    def _head(self, key: str) -> httpx.Response:
        body = self.objects.get(key)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, headers={"Content-Length": str(len(body))})

    def _get(self, key: str, range_header: str | None) -> httpx.Response:
        body = self.objects.get(key)
        if body is None:
            return httpx.Response(404, text="<Error><Code>NoSuchKey</Code></Error>")
        if range_header is None or self.ignore_range:
            self.full_gets += 1
            return httpx.Response(200, content=body)
        self.range_gets += 1
        start_text, end_text = range_header.removeprefix("bytes=").split("-", 1)
        start, end = int(start_text), int(end_text)
        return httpx.Response(
            206,
            content=body[start : end + 1],
            headers={"Content-Range": f"bytes {start}-{end}/{len(body)}"},
        )

    def _initiate(self, key: str) -> httpx.Response:
        self.initiate_calls += 1
        self._upload_counter += 1
        upload_id = f"upload-{self._upload_counter}"
        self.uploads[upload_id] = _MultipartUpload(key=key)
        return httpx.Response(
            200,
            text=(
                '<?xml version="1.0" encoding="UTF-8"?>'
                '<InitiateMultipartUploadResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
                f"<Bucket>{self.bucket}</Bucket><Key>{key}</Key>"
                f"<UploadId>{upload_id}</UploadId>"
                "</InitiateMultipartUploadResult>"
            ),
        )

    def _upload_part(self, upload_id: str, part_number: int, body: bytes) -> httpx.Response:
        upload = self.uploads.get(upload_id)
        if upload is None:
            return httpx.Response(404, text="<Error><Code>NoSuchUpload</Code></Error>")
        remaining_failures = self.part_failures.get(part_number, 0)
        if part_number in self.failing_parts or remaining_failures > 0:
            if remaining_failures > 0:
                self.part_failures[part_number] = remaining_failures - 1
            return httpx.Response(500, text="<Error><Code>InternalError</Code></Error>")
        self.uploaded_part_numbers.append(part_number)
        etag = _etag(f"{upload_id}:{part_number}".encode() + body)
        upload.parts[part_number] = (etag, body)
        headers = {} if self.omit_etag else {"ETag": etag}
        return httpx.Response(200, headers=headers)

    def _complete(self, key: str, upload_id: str, content: bytes) -> httpx.Response:
        upload = self.uploads.get(upload_id)
        if upload is None:
            return httpx.Response(404, text="<Error><Code>NoSuchUpload</Code></Error>")
        root = fromstring(content)
        listed = [
            (int(part.findtext("PartNumber", "0")), part.findtext("ETag", ""))
            for part in root.findall("Part")
        ]
        numbers = [number for number, _ in listed]
        self.completed_part_lists.append(numbers)
        for number, etag in listed:
            if upload.parts.get(number, ("", b""))[0] != etag:
                return httpx.Response(400, text="<Error><Code>InvalidPart</Code></Error>")
        self.objects[key] = b"".join(upload.parts[number][1] for number in numbers)
        del self.uploads[upload_id]
        return httpx.Response(
            200,
            text=f"<CompleteMultipartUploadResult><Key>{key}</Key></CompleteMultipartUploadResult>",
        )

    def _abort(self, upload_id: str) -> httpx.Response:
        self.abort_calls += 1
        if self.abort_status is not None:
            return httpx.Response(self.abort_status, text="<Error><Code>Forced</Code></Error>")
        if self.uploads.pop(upload_id, None) is None:
            return httpx.Response(404, text="<Error><Code>NoSuchUpload</Code></Error>")
        return httpx.Response(204)


def _etag(body: bytes) -> str:
    return f'"{hashlib.md5(body).hexdigest()}"'


class RecordingSleep:
    """Sleep replacement that records requested delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_unit(outcomes: list[Any]) -> Callable[[], Awaitable[Any]]:
    """Unit that raises or returns the next scripted outcome per call."""

    calls = iter(outcomes)

    async def unit() -> Any:
        outcome = next(calls)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    return unit


@pytest.fixture
def zero_delay_policy() -> StepPolicy:
    return ZERO_DELAY_POLICY
