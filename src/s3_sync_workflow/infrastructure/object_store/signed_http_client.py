"""SigV4-signed async HTTP client for S3-compatible endpoints."""

from __future__ import annotations

from collections.abc import AsyncIterator, Generator, Mapping
from contextlib import asynccontextmanager

import httpx
from botocore.auth import UNSIGNED_PAYLOAD, S3SigV4Auth, SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

_SIGNED_HEADER_NAMES = frozenset({"host", "range", "content-type", "content-md5"})
_AUTH_HEADER_NAMES = (
    "Authorization",
    "X-Amz-Date",
    "X-Amz-Content-SHA256",
    "X-Amz-Security-Token",
)


class _UnsignedPayloadS3SigV4Auth(S3SigV4Auth):
    """S3 signer that never hashes the body, so streamed parts are not buffered twice."""

    def payload(self, request: AWSRequest) -> str:
        return UNSIGNED_PAYLOAD


class SigV4HttpxAuth(httpx.Auth):
    """httpx auth flow that signs each request with AWS Signature Version 4."""

    def __init__(
        self,
        *,
        service: str,
        access_key_id: str,
        secret_access_key: str,
        region: str,
        session_token: str | None = None,
    ) -> None:
        self._service = service
        self._region = region
        self._credentials = Credentials(access_key_id, secret_access_key, session_token)

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        headers = {
            name: value
            for name, value in request.headers.items()
            if name.lower() in _SIGNED_HEADER_NAMES or name.lower().startswith("x-amz-")
        }
        aws_request = AWSRequest(method=request.method, url=str(request.url), headers=headers)
        if self._service == "s3":
            signer: SigV4Auth = _UnsignedPayloadS3SigV4Auth(
                self._credentials, self._service, self._region
            )
        else:
            aws_request.headers["X-Amz-Content-SHA256"] = UNSIGNED_PAYLOAD
            signer = SigV4Auth(self._credentials, self._service, self._region)
        signer.add_auth(aws_request)

        for name in _AUTH_HEADER_NAMES:
            value = aws_request.headers.get(name)
            if value is not None:
                request.headers[name] = value
        yield request


class SignedHttpClient:
    """Authenticated HTTP client bound to one store's credentials."""

    def __init__(
        self,
        *,
        service: str,
        access_key_id: str,
        secret_access_key: str,
        region: str,
        session_token: str | None = None,
        timeout_seconds: float = 60.0,
        max_connections: int = 16,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._auth = SigV4HttpxAuth(
            service=service,
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            region=region,
            session_token=session_token,
        )
        self._timeout_seconds = timeout_seconds
        self._limits = httpx.Limits(max_connections=max(1, max_connections))
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
        content: bytes | None = None,
    ) -> httpx.Response:
        """Send one signed request and read the full response."""

        return await self._get_client().request(method, url, headers=headers, content=content)

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> AsyncIterator[httpx.Response]:
        """Send one signed request and yield the response with an unread body."""

        async with self._get_client().stream(method, url, headers=headers) as response:
            yield response

    async def aclose(self) -> None:
        """Close pooled connections if the client was opened."""

        client = self._client
        self._client = None
        if client is not None:
            await client.aclose()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                auth=self._auth,
                timeout=self._timeout_seconds,
                limits=self._limits,
                transport=self._transport,
            )
        return self._client


__all__ = ["SigV4HttpxAuth", "SignedHttpClient"]
