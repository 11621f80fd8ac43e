"""URL and response helpers shared by the S3 adapters."""

from __future__ import annotations

from urllib.parse import quote

import httpx

_MAX_DETAIL_LENGTH = 512


def normalize_endpoint(endpoint: str) -> str:
    """Return an endpoint base URL with scheme and without trailing slash.

    Bare hosts (`s3.example.com`) are treated as https.
    """

    normalized = endpoint.strip().rstrip("/")
    if not normalized:
        raise ValueError("Object store endpoint cannot be empty.")
    if "://" not in normalized:
        normalized = f"https://{normalized}"
    return normalized


def object_url(endpoint: str, bucket: str, key: str) -> str:
    """Build a path-style object URL."""

    return f"{normalize_endpoint(endpoint)}/{quote(bucket, safe='')}/{quote(key, safe='/~')}"


def describe_failure(response: httpx.Response) -> str:
    """Summarise a failed response for error messages."""

    text = response.text.strip()
    if len(text) > _MAX_DETAIL_LENGTH:
        text = f"{text[:_MAX_DETAIL_LENGTH]}..."
    return f"{response.status_code} {text or '<no response body>'}"


__all__ = ["describe_failure", "normalize_endpoint", "object_url"]
