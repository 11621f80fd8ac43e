"""Destination-side multipart upload protocol against an S3-compatible store."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from urllib.parse import quote
from xml.etree.ElementTree import Element, ParseError, SubElement, fromstring, tostring

import httpx

from s3_sync_workflow.domain.errors import (
    AbortFailedError,
    CompleteFailedError,
    ETagMissingError,
    InitiateFailedError,
    PartUploadFailedError,
    PutObjectFailedError,
    UploadIdMissingError,
)
from s3_sync_workflow.domain.parts import PartResult
from s3_sync_workflow.domain.ports import MultipartDestination
from s3_sync_workflow.infrastructure.object_store.object_urls import (
    describe_failure,
    object_url,
)
from s3_sync_workflow.infrastructure.object_store.signed_http_client import SignedHttpClient

logger = logging.getLogger(__name__)


class S3MultipartDestination(MultipartDestination):
    """Drives initiate / upload-part / complete / abort on the destination bucket."""

    def __init__(self, http_client: SignedHttpClient, endpoint: str, bucket: str) -> None:
        self._http = http_client
        self._endpoint = endpoint
        self._bucket = bucket

    async def initiate(self, key: str) -> str:
        """POST `?uploads` and return the UploadId from the response body."""

        url = f"{object_url(self._endpoint, self._bucket, key)}?uploads"
        try:
            response = await self._http.request("POST", url)
        except httpx.HTTPError as exc:
            raise InitiateFailedError(f"POST {url} failed: {exc}") from exc

        if not response.is_success:
            raise InitiateFailedError(f"POST {url} failed: {describe_failure(response)}")

        upload_id = _find_text(response.content, "UploadId")
        if not upload_id:
            raise UploadIdMissingError(f"POST {url} response did not contain an UploadId.")
        return upload_id

    async def upload_part(
        self,
        key: str,
        upload_id: str,
        part_number: int,
        body: bytes,
    ) -> PartResult:
        """PUT one part and return its ETag."""

        url = (
            f"{object_url(self._endpoint, self._bucket, key)}"
            f"?partNumber={part_number}&uploadId={quote(upload_id, safe='')}"
        )
        try:
            response = await self._http.request("PUT", url, content=body)
        except httpx.HTTPError as exc:
            raise PartUploadFailedError(
                f"Part {part_number} upload failed: {exc}", part_number=part_number
            ) from exc

        if not response.is_success:
            raise PartUploadFailedError(
                f"Part {part_number} upload failed: {describe_failure(response)}",
                part_number=part_number,
            )

        etag = response.headers.get("ETag")
        if not etag:
            raise ETagMissingError(
                f"Part {part_number} upload returned no ETag.", part_number=part_number
            )
        return PartResult(part_number=part_number, etag=etag)

    async def complete(self, key: str, upload_id: str, parts: Sequence[PartResult]) -> None:
        """POST the ordered part list to assemble the object."""

        numbers = [part.part_number for part in parts]
        if numbers != sorted(set(numbers)):
            raise CompleteFailedError(
                f"Completion part list must be strictly ascending, got {numbers}."
            )

        url = (
            f"{object_url(self._endpoint, self._bucket, key)}"
            f"?uploadId={quote(upload_id, safe='')}"
        )
        try:
            response = await self._http.request(
                "POST",
                url,
                headers={"Content-Type": "application/xml"},
                content=build_complete_multipart_upload_xml(parts),
            )
        except httpx.HTTPError as exc:
            raise CompleteFailedError(f"POST {url} failed: {exc}") from exc

        if not response.is_success:
            raise CompleteFailedError(f"POST {url} failed: {describe_failure(response)}")

        # S3 may report a completion error inside a 200 response body.
        if _root_tag(response.content) == "Error":
            raise CompleteFailedError(f"POST {url} failed: {describe_failure(response)}")

    async def abort(self, key: str, upload_id: str) -> None:
        """DELETE the upload; an upload that is already gone is tolerated."""

        url = (
            f"{object_url(self._endpoint, self._bucket, key)}"
            f"?uploadId={quote(upload_id, safe='')}"
        )
        try:
            response = await self._http.request("DELETE", url)
        except httpx.HTTPError as exc:
            raise AbortFailedError(f"DELETE {url} failed: {exc}") from exc

        if response.status_code == 404:
            logger.warning(
                "Multipart upload '%s' for key '%s' was already gone on abort.",
                upload_id,
                key,
            )
            return
        if not response.is_success:
            raise AbortFailedError(f"DELETE {url} failed: {describe_failure(response)}")

    async def put_object(self, key: str, body: bytes) -> None:
        """PUT a whole object with a single request."""

        url = object_url(self._endpoint, self._bucket, key)
        try:
            response = await self._http.request("PUT", url, content=body)
        except httpx.HTTPError as exc:
            raise PutObjectFailedError(f"PUT {url} failed: {exc}") from exc

        if not response.is_success:
            raise PutObjectFailedError(f"PUT {url} failed: {describe_failure(response)}")


def build_complete_multipart_upload_xml(parts: Sequence[PartResult]) -> bytes:
    """Render the CompleteMultipartUpload request body."""

    root = Element("CompleteMultipartUpload")
    for part in parts:
        part_element = SubElement(root, "Part")
        SubElement(part_element, "PartNumber").text = str(part.part_number)
        SubElement(part_element, "ETag").text = part.etag
    return tostring(root, encoding="utf-8", xml_declaration=True)


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _root_tag(content: bytes) -> str | None:
    if not content.strip():
        return None
    try:
        return _local_name(fromstring(content).tag)
    except ParseError:
        return None


def _find_text(content: bytes, name: str) -> str | None:
    """Return the text of the first element named `name`, ignoring namespaces."""

    try:
        root = fromstring(content)
    except ParseError:
        return None
    for element in root.iter():
        if _local_name(element.tag) == name:
            text = (element.text or "").strip()
            return text or None
    return None


__all__ = ["S3MultipartDestination", "build_complete_multipart_upload_xml"]
