from __future__ import annotations

import time
from collections.abc import Iterator

import pytest
from conftest import FakeS3, make_payload
from fastapi.testclient import TestClient

import s3_sync_workflow.api.dependencies as dependencies
from s3_sync_workflow.bootstrap import build_transfer_service
from s3_sync_workflow.config import Settings
from s3_sync_workflow.main import create_app

MIB = 1024 * 1024
_PAYLOAD = make_payload(6 * MIB)


@pytest.fixture
def stores() -> tuple[FakeS3, FakeS3]:
    return FakeS3("src", {"data/object.bin": _PAYLOAD}), FakeS3("dst")


@pytest.fixture
def client(
    monkeypatch: pytest.MonkeyPatch,
    stores: tuple[FakeS3, FakeS3],
) -> Iterator[TestClient]:
    source_store, destination_store = stores
    for name, value in {
        "S3_SYNC_SOURCE_ENDPOINT": "http://src.local",
        "S3_SYNC_SOURCE_BUCKET": "src",
        "S3_SYNC_SOURCE_ACCESS_KEY_ID": "source-key",
        "S3_SYNC_SOURCE_SECRET_ACCESS_KEY": "source-secret",
        "S3_SYNC_DESTINATION_ENDPOINT": "http://dst.local",
        "S3_SYNC_DESTINATION_BUCKET": "dst",
        "S3_SYNC_DESTINATION_ACCESS_KEY_ID": "destination-key",
        "S3_SYNC_DESTINATION_SECRET_ACCESS_KEY": "destination-secret",
        "S3_SYNC_PART_SIZE_MB": "5",
    }.items():
        monkeypatch.setenv(name, value)

    def _build(settings: Settings):
        return build_transfer_service(
            settings,
            source_transport=source_store.transport,
            destination_transport=destination_store.transport,
        )

    monkeypatch.setattr(dependencies, "build_transfer_service", _build)
    dependencies.get_settings.cache_clear()
    dependencies.get_transfer_service.cache_clear()

    with TestClient(create_app()) as test_client:
        yield test_client

    dependencies.get_settings.cache_clear()
    dependencies.get_transfer_service.cache_clear()


def _wait_for_terminal(client: TestClient, instance_id: str) -> dict[str, object]:
    for _ in range(500):
        body = client.get(f"/transfers/{instance_id}").json()
        if body["status"] in {"COMPLETED", "FAILED", "TERMINATED"}:
            return body
        time.sleep(0.01)
    raise AssertionError(f"Execution {instance_id} did not finish.")


def test_healthz(client: TestClient) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "runningExecutions": 0}


def test_healthz_reports_running_executions(
    client: TestClient,
    stores: tuple[FakeS3, FakeS3],
) -> None:
    stores[1].failing_parts = {1}

    client.post("/transfers", json={"key": "data/object.bin"})
    response = client.get("/healthz")

    assert response.json()["runningExecutions"] == 1


def test_create_transfer_runs_to_completion(
    client: TestClient,
    stores: tuple[FakeS3, FakeS3],
) -> None:
    response = client.post("/transfers", json={"key": "data/object.bin"})

    assert response.status_code == 201
    instance_id = response.json()["instanceId"]

    body = _wait_for_terminal(client, instance_id)
    assert body["status"] == "COMPLETED"
    assert body["key"] == "data/object.bin"
    assert body["bytesTransferred"] == len(_PAYLOAD)
    assert body["error"] is None
    assert body["completedAt"] is not None
    assert stores[1].objects["data/object.bin"] == _PAYLOAD
    assert stores[1].completed_part_lists == [[1, 2]]


def test_missing_source_object_reports_failure(client: TestClient) -> None:
    instance_id = client.post("/transfers", json={"key": "missing.bin"}).json()["instanceId"]

    body = _wait_for_terminal(client, instance_id)

    assert body["status"] == "FAILED"
    assert body["error"]


def test_list_transfers(client: TestClient) -> None:
    instance_id = client.post("/transfers", json={"key": "data/object.bin"}).json()["instanceId"]
    _wait_for_terminal(client, instance_id)

    response = client.get("/transfers")

    assert response.status_code == 200
    assert [item["instanceId"] for item in response.json()["transfers"]] == [instance_id]


def test_create_with_leading_slash_returns_400(client: TestClient) -> None:
    response = client.post("/transfers", json={"key": "/absolute.bin"})

    assert response.status_code == 400
    assert "must not start with '/'" in response.json()["detail"]


@pytest.mark.parametrize("payload", [{}, {"key": ""}, {"key": "a.bin", "bucket": "other"}])
def test_create_with_invalid_payload_returns_422(
    client: TestClient,
    payload: dict[str, str],
) -> None:
    response = client.post("/transfers", json=payload)

    assert response.status_code == 422


def test_unknown_transfer_returns_404(client: TestClient) -> None:
    assert client.get("/transfers/unknown").status_code == 404
    assert client.delete("/transfers/unknown").status_code == 404


def test_terminate_completed_transfer_returns_409(client: TestClient) -> None:
    instance_id = client.post("/transfers", json={"key": "data/object.bin"}).json()["instanceId"]
    _wait_for_terminal(client, instance_id)

    response = client.delete(f"/transfers/{instance_id}")

    assert response.status_code == 409
