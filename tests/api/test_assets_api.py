"""
API tests for the assets routes.
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from src.api.deps import get_service
from src.api.main import app
from src.api.routes.assets import STATUS_BY_KIND
from src.components.assets import create_asset_history_service
from src.core.config import ServiceConfig
from src.core.errors import ErrorKind

JPEG = b"\xff\xd8" + b"j" * 4000


@pytest.fixture
def service(config, store, clock, response_body):
    remote = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json=response_body()))
    )
    return create_asset_history_service(
        config, store, http_client=remote, clock=clock, delete_pruned_files=False
    )


@pytest.fixture
def client(service):
    app.dependency_overrides[get_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _upload(client, owner="u1", slot="profile", content_type="image/jpeg", data=JPEG):
    return client.post(f"/api/assets/{owner}/{slot}", files={"file": ("me.jpg", data, content_type)})


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "api", "configured": True}


def test_upload_returns_active_record(client):
    response = _upload(client)

    assert response.status_code == 201
    body = response.json()
    assert body["is_active"] is True
    assert body["url"] == "https://ik.imagekit.io/demo/profiles/u1/profile_1.jpg"
    assert body["content_type"] == "image/jpeg"


def test_upload_without_file(client):
    response = client.post("/api/assets/u1/profile")

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "no_file"


def test_upload_unsupported_type(client):
    response = _upload(client, content_type="application/pdf")

    assert response.status_code == 415
    detail = response.json()["detail"]
    assert detail["code"] == "unsupported_type"
    assert detail["message"].startswith("File type not allowed")


def test_upload_too_large(client):
    response = _upload(client, data=b"x" * (10_485_760 + 1))
    assert response.status_code == 413


def test_upload_unknown_slot(client):
    assert _upload(client, slot="avatar").status_code == 400


def test_history_and_activate(client):
    first = _upload(client).json()
    second = _upload(client).json()

    history = client.get("/api/assets/u1/profile/history", params={"limit": 10})
    assert history.status_code == 200
    items = history.json()["items"]
    assert {i["id"] for i in items} == {first["id"], second["id"]}
    assert sum(i["is_active"] for i in items) == 1

    activated = client.post("/api/assets/u1/profile/activate", json={"asset_id": first["id"]})
    assert activated.status_code == 200
    assert activated.json()["url"] == first["url"]
    assert activated.json()["record"]["is_active"] is True

    current = client.get("/api/assets/u1/profile/current")
    assert current.json() == {"owner_id": "u1", "slot": "profile", "url": first["url"]}


def test_activate_unknown_version(client):
    response = client.post("/api/assets/u1/profile/activate", json={"asset_id": "nope"})
    assert response.status_code == 404
    assert response.json()["detail"]["code"] == "not_found"


def test_activate_requires_asset_id(client):
    response = client.post("/api/assets/u1/profile/activate", json={"asset_id": ""})
    assert response.status_code == 422


def test_empty_history(client):
    response = client.get("/api/assets/u9/banner/history")
    assert response.status_code == 200
    assert response.json() == {"owner_id": "u9", "slot": "banner", "items": []}


def test_derived_urls(client):
    response = client.get(
        "/api/assets/derived",
        params={"url": "https://ik.imagekit.io/demo/profiles/u1/a.jpg", "slot": "profile"},
    )

    assert response.status_code == 200
    body = response.json()
    assert "w-150,h-150,c-fill" in body["thumbnail"]
    assert body["small"] is None


def test_derived_urls_rejects_unknown_slot(client):
    response = client.get("/api/assets/derived", params={"url": "https://x/y.jpg", "slot": "cover"})
    assert response.status_code == 422


def test_status_masks_credentials(client):
    body = client.get("/api/assets/status").json()

    assert body["configured"] is True
    assert body["credentials"]["private_key"] == "private_te..."
    assert "private_test_key_123456" not in str(body)


def test_unconfigured_service_returns_503(store, clock):
    service = create_asset_history_service(ServiceConfig(), store, clock=clock)
    app.dependency_overrides[get_service] = lambda: service
    try:
        response = _upload(TestClient(app))
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["detail"]["code"] == "missing_credentials"


def test_every_error_kind_has_a_status():
    assert set(STATUS_BY_KIND) == set(ErrorKind)
    assert STATUS_BY_KIND[ErrorKind.CANCELLED] == 499
    assert STATUS_BY_KIND[ErrorKind.TIMED_OUT] == 504
