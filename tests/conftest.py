from datetime import UTC, datetime

import pytest

from src.adapters.clock import FixedClock
from src.adapters.memory_store import InMemoryDocumentStore
from src.core.config import ServiceConfig
from src.core.entities import IncomingFile, RemoteAssetInfo

ENDPOINT = "https://ik.imagekit.io/demo"
UPLOAD_URL = "https://upload.imagekit.io/api/v1/files/upload"


class FakeRemoteDeleter:
    """Records deletions; fails for ids listed in fail_ids."""

    def __init__(self, fail_ids: set[str] | None = None):
        self.deleted: list[str] = []
        self.fail_ids = fail_ids or set()

    async def delete(self, file_id: str) -> None:
        if file_id in self.fail_ids:
            raise RuntimeError(f"remote refused {file_id}")
        self.deleted.append(file_id)


def make_remote_asset(n: int, slot: str = "profile") -> RemoteAssetInfo:
    path = f"/{slot}s/u1/{slot}_{n}.jpg"
    return RemoteAssetInfo(
        remote_ref=path,
        url=f"{ENDPOINT}{path}",
        preview_url=f"{ENDPOINT}/tr:n-media_library_thumbnail{path}",
        size_bytes=1000 + n,
        content_type="image/jpeg",
        file_id=f"file_{n}",
        name=f"{slot}_{n}.jpg",
    )


def upload_response_body(n: int = 1, slot: str = "profile") -> dict:
    path = f"/{slot}s/u1/{slot}_{n}.jpg"
    return {
        "fileId": f"file_{n}",
        "name": f"{slot}_{n}.jpg",
        "url": f"{ENDPOINT}{path}",
        "thumbnailUrl": f"{ENDPOINT}/tr:n-media_library_thumbnail{path}",
        "filePath": path,
        "size": 5002,
        "fileType": "image",
    }


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def config():
    return ServiceConfig(
        public_key="public_test_key_123456",
        private_key="private_test_key_123456",
        url_endpoint=ENDPOINT,
        upload_url=UPLOAD_URL,
        chunk_size_bytes=1024,
        timeout_seconds=5.0,
    )


@pytest.fixture
def jpeg_file():
    return IncomingFile(name="photo.jpg", content_type="image/jpeg", data=b"\xff\xd8" + b"x" * 5000)


@pytest.fixture
def make_asset():
    return make_remote_asset


@pytest.fixture
def response_body():
    return upload_response_body


@pytest.fixture
def deleter():
    return FakeRemoteDeleter()
