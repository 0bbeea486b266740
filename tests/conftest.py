"""Shared pytest fixtures for Thumbnail Studio tests."""

import os
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Generator

import pytest

# Settings are read once at import time, so point them at throwaway
# locations before anything from ``app`` is imported.
_SESSION_DIR = Path(tempfile.mkdtemp(prefix="thumbnail-studio-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_SESSION_DIR / 'test.db'}"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["STORAGE_PATH"] = str(_SESSION_DIR / "uploads")
os.environ["STAGING_PATH"] = str(_SESSION_DIR / "staging")
os.environ["SESSION_SECRET"] = "test-secret"

from fastapi.testclient import TestClient  # noqa: E402

from app.main import app  # noqa: E402
from app.services.imagen import ImageAcquisition, ImageProvider, get_image_acquisition  # noqa: E402
from app.services.storage import AssetStorage, LocalStorage, get_storage  # noqa: E402

# Smallest valid PNG header plus padding; the pipeline never decodes it
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

CDN_BASE_URL = "https://cdn.example.com"


class FakeProvider(ImageProvider):
    """Provider that records its calls and returns or raises a fixed outcome."""

    def __init__(self, name: str = "fake", result: bytes = PNG_BYTES, error: Exception | None = None):
        super().__init__(timeout=1.0)
        self.name = name
        self.result = result
        self.error = error
        self.calls: list[tuple[str, int, int]] = []

    async def fetch(self, prompt: str, width: int, height: int) -> bytes:
        self.calls.append((prompt, width, height))
        if self.error is not None:
            raise self.error
        return self.result


class FailingStorage(AssetStorage):
    """Storage whose backend upload always blows up."""

    async def _upload_file(self, file_path: Path, folder: str) -> str:
        raise RuntimeError("CDN rejected the upload")


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that only records the delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def pytest_sessionfinish(session, exitstatus):
    shutil.rmtree(_SESSION_DIR, ignore_errors=True)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def provider() -> FakeProvider:
    """A provider that succeeds with ``PNG_BYTES``."""
    return FakeProvider(name="primary")


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def acquisition(provider: FakeProvider, sleep_recorder: SleepRecorder) -> ImageAcquisition:
    """Provider chain used by the API; tests may replace ``providers``."""
    return ImageAcquisition([provider], backoff_base=1.0, sleep=sleep_recorder)


@pytest.fixture
def test_storage(temp_dir: Path) -> LocalStorage:
    """Local storage that publishes under ``CDN_BASE_URL``."""
    return LocalStorage(temp_dir / "uploads", temp_dir / "staging", CDN_BASE_URL)


@pytest.fixture
def test_client(acquisition: ImageAcquisition, test_storage: AssetStorage) -> Generator[TestClient, None, None]:
    """TestClient with fake providers and temporary storage.

    Entering the client runs the app lifespan, which creates the tables.
    """
    app.dependency_overrides[get_image_acquisition] = lambda: acquisition
    app.dependency_overrides[get_storage] = lambda: test_storage
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def register_user(client: TestClient, name: str = "Test User") -> dict:
    """Register a fresh account on ``client`` and return the user payload.

    The database is shared by the whole session, so every call uses a
    unique email.
    """
    email = f"user-{uuid.uuid4().hex[:12]}@example.com"
    resp = client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email, "password": "s3cret-pass"},
    )
    assert resp.status_code == 201, resp.text
    user = resp.json()["user"]
    user["password"] = "s3cret-pass"
    return user


@pytest.fixture
def logged_in_client(test_client: TestClient) -> TestClient:
    """TestClient whose session belongs to a freshly registered user."""
    test_client.user = register_user(test_client)
    return test_client
