"""
Pytest configuration and fixtures for photoselect tests.

The fake storage gateway keeps files in memory, records every call, and can
be told to fail specific operations so tests can assert on gateway traffic
without a bucket.
"""

import asyncio
import io
from collections.abc import AsyncGenerator, Coroutine
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from PIL import Image

from photoselect.api import create_app
from photoselect.config import Settings
from photoselect.container import ServiceContainer, build_container
from photoselect.errors import StorageError, StorageNotFoundError
from photoselect.models import StorageEntry

START_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: datetime = START_TIME):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeStorage:
    """In-memory stand-in for StorageService."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.files: dict[str, tuple[bytes, datetime]] = {}
        self.folders: set[str] = set()
        self.calls: list[tuple[str, str]] = []
        self.failures: dict[str, set[str]] = {}
        self.link_counter = 0
        self.in_flight = 0
        self.max_in_flight = 0

    # Test helpers

    def put(self, path: str, data: bytes = b"data", modified_at: datetime | None = None) -> None:
        self.files[path] = (data, modified_at or self.clock())

    def fail(self, operation: str, path: str) -> None:
        self.failures.setdefault(operation, set()).add(path)

    def calls_to(self, operation: str) -> list[str]:
        return [path for op, path in self.calls if op == operation]

    def _record(self, operation: str, path: str) -> None:
        self.calls.append((operation, path))
        if path in self.failures.get(operation, set()):
            raise StorageError(f"Simulated {operation} failure for '{path}'")

    def _entry(self, path: str) -> StorageEntry:
        data, modified_at = self.files[path]
        return StorageEntry(name=path.rsplit("/", 1)[-1], path=path, modified_at=modified_at, size=len(data))

    # Gateway interface

    async def list_folder(self, folder_path: str) -> list[StorageEntry]:
        self._record("list_folder", folder_path)
        prefix = f"{folder_path}/"
        return [
            self._entry(path)
            for path in sorted(self.files)
            if path.startswith(prefix) and "/" not in path[len(prefix) :]
        ]

    async def list_files(self, folder_path: str) -> list[StorageEntry]:
        return [entry for entry in await self.list_folder(folder_path) if entry.is_file]

    async def get_metadata(self, path: str) -> StorageEntry:
        self._record("get_metadata", path)
        if path not in self.files:
            raise StorageNotFoundError(path)
        return self._entry(path)

    async def folder_exists(self, folder_path: str) -> bool:
        self._record("folder_exists", folder_path)
        prefix = f"{folder_path}/"
        return folder_path in self.folders or any(path.startswith(prefix) for path in self.files)

    async def create_folder(self, folder_path: str) -> None:
        self._record("create_folder", folder_path)
        self.folders.add(folder_path)

    async def ensure_folder(self, folder_path: str) -> bool:
        if await self.folder_exists(folder_path):
            return False
        await self.create_folder(folder_path)
        return True

    async def download(self, path: str) -> bytes:
        self._record("download", path)
        if path not in self.files:
            raise StorageNotFoundError(path)
        return self.files[path][0]

    async def upload(
        self, path: str, data: bytes, content_type: str = "application/octet-stream", overwrite: bool = True
    ) -> None:
        self._record("upload", path)
        if not overwrite and path in self.files:
            raise StorageError(f"'{path}' already exists")
        self.put(path, data)

    async def get_temporary_link(self, path: str) -> str:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0)
            self._record("get_temporary_link", path)
        finally:
            self.in_flight -= 1
        self.link_counter += 1
        return f"https://links.test/{path}?sig={self.link_counter}"

    async def move(self, from_path: str, to_path: str) -> None:
        self._record("move", from_path)
        if from_path not in self.files:
            raise StorageNotFoundError(from_path)
        self.files[to_path] = self.files.pop(from_path)

    async def delete(self, path: str) -> None:
        self._record("delete", path)
        if path not in self.files:
            raise StorageNotFoundError(path)
        del self.files[path]

    async def download_zip(self, folder_path: str) -> bytes:
        self._record("download_zip", folder_path)
        if not await self.folder_exists(folder_path):
            raise StorageNotFoundError(folder_path)
        return b"PK\x05\x06" + b"\x00" * 18


class RecordingTaskRunner:
    """Collects spawned coroutines so tests decide when (and whether) they run."""

    def __init__(self) -> None:
        self.pending: list[tuple[str | None, Coroutine[Any, Any, Any]]] = []
        self.spawned: list[str | None] = []

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> None:
        self.pending.append((name, coro))
        self.spawned.append(name)

    async def run_all(self) -> list[Any]:
        results = []
        while self.pending:
            _, coro = self.pending.pop(0)
            results.append(await coro)
        return results

    def close(self) -> None:
        for _, coro in self.pending:
            coro.close()
        self.pending.clear()


def make_jpeg(size: tuple[int, int] = (200, 100), color: str = "red", image_format: str = "JPEG") -> bytes:
    """Create a small test image in memory."""
    image = Image.new("RGB", size, color=color)
    buffer = io.BytesIO()
    image.save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(bucket="test-photoselect-bucket", project_id="test-project")


@pytest.fixture
def storage(clock: FakeClock) -> FakeStorage:
    return FakeStorage(clock)


@pytest.fixture
def task_runner() -> RecordingTaskRunner:
    runner = RecordingTaskRunner()
    yield runner
    runner.close()


@pytest.fixture
def container(
    settings: Settings, storage: FakeStorage, clock: FakeClock, task_runner: RecordingTaskRunner
) -> ServiceContainer:
    return build_container(settings, storage=storage, clock=clock, tasks=task_runner, scheduler=MagicMock())


@pytest.fixture
async def client(container: ServiceContainer) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the FastAPI app (ASGI); lifespan is not run."""
    app = create_app(container=container, start_scheduler=False)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Set up test environment variables."""
    monkeypatch.setenv("ENVIRONMENT", "test")
    monkeypatch.setenv("GCS_BUCKET", "test-photoselect-bucket")
    monkeypatch.setenv("GOOGLE_CLOUD_PROJECT", "test-project")
