"""Test configuration."""

from collections.abc import AsyncGenerator
from pathlib import Path
from typing import cast

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient, Timeout
from prometheus_client import REGISTRY
from starlette.types import ASGIApp

from uploader.content_store import ContentStore
from uploader.core.config import Settings
from uploader.core.logging import configure_logging
from uploader.downloads import DownloadPipeline, FileJobStore
from uploader.main import create_app

# Default timeout configuration
DEFAULT_TIMEOUT: Timeout = Timeout(timeout=5.0, connect=2.0)

fixture = pytest.fixture


@fixture(scope="session", autouse=True)
def logging_setup() -> None:
    """Render process logs as key/value pairs during tests."""
    configure_logging(level="DEBUG", testing=True)


@fixture
def files_dir(tmp_path: Path) -> Path:
    """Root of an isolated content store."""
    return tmp_path / "files"


@fixture
def settings(files_dir: Path) -> Settings:
    """Settings pointing at a temporary store, ignoring any ``.env`` file."""
    return Settings(
        _env_file=None,
        FILES_DIR=files_dir,
        DOWNLOAD_TIMEOUT=5.0,
        SECRET_USER=None,
        SECRET_PASSWORD=None,
    )


@fixture
def content_store(files_dir: Path) -> ContentStore:
    return ContentStore(files_dir)


@fixture
def job_store(files_dir: Path) -> FileJobStore:
    return FileJobStore(files_dir / "tmp")


@fixture
def pipeline(content_store: ContentStore, job_store: FileJobStore) -> DownloadPipeline:
    return DownloadPipeline(content_store, job_store, timeout=5.0)


@fixture
def test_app(settings: Settings) -> FastAPI:
    """Get FastAPI test application."""
    return create_app(settings)


@pytest_asyncio.fixture
async def test_app_async_client(
    test_app: FastAPI,
) -> AsyncGenerator[AsyncClient, None]:
    """Get FastAPI async test client.

    Redirects are not followed so tests can inspect them.
    """
    transport = ASGITransport(app=cast(ASGIApp, test_app))
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=False,
        timeout=DEFAULT_TIMEOUT,
    ) as client:
        yield client


def sample_value(name: str, labels: dict[str, str] | None = None) -> float:
    """Current value of a Prometheus sample, 0 when it was never recorded."""
    return REGISTRY.get_sample_value(name, labels or {}) or 0.0


@fixture
def metric():
    """Read Prometheus samples by name."""
    return sample_value
