"""Shared fixtures for TrustScan tests."""

import pytest
from fastapi.testclient import TestClient

from trustscan.config import Settings
from trustscan.main import create_app
from trustscan.services.storage import MemoryKeyValueStore


class FixedClock:
    """Epoch-millisecond clock that only moves when told to."""

    def __init__(self, now_ms: int = 1_700_000_000_000):
        self.now_ms = now_ms

    def __call__(self) -> int:
        return self.now_ms

    def advance(self, ms: int) -> None:
        self.now_ms += ms


@pytest.fixture
def kv():
    return MemoryKeyValueStore()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def test_settings(tmp_path):
    return Settings(
        storage_backend="memory",
        ai_engine_url="",
        scan_api_base_url="",
        backend_base_url="",
        uploads_path=tmp_path / "uploads",
        api_log_level="warning",
        _env_file=None,
    )


@pytest.fixture
def client(test_settings):
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client
