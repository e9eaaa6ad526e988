"""Shared pytest fixtures for the Perceptacle test suite."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from perceptacle.config.settings import Settings
from perceptacle.interfaces.collection_store import ICollectionStore
from perceptacle.providers.cache.memory_cache import MemoryCacheProvider
from perceptacle.providers.store.json_file_store import JSONFileStore


class InMemoryStore(ICollectionStore):
    """Dict-backed collection store that records every write."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = {"markers": [], "tips": {}}
        self.data.update(initial or {})
        self.writes: list[str] = []

    async def read_collection(self, name: str) -> Any:
        return copy.deepcopy(self.data.get(name, {}))

    async def write_collection(self, name: str, data: Any) -> None:
        self.data[name] = copy.deepcopy(data)
        self.writes.append(name)


def make_response(
    json_data: Any = None,
    status_code: int = 200,
    *,
    content: bytes | None = None,
    content_type: str = "application/json",
    json_error: bool = False,
) -> MagicMock:
    """Build a mock ``httpx.Response`` with ``.json()`` and ``.raise_for_status()``."""
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.headers = {"content-type": content_type}
    response.content = content if content is not None else b"{}"
    if json_error:
        response.json.side_effect = ValueError("not json")
    else:
        response.json.return_value = json_data

    if status_code >= 400:
        request = httpx.Request("GET", "https://upstream.test/")
        real = httpx.Response(status_code, request=request)
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            f"HTTP {status_code}", request=request, response=real
        )
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def mock_http_client() -> MagicMock:
    """An ``httpx.AsyncClient`` stand-in whose ``get`` is an ``AsyncMock``."""
    client = MagicMock(spec=httpx.AsyncClient)
    client.get = AsyncMock()
    return client


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def json_store(tmp_path: Path) -> JSONFileStore:
    store = JSONFileStore(tmp_path / "data")
    store.initialize()
    return store


@pytest.fixture
def memory_cache() -> MemoryCacheProvider:
    return MemoryCacheProvider(max_size=16, ttl=60, name="test")


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings isolated from the developer's ``.env`` and environment."""
    return Settings(
        _env_file=None,
        opencage_key="oc-test-key",
        w3w_api_key="w3w-test-key",
        nasa_api_key="nasa-test-key",
        data_dir=str(tmp_path / "data"),
        uploads_dir=str(tmp_path / "uploads"),
        frontend_dir=str(tmp_path / "dist"),
    )


@pytest.fixture
def response_factory():
    """Return :func:`make_response` for building mock upstream responses."""
    return make_response
