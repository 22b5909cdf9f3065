"""
Pytest configuration and fixtures for data directory tests.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from pathlib import Path
from typing import AsyncGenerator, Generator, Union
from unittest.mock import patch

import httpx
import pytest

from datadir.config import Settings, clear_settings_cache
from datadir.directory import DataDir

# A scripted reply: a response, an exception to raise, or a callable
# computing a response from the request.
Reply = Union[httpx.Response, Exception, Callable[[httpx.Request], httpx.Response]]


class StubServer:
    """Scripted HTTP server for httpx.MockTransport.

    Replies are consumed in order; a request with no reply left fails the test.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._replies: list[Reply] = []

    def respond(
        self,
        status_code: int = 200,
        content: bytes = b"",
        headers: dict[str, str] | list[tuple[bytes, bytes]] | None = None,
    ) -> None:
        self._replies.append(
            httpx.Response(status_code, content=content, headers=headers)
        )

    def respond_with(self, reply: Reply) -> None:
        self._replies.append(reply)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self._replies:
            raise AssertionError(f"Unexpected request: {request.method} {request.url}")

        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply) and not isinstance(reply, httpx.Response):
            return reply(request)
        return reply


@pytest.fixture
def temp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def server() -> StubServer:
    """Provide an empty scripted HTTP server."""
    return StubServer()


@pytest.fixture
async def data_dir(temp_dir: Path, server: StubServer) -> AsyncGenerator[DataDir, None]:
    """Create a DataDir whose client talks to the stub server."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(server.handler))
    d = await DataDir.create(temp_dir / "data", client=client)
    yield d
    await client.aclose()


@pytest.fixture
def mock_env_vars() -> Generator[dict[str, str], None, None]:
    """Provide mock environment variables for testing."""
    env_vars = {
        "DATA_DIR": ".test_data",
        "HURDAT2_URL": "https://example.com/hurdat2.txt",
        "HTTP_TIMEOUT": "5",
        "HTTP_USER_AGENT": "datadir-tests/1.0",
        "DEFAULT_STRATEGY": "if-missing",
        "LOG_LEVEL": "DEBUG",
    }

    with patch.dict(os.environ, env_vars, clear=False):
        clear_settings_cache()
        yield env_vars


@pytest.fixture
def mock_settings(
    mock_env_vars: dict[str, str], temp_dir: Path
) -> Generator[Settings, None, None]:
    """Provide a Settings instance with DATA_DIR inside temp_dir."""
    with patch.dict(os.environ, {"DATA_DIR": str(temp_dir / "data")}):
        clear_settings_cache()
        from datadir.config import get_settings

        settings = get_settings()
        yield settings
        clear_settings_cache()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Automatically reset settings cache before and after each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
