"""Shared test fixtures for pwnedcache.

Provides an in-memory fake of the Have I Been Pwned APIs served through
:class:`httpx.MockTransport`, isolated config/cache directories, and output
state management.  These fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

import httpx
import pytest

from pwnedcache.client import HaveIBeenPwned
from pwnedcache.models import CacheConfig
from pwnedcache.output import reset_output


API_PREFIX = "/api/v3/"
TEST_BASE_URL = "https://hibp.test/api/v3/"
TEST_PASSWORDS_URL = "https://passwords.test/"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time, which go stale once CliRunner restores the streams.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake API
# ---------------------------------------------------------------------------


class FakeAPI:
    """Route table answering requests by decoded URL path.

    Paths registered with :meth:`add` are relative to the v3 API root;
    :meth:`add_raw` takes an absolute path (used for the passwords API).
    Unregistered paths answer HTTP 404, like the real API does for
    "nothing found".
    """

    def __init__(self) -> None:
        self.routes: dict[str, httpx.Response] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        path: str,
        json: Any = None,
        status: int = 200,
        text: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.add_raw(API_PREFIX + path, json=json, status=status, text=text, headers=headers)

    def add_raw(
        self,
        path: str,
        json: Any = None,
        status: int = 200,
        text: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        if text is not None:
            self.routes[path] = httpx.Response(status, text=text, headers=headers)
        elif json is not None:
            self.routes[path] = httpx.Response(status, json=json, headers=headers)
        else:
            self.routes[path] = httpx.Response(status, headers=headers)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        template = self.routes.get(request.url.path)
        if template is None:
            return httpx.Response(404)
        return httpx.Response(
            template.status_code,
            content=template.content,
            headers=template.headers,
        )

    def calls(self, path: str) -> int:
        """Number of requests made to the v3 API *path*."""
        full = API_PREFIX + path
        return sum(1 for r in self.requests if r.url.path == full)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_api() -> FakeAPI:
    return FakeAPI()


@pytest.fixture
def cache_config(tmp_path: Path) -> CacheConfig:
    """An enabled cache rooted in tmp_path with breach-date invalidation."""
    return CacheConfig(enabled=True, directory=str(tmp_path / "cache"))


@pytest.fixture
def make_client(fake_api: FakeAPI, cache_config: CacheConfig):
    """Factory building a :class:`HaveIBeenPwned` wired to :class:`FakeAPI`."""

    def _make(cache: Any = None, api_key: str = "test-key") -> HaveIBeenPwned:
        return HaveIBeenPwned(
            api_key,
            base_url=TEST_BASE_URL,
            passwords_base_url=TEST_PASSWORDS_URL,
            user_agent="pwnedcache-tests",
            cache=cache if cache is not None else cache_config,
            transport=fake_api.transport,
        )

    return _make


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path and clears all HIBP_* environment variables.
    """
    monkeypatch.setattr("pwnedcache.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in [
        "HIBP_API_KEY",
        "HIBP_BASE_URL",
        "HIBP_USER_AGENT",
        "HIBP_CACHE_DIR",
        "HIBP_CACHE_TTL",
        "HIBP_NO_CACHE",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path

