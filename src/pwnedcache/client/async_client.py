"""Asynchronous Have I Been Pwned client with read-through response caching.

This module provides :class:`HaveIBeenPwned`, which wraps two
:class:`httpx.AsyncClient` instances -- one for the authenticated v3 API and
one for the anonymous Pwned Passwords range API -- and layers a
:class:`~pwnedcache.cache.ResponseCache` in front of the former.

Request flow for :meth:`HaveIBeenPwned.request`::

    cache.get(path, params) --hit--> payload
        |
       miss
        v
    request_no_cache(path, params) --> payload | None (404) | raises
        |
        v
    cache.set(path, params, payload)   # skipped for None

Error statuses are mapped onto :mod:`pwnedcache.exceptions` and never
cached.  HTTP 404 is the API's "nothing found" answer and becomes ``None``.

Endpoint groups (``breaches``, ``breached``, ...) are built once in the
constructor; see :mod:`pwnedcache.client.endpoints`.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Union

import httpx

from pwnedcache.cache import ResponseCache, sync_latest_breach_date
from pwnedcache.client.endpoints import (
    Breached,
    Breaches,
    DataClasses,
    Passwords,
    Pastes,
    StealerLogs,
    Subscription,
)
from pwnedcache.exceptions import (
    APIError,
    AuthError,
    BadRequestError,
    ConnectionError_,
    ForbiddenError,
    InvalidUsageError,
    RateLimitError,
    ServerError,
    ServiceUnavailableError,
)
from pwnedcache.models import (
    DEFAULT_BASE_URL,
    DEFAULT_PASSWORDS_BASE_URL,
    DEFAULT_USER_AGENT,
    CacheConfig,
    ClientConfig,
)

logger = logging.getLogger(__name__)

_STATUS_MESSAGES: dict[int, str] = {
    400: "Bad request - The input does not comply with an acceptable format",
    401: "Unauthorized - Invalid API key",
    403: "Forbidden - No user agent has been specified in the request",
    429: "Too many requests - The rate limit has been exceeded",
    500: "Internal server error",
    503: "Service unavailable - The underlying service is not available",
}


def _with_trailing_slash(url: str) -> str:
    return url if url.endswith("/") else f"{url}/"


class HaveIBeenPwned:
    """Asynchronous client for the Have I Been Pwned v3 API.

    Must be used as an async context manager.

    Args:
        api_key: Value sent in the ``hibp-api-key`` header.
        base_url: Root of the v3 API.
        passwords_base_url: Root of the Pwned Passwords API.
        user_agent: ``user-agent`` header; the API rejects requests without one.
        timeout: Per-request timeout in seconds.
        cache: A :class:`~pwnedcache.models.CacheConfig`, a ready-made
            :class:`~pwnedcache.cache.ResponseCache`, or ``None`` for the
            default (enabled, platform directory, breach-date invalidation).
        transport: Optional httpx transport for both underlying clients.
            Tests pass an :class:`httpx.MockTransport`.

    Raises:
        InvalidUsageError: If *api_key* is empty.

    Example::

        async with HaveIBeenPwned(api_key, cache=CacheConfig(ttl_seconds=3600)) as hibp:
            breaches = await hibp.breached.account("someone@example.com")
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        passwords_base_url: str = DEFAULT_PASSWORDS_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 30.0,
        cache: Union[CacheConfig, ResponseCache, None] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not api_key:
            raise InvalidUsageError("API key is required")

        self._api_key = api_key
        self._base_url = _with_trailing_slash(base_url)
        self._passwords_base_url = _with_trailing_slash(passwords_base_url)
        self._user_agent = user_agent
        self._timeout = timeout
        self._transport = transport
        self._cache = cache if isinstance(cache, ResponseCache) else ResponseCache(cache or CacheConfig())

        self._api: Optional[httpx.AsyncClient] = None
        self._passwords_api: Optional[httpx.AsyncClient] = None

        self.breaches = Breaches(self)
        self.breached = Breached(self)
        self.data_classes = DataClasses(self)
        self.stealer_logs = StealerLogs(self)
        self.pastes = Pastes(self)
        self.subscription = Subscription(self)
        self.passwords = Passwords(self)

    @classmethod
    def from_config(
        cls,
        api_key: str,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> HaveIBeenPwned:
        """Build a client from a resolved :class:`~pwnedcache.models.ClientConfig`."""
        return cls(
            api_key,
            base_url=config.base_url,
            passwords_base_url=config.passwords_base_url,
            user_agent=config.user_agent,
            timeout=config.timeout,
            cache=config.cache,
            transport=transport,
        )

    # ------------------------------------------------------------------ #
    # Async context manager
    # ------------------------------------------------------------------ #

    async def __aenter__(self) -> HaveIBeenPwned:
        self._api = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"hibp-api-key": self._api_key, "user-agent": self._user_agent},
            timeout=self._timeout,
            transport=self._transport,
        )
        self._passwords_api = httpx.AsyncClient(
            base_url=self._passwords_base_url,
            headers={"user-agent": self._user_agent},
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP clients."""
        if self._api is not None:
            await self._api.aclose()
            self._api = None
        if self._passwords_api is not None:
            await self._passwords_api.aclose()
            self._passwords_api = None

    # ------------------------------------------------------------------ #
    # Properties
    # ------------------------------------------------------------------ #

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def passwords_base_url(self) -> str:
        return self._passwords_base_url

    # ------------------------------------------------------------------ #
    # Cache management
    # ------------------------------------------------------------------ #

    async def configure_caching(self, config: CacheConfig) -> Optional[str]:
        """Replace the response cache and rebuild its latest-breach signal.

        The previous cache's signal is discarded with it.

        Returns:
            The latest breach ``AddedDate`` recorded on the new cache.
        """
        self._cache = ResponseCache(config)
        return await self.check_latest_breach()

    async def check_latest_breach(self) -> Optional[str]:
        """Fetch ``latestbreach`` live and record its date on the cache.

        Failures are logged and clear the signal instead of raising.
        """
        return await sync_latest_breach_date(
            self._cache, lambda: self.request_no_cache("latestbreach")
        )

    async def clear_cache(self) -> int:
        """Delete all cached entries.  Returns the number removed."""
        return await self._cache.clear_cache()

    async def update_cache(
        self,
        path: str,
        params: Optional[Mapping[str, Any]],
        data: Any,
    ) -> None:
        """Write *data* to the cache under ``(path, params)``."""
        await self._cache.set(path, params, data)

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    async def request(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        """GET *path* through the read-through cache.

        Returns:
            The decoded payload, or ``None`` if the API found nothing.
        """
        cached = await self._cache.get(path, params)
        if cached is not None:
            logger.debug("Cache hit for %s", path)
            return cached

        payload = await self.request_no_cache(path, params)
        if payload is not None:
            await self._cache.set(path, params, payload)
        return payload

    async def request_no_cache(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """GET *path* from the live API, bypassing the cache.

        Returns:
            Decoded JSON, the raw text for non-JSON bodies, or ``None`` for
            HTTP 404 and empty bodies.

        Raises:
            BadRequestError, AuthError, ForbiddenError, RateLimitError,
            ServerError, ServiceUnavailableError, APIError: On error statuses.
            ConnectionError_: On network / timeout errors.
        """
        assert self._api is not None, "Client not initialised -- use as async context manager"
        response = await self._send(self._api, path, params)
        if response.status_code == 404:
            return None
        self._map_response_error(response)
        return self._decode(response)

    async def request_passwords(
        self,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> str:
        """GET *path* from the Pwned Passwords API and return the body text.

        The passwords API takes no API key and is never cached.  HTTP 404
        yields an empty string.
        """
        assert self._passwords_api is not None, (
            "Client not initialised -- use as async context manager"
        )
        response = await self._send(self._passwords_api, path, params, headers)
        if response.status_code == 404:
            return ""
        self._map_response_error(response)
        return response.text

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _send(
        self,
        client: httpx.AsyncClient,
        path: str,
        params: Optional[Mapping[str, Any]],
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        url = path[1:] if path.startswith("/") else path
        logger.debug("GET %s%s params=%s", client.base_url, url, query)
        try:
            return await client.get(url, params=query, headers=dict(headers or {}))
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Request to {url} failed: {exc}") from exc

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        text = response.text
        if not text or not text.strip():
            return None
        try:
            return response.json()
        except ValueError:
            return text

    @staticmethod
    def _map_response_error(response: httpx.Response) -> None:
        """Raise a typed exception for error HTTP status codes."""
        status = response.status_code
        if status < 400:
            return

        msg = _STATUS_MESSAGES.get(
            status, f"Unexpected status code: {status} {response.reason_phrase}".rstrip()
        )

        if status == 400:
            raise BadRequestError(msg, status)
        if status == 401:
            raise AuthError(msg, status)
        if status == 403:
            raise ForbiddenError(msg, status)
        if status == 429:
            raise RateLimitError(msg, _retry_after(response))
        if status == 503:
            raise ServiceUnavailableError(msg, status)
        if status >= 500:
            raise ServerError(msg, status)
        raise APIError(msg, status)


def _retry_after(response: httpx.Response) -> Optional[int]:
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
