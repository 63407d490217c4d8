"""Exception hierarchy for pwnedcache.

All exceptions inherit from :class:`PwnedError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pwnedcache.exit_codes`.
The CLI entry point :func:`pwnedcache.app.main` catches ``PwnedError`` and
exits with the appropriate code.

Subclass hierarchy::

    PwnedError (exit 1)
    +-- InvalidUsageError          (exit 2)
    |   +-- InvalidIdentifierError (exit 2)
    +-- ConfigError                (exit 1)
    +-- APIError                   (exit 1)
    |   +-- BadRequestError        (exit 2)
    |   +-- AuthError              (exit 3)
    |   +-- ForbiddenError         (exit 3)
    |   +-- RateLimitError         (exit 7)
    |   +-- ServerError            (exit 5)
    |   +-- ServiceUnavailableError (exit 5)
    +-- ConnectionError_           (exit 6)
    +-- CacheError                 (exit 1)
        +-- CacheReadError
        +-- CacheWriteError

:class:`CacheError` subclasses are internal to
:class:`~pwnedcache.cache.ResponseCache`: they are raised by its private
read/write helpers and converted into a cache miss (or an ignored write) at
the public ``get`` / ``set`` boundary.  They never reach callers.
"""

from __future__ import annotations

from typing import Optional

from pwnedcache.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_RATE_LIMITED,
    EXIT_SERVER_ERROR,
)


class PwnedError(Exception):
    """Base exception for all pwnedcache errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`pwnedcache.exit_codes`.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(PwnedError):
    """Raised for invalid arguments (empty API key, short password hash, ...)."""

    exit_code = EXIT_INVALID_USAGE


class InvalidIdentifierError(InvalidUsageError):
    """Raised when a cache application id is empty, not a string, or contains
    characters other than letters, digits and hyphens."""


class ConfigError(PwnedError):
    """Raised for configuration problems (invalid JSON, bad credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE


class APIError(PwnedError):
    """Raised when the API answers with an unexpected error status.

    Args:
        message: Human-readable error description.
        status_code: The HTTP status code returned by the API.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BadRequestError(APIError):
    """HTTP 400: the account or domain does not comply with an acceptable format."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(APIError):
    """HTTP 401: the API key is missing or invalid."""

    exit_code = EXIT_AUTH_FAILURE


class ForbiddenError(APIError):
    """HTTP 403: no user agent was sent, or the key may not query this resource."""

    exit_code = EXIT_AUTH_FAILURE


class RateLimitError(APIError):
    """HTTP 429: the rate limit for the API key has been exceeded.

    Args:
        message: Human-readable error description.
        retry_after: Seconds the API asked the caller to wait, taken from the
            ``retry-after`` response header when present.
    """

    exit_code = EXIT_RATE_LIMITED

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class ServerError(APIError):
    """HTTP 5xx returned by the API."""

    exit_code = EXIT_SERVER_ERROR


class ServiceUnavailableError(ServerError):
    """HTTP 503: the service (usually Cloudflare in front of it) is unavailable."""


class ConnectionError_(PwnedError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class CacheError(PwnedError):
    """Base class for faults inside the response cache."""


class CacheReadError(CacheError):
    """A stored entry could not be located, read or parsed."""


class CacheWriteError(CacheError):
    """An entry could not be persisted."""
