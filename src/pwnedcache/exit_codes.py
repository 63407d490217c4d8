"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~pwnedcache.exceptions.PwnedError` subclass.
Shell wrappers can inspect the exit code to tell a rejected API key apart
from a rate limit or an outage without parsing stderr.

Example::

    $ pwnedcache account someone@example.com
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the hibp-api-key header was rejected
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required parameters."""

EXIT_AUTH_FAILURE = 3
"""Authentication or authorisation failed (HTTP 401 / 403)."""

EXIT_NOT_FOUND = 4
"""The lookup completed but nothing was found."""

EXIT_SERVER_ERROR = 5
"""The remote API returned an HTTP 5xx server error."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_RATE_LIMITED = 7
"""The API key exceeded its requests-per-minute allowance (HTTP 429)."""
