"""HTTP client module for pwnedcache.

Provides :class:`HaveIBeenPwned`, an asynchronous client backed by
:class:`httpx.AsyncClient` that sends the static ``hibp-api-key`` header,
maps error statuses onto :mod:`pwnedcache.exceptions`, and serves GETs
through a :class:`~pwnedcache.cache.ResponseCache`.

Example::

    from pwnedcache.client import HaveIBeenPwned

    async with HaveIBeenPwned(api_key) as hibp:
        breaches = await hibp.breached.account("someone@example.com")
"""

from pwnedcache.client.async_client import HaveIBeenPwned

__all__ = ["HaveIBeenPwned"]
