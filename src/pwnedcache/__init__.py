"""pwnedcache -- an asynchronous, caching Have I Been Pwned API client.

This package wraps the Have I Been Pwned v3 API and the Pwned Passwords
range API, and caches responses on disk.  Cached entries expire either
after a fixed TTL or as soon as a breach newer than the entry is added to
the service, following the upstream advice to poll the latest breach
before re-running expensive domain searches.

Typical usage::

    from pwnedcache import HaveIBeenPwned

    async with HaveIBeenPwned(api_key) as hibp:
        await hibp.check_latest_breach()
        breaches = await hibp.breached.account("someone@example.com")

Modules:
    app: Typer CLI entry point (``pwnedcache`` console script).
    cache: Disk response cache, key derivation and breach-date freshness.
    client: The :class:`HaveIBeenPwned` client and its endpoint groups.
    config: XDG-aware configuration and precedence resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    models: Pydantic models for configuration, cache entries and API data.
    output: stdout/stderr formatting for the CLI.
"""

from pwnedcache.client import HaveIBeenPwned
from pwnedcache.models import CacheConfig

__version__ = "0.1.0"

__all__ = ["CacheConfig", "HaveIBeenPwned", "__version__"]
