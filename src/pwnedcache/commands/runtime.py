"""Shared plumbing for CLI commands: client construction and the event loop.

Every command resolves its configuration through
:func:`~pwnedcache.config.resolve_config` using the global flags stored in
``ctx.obj`` by :func:`~pwnedcache.app.main_callback`, builds a
:class:`~pwnedcache.client.HaveIBeenPwned`, and runs one coroutine inside it
with :func:`asyncio.run`.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, TypeVar

import typer

from pwnedcache.client import HaveIBeenPwned
from pwnedcache.config import resolve_config, resolve_credential
from pwnedcache.exceptions import ConfigError
from pwnedcache.models import ClientConfig
from pwnedcache.output import debug

T = TypeVar("T")

# Sent to the v3 API only; the Pwned Passwords API ignores it.
_ANONYMOUS_KEY = "anonymous"


def effective_config(ctx: typer.Context) -> ClientConfig:
    """Resolve the client configuration from global CLI flags."""
    opts: dict[str, Any] = ctx.obj or {}
    return resolve_config(
        cli_base_url=opts.get("base_url"),
        cli_cache_dir=opts.get("cache_dir"),
        cli_cache_ttl=opts.get("cache_ttl"),
        cli_no_cache=opts.get("no_cache", False),
    )


def build_client(ctx: typer.Context, require_api_key: bool = True) -> HaveIBeenPwned:
    """Create a client for the current invocation.

    The API key comes from ``--api-key`` or the configured
    ``api_key_source`` (``env:HIBP_API_KEY`` by default).

    Raises:
        ConfigError: If an API key is required but cannot be resolved.
    """
    opts: dict[str, Any] = ctx.obj or {}
    config = effective_config(ctx)

    api_key = opts.get("api_key")
    if not api_key:
        try:
            api_key = resolve_credential(config.api_key_source)
        except ConfigError:
            if require_api_key:
                raise
            api_key = _ANONYMOUS_KEY

    return HaveIBeenPwned.from_config(api_key, config)


def run(
    ctx: typer.Context,
    operation: Callable[[HaveIBeenPwned], Awaitable[T]],
    require_api_key: bool = True,
    sync_breach_date: bool = True,
) -> T:
    """Run *operation* against a fresh client and return its result.

    When the cache relies on breach-date invalidation (enabled, no TTL), the
    latest breach is probed first so entries written before a newer breach
    are not served.
    """
    client = build_client(ctx, require_api_key=require_api_key)

    async def _main() -> T:
        async with client as hibp:
            cache_config = hibp.cache.config
            if sync_breach_date and cache_config.enabled and cache_config.ttl_seconds is None:
                added = await hibp.check_latest_breach()
                debug(f"Latest breach added: {added or 'unknown'}")
            return await operation(hibp)

    return asyncio.run(_main())
