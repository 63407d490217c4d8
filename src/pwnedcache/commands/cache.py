"""Cache commands -- inspect and clear the response cache.

Provides the ``pwnedcache cache`` sub-command group.  Both commands act on
the cache directory resolved from the same precedence chain as lookups
(``--cache-dir`` > ``HIBP_CACHE_DIR`` > config file > platform default).
"""

from __future__ import annotations

import asyncio

import typer

from pwnedcache.cache import ResponseCache
from pwnedcache.commands.runtime import effective_config
from pwnedcache.output import format_response, info, success


cache_app = typer.Typer(no_args_is_help=True)


def _open_cache(ctx: typer.Context) -> ResponseCache:
    return ResponseCache(effective_config(ctx).cache)


@cache_app.command("info")
def cache_info(ctx: typer.Context) -> None:
    """Show the cache directory, TTL and number of stored entries.

    Example::

        pwnedcache cache info --json
    """
    cache = _open_cache(ctx)
    format_response(cache.stats())


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Delete every cached response."""
    cache = _open_cache(ctx)
    if not yes and not typer.confirm(f"Delete all cached responses in {cache.directory}?"):
        info("Aborted.")
        raise typer.Exit(code=1)
    removed = asyncio.run(cache.clear_cache())
    success(f"Removed {removed} cached response(s) from {cache.directory}")
