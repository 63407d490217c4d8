"""Typer application and CLI entry point for pwnedcache.

This module wires together the top-level Typer application and registers
the lookup commands (``account``, ``domain``, ``breaches`` ...) and the
``cache`` and ``config`` sub-command groups.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.  :class:`~pwnedcache.exceptions.PwnedError` subclasses
exit with their mapped exit code; unexpected exceptions are written to a
crash log under the data directory.
"""

from __future__ import annotations

import logging
import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from pwnedcache import __version__
from pwnedcache.commands import lookup
from pwnedcache.commands.cache import cache_app
from pwnedcache.commands.config import config_app
from pwnedcache.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="pwnedcache",
    help="Query Have I Been Pwned with a local response cache.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

lookup.register(app)
app.add_typer(cache_app, name="cache", help="Inspect or clear the response cache.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pwnedcache {__version__}")
        raise typer.Exit()


_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _configure_logging(ctx: typer.Context, verbose: bool) -> None:
    """Route library log records to the current stderr; DEBUG when verbose.

    The handler is attached for this invocation only and removed when the
    context closes, so it never outlives the stream it writes to.
    """
    logger = logging.getLogger("pwnedcache")
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    ctx.call_on_close(lambda: logger.removeHandler(handler))


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", envvar="HIBP_API_KEY", help="Have I Been Pwned API key."
    ),
    base_url: Optional[str] = typer.Option(None, "--base-url", help="Override the API base URL."),
    cache_dir: Optional[str] = typer.Option(None, "--cache-dir", help="Cache directory."),
    cache_ttl: Optional[float] = typer.Option(
        None,
        "--cache-ttl",
        min=0.001,
        help="Fixed cache lifetime in seconds (disables breach-date invalidation).",
    ),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the response cache."),
    json_output: bool = typer.Option(False, "--json", help="JSON output format."),
    plain_output: bool = typer.Option(False, "--plain", help="Plain text output."),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-essential output."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug output."),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~pwnedcache.output.OutputManager` and
    library logging from CLI flags, and stores the connection and cache
    overrides in ``ctx.obj`` for :mod:`pwnedcache.commands.runtime`.
    """
    from pwnedcache.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))
    _configure_logging(ctx, verbose)

    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["base_url"] = base_url
    ctx.obj["cache_dir"] = cache_dir
    ctx.obj["cache_ttl"] = cache_ttl
    ctx.obj["no_cache"] = no_cache
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from pwnedcache.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``pwnedcache`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from pwnedcache.exceptions import PwnedError
        from pwnedcache.output import error

        if isinstance(exc, PwnedError):
            error(str(exc))
            sys.exit(exc.exit_code)
        log_path = _write_crash_log(exc)
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
