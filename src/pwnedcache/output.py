"""Output formatting system with strict stdout/stderr discipline.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- lookup results only (breaches, pastes, counts).  This is
  what downstream tools pipe and parse.
* **stderr** -- all diagnostics (status, warnings, errors, debug).
* **TTY detection** -- Rich formatting when stdout is an interactive
  terminal, plain text when piped to another process.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding format preferences,
   Rich consoles, and quiet/verbose flags. Created once in
   :func:`~pwnedcache.app.main_callback` and installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, etc.) that delegate to the global ``OutputManager``.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from pydantic import BaseModel
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

if TYPE_CHECKING:
    from pwnedcache.models import Breach, Paste, SubscribedDomain


class OutputFormat(str, Enum):
    """Enumeration of supported output formats.

    ``AUTO`` resolves to ``RICH`` when stdout is an interactive TTY and colour
    is not disabled, or to ``PLAIN`` otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def _to_jsonable(data: Any) -> Any:
    """Convert Pydantic models (and lists of them) to API-shaped dicts."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(data, list):
        return [_to_jsonable(item) for item in data]
    return data


def _count(value: Optional[int]) -> str:
    return "" if value is None else f"{value:,}"


_BREACH_COLUMNS = [
    ("Name", lambda b: b.name),
    ("Domain", lambda b: b.domain or ""),
    ("Breach date", lambda b: b.breach_date or ""),
    ("Added", lambda b: b.added_date or ""),
    ("Accounts", lambda b: _count(b.pwn_count)),
]

_PASTE_COLUMNS = [
    ("Source", lambda p: p.source),
    ("Id", lambda p: p.id),
    ("Title", lambda p: p.title or ""),
    ("Date", lambda p: p.date or ""),
    ("Emails", lambda p: _count(p.email_count)),
]

_SUBSCRIBED_DOMAIN_COLUMNS = [
    ("Domain", lambda d: d.domain_name),
    ("Accounts", lambda d: _count(d.pwn_count)),
    ("Excluding spam lists", lambda d: _count(d.pwn_count_excluding_spam_lists)),
    ("Next renewal", lambda d: d.next_subscription_renewal or ""),
]


class OutputManager:
    """Central manager for all CLI output with stdout/stderr discipline.

    Args:
        format: Desired output format. ``AUTO`` resolves based on TTY
            detection.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential informational messages on stderr.
        verbose: Enable debug-level messages on stderr.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            self._format = (
                OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
            )
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(
            file=sys.stderr,
            no_color=self._no_color,
            stderr=True,
        )

    @property
    def format(self) -> OutputFormat:
        """The resolved output format."""
        return self._format

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Render a lookup result to stdout in the active format.

        Args:
            data: A Pydantic model, a list of models, or any JSON-compatible
                value.
        """
        data = _to_jsonable(data)
        if self._format == OutputFormat.JSON:
            self._print_json(data)
        elif self._format == OutputFormat.PLAIN:
            self._print_plain(data)
        else:
            self._print_rich(data)

    def print_data(self, text: str) -> None:
        """Print raw text to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Print tabular data to stdout in the active format.

        * **Rich mode** -- styled :class:`~rich.table.Table`.
        * **JSON mode** -- array of objects keyed by header names.
        * **Plain mode** -- tab-separated values, one row per line.
        """
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
        elif self._format == OutputFormat.PLAIN:
            self.print_data("\t".join(headers))
            for row in rows:
                self.print_data("\t".join(row))
        else:
            table = Table(title=title, show_header=True, header_style="bold cyan")
            for h in headers:
                table.add_column(h)
            for row in rows:
                table.add_row(*row)
            self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # Result shapes
    # ------------------------------------------------------------------ #

    def print_breaches(self, breaches: list[Breach]) -> None:
        """Render breaches as a name / domain / dates / accounts table."""
        self._print_models(breaches, _BREACH_COLUMNS, "Breaches")

    def print_pastes(self, pastes: list[Paste]) -> None:
        self._print_models(pastes, _PASTE_COLUMNS, "Pastes")

    def print_subscribed_domains(self, domains: list[SubscribedDomain]) -> None:
        self._print_models(domains, _SUBSCRIBED_DOMAIN_COLUMNS, "Subscribed domains")

    def print_alias_map(
        self,
        mapping: dict[str, list[str]],
        value_header: str,
        title: Optional[str] = None,
    ) -> None:
        """Render an ``{alias: [name, ...]}`` result, one alias per row.

        Domain searches and stealer-log email-domain lookups both return this
        shape.  JSON mode prints the mapping unchanged; the other modes sort
        by alias and join the names.
        """
        if self._format == OutputFormat.JSON:
            self._print_json(mapping)
            return
        rows = [[alias, ", ".join(names)] for alias, names in sorted(mapping.items())]
        self.print_table(["Alias", value_header], rows, title=title)

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(message)

    def success(self, message: str) -> None:
        """Print a green success message to stderr. Suppressed by ``--quiet``."""
        if not self._quiet:
            if self._no_color:
                print(message, file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[green]{message}[/green]")

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr. NOT suppressed by ``--quiet``."""
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed."""
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {message}")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when ``--verbose`` is active."""
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim][debug] {message}[/dim]")

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _print_models(
        self,
        models: list[Any],
        columns: list[tuple[str, Callable[[Any], str]]],
        title: str,
    ) -> None:
        if self._format == OutputFormat.JSON:
            self._print_json(_to_jsonable(models))
            return
        rows = [[render(model) for _, render in columns] for model in models]
        self.print_table([header for header, _ in columns], rows, title=title)

    def _print_json(self, data: Any) -> None:
        self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))

    def _print_plain(self, data: Any) -> None:
        if isinstance(data, dict):
            for key, value in data.items():
                if isinstance(value, list):
                    value = ", ".join(str(v) for v in value)
                self.print_data(f"{key}\t{value}")
        elif isinstance(data, list):
            for item in data:
                if isinstance(item, dict):
                    self.print_data("\t".join(str(v) for v in item.values()))
                else:
                    self.print_data(str(item))
        else:
            self.print_data(str(data))

    def _print_rich(self, data: Any) -> None:
        if isinstance(data, (dict, list)):
            json_str = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(json_str, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(str(data))


def _is_tty() -> bool:
    """Return True if stdout is connected to an interactive terminal."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Honour ``NO_COLOR`` (https://no-color.org) and ``TERM=dumb``."""
    if os.environ.get("NO_COLOR") is not None:
        return True
    return os.environ.get("TERM") == "dumb"


# ---------------------------------------------------------------------- #
# Global instance
# ---------------------------------------------------------------------- #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager`, creating a default one if needed."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager`."""
    global _output
    _output = output


def reset_output() -> None:
    """Drop the global :class:`OutputManager` (used between tests)."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_breaches(breaches: list[Breach]) -> None:
    get_output().print_breaches(breaches)


def print_pastes(pastes: list[Paste]) -> None:
    get_output().print_pastes(pastes)


def print_subscribed_domains(domains: list[SubscribedDomain]) -> None:
    get_output().print_subscribed_domains(domains)


def print_alias_map(
    mapping: dict[str, list[str]], value_header: str, title: Optional[str] = None
) -> None:
    get_output().print_alias_map(mapping, value_header, title)


def info(message: str) -> None:
    get_output().info(message)


def error(message: str) -> None:
    get_output().error(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def debug(message: str) -> None:
    get_output().debug(message)
