"""Lookup commands -- query breaches, pastes, stealer logs and passwords.

Registered on the root application by :func:`pwnedcache.app.main`.  Every
command goes through :func:`~pwnedcache.commands.runtime.run`, so results
are served from the response cache whenever it holds a fresh entry.

Commands that find nothing print a notice to stderr and exit with
:data:`~pwnedcache.exit_codes.EXIT_NOT_FOUND`.
"""

from __future__ import annotations

import getpass
from typing import Any, Callable, Optional

import typer

from pwnedcache.commands.runtime import run
from pwnedcache.exit_codes import EXIT_NOT_FOUND
from pwnedcache.output import (
    format_response,
    info,
    print_alias_map,
    print_breaches,
    print_pastes,
    print_subscribed_domains,
    success,
)


stealer_logs_app = typer.Typer(no_args_is_help=True)
subscription_app = typer.Typer(no_args_is_help=True)


def _not_found(message: str) -> None:
    info(message)
    raise typer.Exit(code=EXIT_NOT_FOUND)


def _show(data: Any, empty_message: str, render: Callable[[Any], None] = format_response) -> None:
    if not data:
        _not_found(empty_message)
    render(data)


def _alias_renderer(value_header: str) -> Callable[[Any], None]:
    return lambda mapping: print_alias_map(mapping, value_header)


def account(
    ctx: typer.Context,
    email: str = typer.Argument(help="Email address or username to look up."),
    domain: Optional[str] = typer.Option(None, "--domain", help="Only breaches of this domain."),
    include_unverified: bool = typer.Option(
        False, "--include-unverified", help="Include unverified breaches."
    ),
    full: bool = typer.Option(False, "--full", help="Return full breach details, not just names."),
) -> None:
    """List the breaches an account appears in.

    Example::

        pwnedcache account someone@example.com --full
    """
    breaches = run(
        ctx,
        lambda hibp: hibp.breached.account(
            email,
            truncate_response=not full,
            domain=domain,
            include_unverified=include_unverified,
        ),
    )
    _show(breaches, f"No breaches found for {email}.", print_breaches)


def domain(
    ctx: typer.Context,
    name: str = typer.Argument(help="Domain verified on your subscription."),
    force_fresh: bool = typer.Option(
        False, "--force-fresh", help="Bypass the cache and the latest-breach check."
    ),
) -> None:
    """List breached aliases on a domain and the breaches they appear in."""
    result = run(ctx, lambda hibp: hibp.breached.domain(name, force_fresh=force_fresh))
    _show(result, f"No breached accounts found on {name}.", _alias_renderer("Breaches"))


def breaches(
    ctx: typer.Context,
    domain: Optional[str] = typer.Option(None, "--domain", help="Filter by breached domain."),
    spam_list: Optional[bool] = typer.Option(
        None, "--spam-list/--no-spam-list", help="Filter by spam-list flag."
    ),
) -> None:
    """List all breaches in the system."""
    result = run(ctx, lambda hibp: hibp.breaches.all(domain=domain, is_spam_list=spam_list))
    _show(result, "No breaches matched.", print_breaches)


def breach(
    ctx: typer.Context,
    name: str = typer.Argument(help="Breach name, e.g. Adobe."),
) -> None:
    """Show a single breach by name."""
    result = run(ctx, lambda hibp: hibp.breaches.get(name))
    _show(result, f"No breach named {name}.")


def latest(ctx: typer.Context) -> None:
    """Show the most recently added breach."""
    result = run(ctx, lambda hibp: hibp.breaches.latest(), sync_breach_date=False)
    _show(result, "No breaches found.")


def data_classes(ctx: typer.Context) -> None:
    """List every data class found in breaches."""
    _show(run(ctx, lambda hibp: hibp.data_classes.all()), "No data classes returned.")


def pastes(
    ctx: typer.Context,
    email: str = typer.Argument(help="Email address to look up."),
) -> None:
    """List pastes an email address appears in."""
    result = run(ctx, lambda hibp: hibp.pastes.account(email))
    _show(result, f"No pastes found for {email}.", print_pastes)


def password(
    ctx: typer.Context,
    password_hash: Optional[str] = typer.Option(
        None, "--hash", help="Precomputed SHA-1 (or NTLM with --ntlm) hash to check."
    ),
    ntlm: bool = typer.Option(False, "--ntlm", help="Treat --hash as an NTLM hash."),
    padding: bool = typer.Option(True, "--padding/--no-padding", help="Request padded ranges."),
) -> None:
    """Check a password against Pwned Passwords using k-anonymity.

    Without ``--hash`` the password is read from a hidden prompt and hashed
    locally; only the first five hash characters are sent.
    """
    mode = "ntlm" if ntlm else "sha1"
    if password_hash is None:
        secret = getpass.getpass("Password: ")
        count = run(
            ctx,
            lambda hibp: hibp.passwords.check(secret, add_padding=padding, mode=mode),
            require_api_key=False,
            sync_breach_date=False,
        )
    else:
        count = run(
            ctx,
            lambda hibp: hibp.passwords.range(password_hash, add_padding=padding, mode=mode),
            require_api_key=False,
            sync_breach_date=False,
        )

    if count:
        format_response({"pwned": True, "count": count})
    else:
        success("Password not found in Pwned Passwords.")
        format_response({"pwned": False, "count": 0})


@stealer_logs_app.command("email")
def stealer_logs_email(
    ctx: typer.Context,
    email: str = typer.Argument(help="Email address to look up."),
) -> None:
    """Websites whose credentials for an email were captured by info stealers."""
    result = run(ctx, lambda hibp: hibp.stealer_logs.by_email(email))
    _show(result, f"No stealer logs found for {email}.")


@stealer_logs_app.command("website")
def stealer_logs_website(
    ctx: typer.Context,
    domain: str = typer.Argument(help="Website domain."),
) -> None:
    """Email addresses captured by info stealers when logging in to a website."""
    result = run(ctx, lambda hibp: hibp.stealer_logs.by_website_domain(domain))
    _show(result, f"No stealer logs found for {domain}.")


@stealer_logs_app.command("email-domain")
def stealer_logs_email_domain(
    ctx: typer.Context,
    domain: str = typer.Argument(help="Email domain verified on your subscription."),
) -> None:
    """Aliases on an email domain mapped to the websites they were captured on."""
    result = run(ctx, lambda hibp: hibp.stealer_logs.by_email_domain(domain))
    _show(result, f"No stealer logs found for {domain}.", _alias_renderer("Websites"))


@subscription_app.command("status")
def subscription_status(ctx: typer.Context) -> None:
    """Show the subscription attached to the API key."""
    result = run(ctx, lambda hibp: hibp.subscription.status(), sync_breach_date=False)
    _show(result, "No subscription found for this API key.")


@subscription_app.command("domains")
def subscription_domains(ctx: typer.Context) -> None:
    """List domains verified on the subscription."""
    result = run(ctx, lambda hibp: hibp.subscription.domains(), sync_breach_date=False)
    _show(result, "No subscribed domains.", print_subscribed_domains)


def register(app: typer.Typer) -> None:
    """Attach the lookup commands to *app*."""
    app.command("account")(account)
    app.command("domain")(domain)
    app.command("breaches")(breaches)
    app.command("breach")(breach)
    app.command("latest")(latest)
    app.command("data-classes")(data_classes)
    app.command("pastes")(pastes)
    app.command("password")(password)
    app.add_typer(stealer_logs_app, name="stealer-logs", help="Info-stealer log lookups.")
    app.add_typer(subscription_app, name="subscription", help="Subscription details.")
