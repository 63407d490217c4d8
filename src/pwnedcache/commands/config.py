"""Config commands -- view and modify the persistent client configuration.

Provides the ``pwnedcache config`` sub-command group for reading and
updating :class:`~pwnedcache.models.ClientConfig` in the user's config
directory.
"""

from __future__ import annotations

import typer

from pwnedcache.output import format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show the stored configuration.

    Example::

        pwnedcache config show --json
    """
    from pwnedcache.config import config_path, load_config

    info(f"Config file: {config_path()}")
    format_response(load_config().model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (dot notation, e.g. 'cache.ttl_seconds')."),
    value: str = typer.Argument(help="Value to set; 'null' clears optional values."),
) -> None:
    """Set a configuration value.

    Example::

        pwnedcache config set user_agent my-audit-script
        pwnedcache config set cache.ttl_seconds 3600
        pwnedcache config set cache.ttl_seconds null
    """
    from pwnedcache.config import set_config_value

    set_config_value(key, value)
    success(f"Set {key} = {value}")
