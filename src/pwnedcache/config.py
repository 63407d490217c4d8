"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for pwnedcache:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.pwnedcache/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.  The *response cache* lives elsewhere: it follows the
  platform cache conventions of :func:`~pwnedcache.cache.resolve_cache_dir`.
* **Client config** -- A single :class:`~pwnedcache.models.ClientConfig`
  JSON file storing base URLs, user agent, timeout, API key source and
  cache settings.
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables and the config file into the effective
  configuration.
* **Credential resolution** -- :func:`resolve_credential` reads the API key
  from an env var, a file, or an interactive prompt.

All file writes (including cache entries) use an atomic
temp-file-then-rename strategy (:func:`atomic_write`) so readers never
observe a partially written document.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from pwnedcache.exceptions import ConfigError
from pwnedcache.models import ClientConfig

_APP_NAME = "pwnedcache"
_CONFIG_FILENAME = "config.json"

_TRUTHY = frozenset({"1", "true", "yes", "on"})


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/pwnedcache/`` (default ``~/.config/pwnedcache/``).
    On macOS/Windows: ``~/.pwnedcache/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/pwnedcache/`` (default ``~/.local/share/pwnedcache/``).
    On macOS/Windows: ``~/.pwnedcache/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up and the error re-raised.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Client config ---


def config_path() -> Path:
    """Path to the client config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_config() -> ClientConfig:
    """Load the client configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~pwnedcache.models.ClientConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = config_path()
    if not path.is_file():
        return ClientConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return ClientConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: ClientConfig) -> None:
    """Persist the client configuration atomically to disk."""
    data = config.model_dump(mode="json")
    atomic_write(config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(key: str, value: str) -> ClientConfig:
    """Set a single dotted config key (e.g. ``cache.ttl_seconds``) and save.

    The literal strings ``null`` / ``none`` clear optional values.

    Raises:
        ConfigError: If the key is unknown or the value fails validation.
    """
    config = load_config()
    data: dict[str, Any] = config.model_dump(mode="json")

    target = data
    *parents, leaf = key.split(".")
    for part in parents:
        child = target.get(part)
        if not isinstance(child, dict):
            raise ConfigError(f"Unknown config key: {key}")
        target = child
    if leaf not in target:
        raise ConfigError(f"Unknown config key: {key}")

    target[leaf] = None if value.lower() in ("null", "none") else value
    try:
        updated = ClientConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid value for {key}: {exc}") from exc
    save_config(updated)
    return updated


# --- Precedence resolution ---


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_user_agent: Optional[str] = None,
    cli_cache_dir: Optional[str] = None,
    cli_cache_ttl: Optional[float] = None,
    cli_no_cache: bool = False,
) -> ClientConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``HIBP_BASE_URL``, ``HIBP_USER_AGENT``,
           ``HIBP_CACHE_DIR``, ``HIBP_CACHE_TTL``, ``HIBP_NO_CACHE``)
        3. User config (``~/.config/pwnedcache/config.json``)
        4. Defaults

    Raises:
        ConfigError: If the config file or an environment value is invalid.
    """
    config = load_config()

    env_base_url = os.environ.get("HIBP_BASE_URL")
    if env_base_url:
        config.base_url = env_base_url
    env_user_agent = os.environ.get("HIBP_USER_AGENT")
    if env_user_agent:
        config.user_agent = env_user_agent
    env_cache_dir = os.environ.get("HIBP_CACHE_DIR")
    if env_cache_dir:
        config.cache.directory = env_cache_dir
    env_ttl = os.environ.get("HIBP_CACHE_TTL")
    if env_ttl:
        try:
            config.cache.ttl_seconds = _positive_float(env_ttl)
        except ValueError as exc:
            raise ConfigError(f"Invalid HIBP_CACHE_TTL '{env_ttl}': {exc}") from exc
    if os.environ.get("HIBP_NO_CACHE", "").lower() in _TRUTHY:
        config.cache.enabled = False

    if cli_base_url is not None:
        config.base_url = cli_base_url
    if cli_user_agent is not None:
        config.user_agent = cli_user_agent
    if cli_cache_dir is not None:
        config.cache.directory = cli_cache_dir
    if cli_cache_ttl is not None:
        config.cache.ttl_seconds = cli_cache_ttl
    if cli_no_cache:
        config.cache.enabled = False

    return config


def _positive_float(raw: str) -> float:
    value = float(raw)
    if value <= 0:
        raise ValueError("must be greater than zero")
    return value


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - ``"prompt"`` -- prompts user interactively (requires a TTY)

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if not value:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if source == "prompt":
        if not sys.stdin.isatty():
            raise ConfigError(
                "Cannot prompt for credentials: stdin is not a TTY (source: prompt)"
            )
        return getpass.getpass("Enter HIBP API key: ")

    raise ConfigError(f"Unknown credential source format: {source}")
