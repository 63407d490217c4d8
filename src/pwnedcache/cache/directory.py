"""Platform-specific cache directory resolution.

Maps an application id to the directory where the operating system expects
per-user cache data to live:

* **macOS** -- ``~/Library/Caches/<id>``
* **Windows** -- ``%LOCALAPPDATA%\\<id>\\Cache`` (falls back to
  ``~/AppData/Local`` when ``LOCALAPPDATA`` is unset)
* **Linux, BSD and everything else** -- ``$XDG_CACHE_HOME/<id>`` (default
  ``~/.cache/<id>``)

Resolution is pure: the directory is not created here.
:class:`~pwnedcache.cache.ResponseCache` creates shard directories lazily on
its first write.
"""

from __future__ import annotations

import logging
import os
import platform
import re
from pathlib import Path
from typing import Any

from pwnedcache.exceptions import InvalidIdentifierError

logger = logging.getLogger(__name__)

_INVALID_ID_CHARS = re.compile(r"[^0-9a-zA-Z-]")

_POSIX_SYSTEMS = frozenset({"Linux", "FreeBSD", "NetBSD", "OpenBSD", "AIX", "SunOS", "Android"})


def _posix(app_id: str) -> Path:
    cache_home = os.environ.get("XDG_CACHE_HOME", "")
    base = Path(cache_home) if cache_home else Path.home() / ".cache"
    return base / app_id


def _darwin(app_id: str) -> Path:
    return Path.home() / "Library" / "Caches" / app_id


def _windows(app_id: str) -> Path:
    local_app_data = os.environ.get("LOCALAPPDATA", "")
    base = Path(local_app_data) if local_app_data else Path.home() / "AppData" / "Local"
    return base / app_id / "Cache"


def resolve_cache_dir(app_id: Any) -> Path:
    """Return the platform cache directory for *app_id*.

    Args:
        app_id: Application identifier.  Must be a non-empty string made of
            ASCII letters, digits and hyphens.

    Returns:
        The resolved (not necessarily existing) cache directory.

    Raises:
        InvalidIdentifierError: If *app_id* is not a string, is empty, or
            contains any other character.
    """
    if not isinstance(app_id, str):
        raise InvalidIdentifierError(f"Cache id must be a string, got {type(app_id).__name__}")
    if not app_id:
        raise InvalidIdentifierError("Cache id cannot be empty")
    if _INVALID_ID_CHARS.search(app_id):
        raise InvalidIdentifierError(
            f"Cache id '{app_id}' may only contain letters, digits and hyphens"
        )

    system = platform.system()
    if system == "Darwin":
        return _darwin(app_id)
    if system == "Windows":
        return _windows(app_id)
    if system not in _POSIX_SYSTEMS and not system.endswith("BSD"):
        logger.warning(
            "Platform %r is not recognised, falling back to the XDG cache directory",
            system,
        )
    return _posix(app_id)
