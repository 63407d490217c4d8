"""Per-resource endpoint groups for :class:`~pwnedcache.client.HaveIBeenPwned`.

Each group is a thin wrapper that builds a path and query parameters, calls
the client's read-through :meth:`~pwnedcache.client.HaveIBeenPwned.request`,
and validates the payload into :mod:`pwnedcache.models`.  The only group
with its own caching logic is :class:`Breached`, whose :meth:`Breached.domain`
follows the latest-breach polling protocol.

See https://haveibeenpwned.com/API/v3 for the upstream resources.
"""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING, Optional
from urllib.parse import quote

from pwnedcache.cache.freshness import BreachFreshnessTracker
from pwnedcache.exceptions import InvalidUsageError
from pwnedcache.models import Breach, Paste, SubscribedDomain, SubscriptionStatus

if TYPE_CHECKING:
    from pwnedcache.client.async_client import HaveIBeenPwned

logger = logging.getLogger(__name__)

_HASH_PREFIX_LENGTH = 5
_HASH_MODES = ("sha1", "ntlm")


def _segment(value: str) -> str:
    return quote(value, safe="")


class EndpointGroup:
    """Base class holding the owning client."""

    def __init__(self, client: HaveIBeenPwned) -> None:
        self._client = client


class Breaches(EndpointGroup):
    """Breach catalogue: all breaches, a single breach, and the latest one."""

    async def all(
        self,
        domain: Optional[str] = None,
        is_spam_list: Optional[bool] = None,
    ) -> list[Breach]:
        """Return every breach, optionally filtered by *domain* or spam-list flag."""
        payload = await self._client.request(
            "breaches", {"domain": domain, "isSpamList": is_spam_list}
        )
        return [Breach.model_validate(item) for item in payload or []]

    async def get(self, name: str) -> Optional[Breach]:
        """Return the breach called *name*, or ``None`` if unknown."""
        payload = await self._client.request(f"breach/{_segment(name)}")
        return Breach.model_validate(payload) if payload else None

    async def latest(self) -> Optional[Breach]:
        """Return the most recently added breach."""
        payload = await self._client.request("latestbreach")
        return Breach.model_validate(payload) if payload else None


class DataClasses(EndpointGroup):
    async def all(self) -> list[str]:
        """Return the names of all data classes (e.g. ``"Email addresses"``)."""
        payload = await self._client.request("dataclasses")
        return list(payload or [])


class Breached(EndpointGroup):
    """Breached accounts and domains.

    Domain searches are expensive, so :meth:`domain` polls the latest breach
    first and only bypasses the cache once a breach newer than the last one
    this group has seen appears.  The tracker state belongs to this group.
    """

    def __init__(self, client: HaveIBeenPwned) -> None:
        super().__init__(client)
        self.tracker = BreachFreshnessTracker(self._probe_latest_breach)

    async def _probe_latest_breach(self) -> Optional[str]:
        latest = await self._client.breaches.latest()
        return latest.added_date if latest else None

    async def account(
        self,
        account: str,
        truncate_response: bool = True,
        domain: Optional[str] = None,
        include_unverified: bool = False,
    ) -> Optional[list[Breach]]:
        """Return the breaches *account* appears in, or ``None`` if none.

        Args:
            account: Email address or username.
            truncate_response: Return only breach names.
            domain: Restrict results to breaches of this domain.
            include_unverified: Include unverified breaches.
        """
        payload = await self._client.request(
            f"breachedaccount/{_segment(account)}",
            {
                "truncateResponse": truncate_response,
                "domain": domain,
                "IncludeUnverified": include_unverified,
            },
        )
        if payload is None:
            return None
        return [Breach.model_validate(item) for item in payload]

    async def domain(self, domain: str, force_fresh: bool = False) -> Optional[dict[str, list[str]]]:
        """Return breached aliases on *domain* mapped to their breach names.

        Args:
            domain: A domain verified on the API key's subscription.
            force_fresh: Skip the latest-breach probe and the cache read.

        Returns:
            ``{"alias": ["Breach1", ...]}``, or ``None`` if nothing was found.
        """
        path = f"breacheddomain/{_segment(domain)}"

        if not await self.tracker.requires_fresh_fetch(force_fresh):
            return await self._client.request(path)

        logger.debug("Fetching %s bypassing the cache", path)
        payload = await self._client.request_no_cache(path)
        await self._client.update_cache(path, None, payload)
        return payload


class StealerLogs(EndpointGroup):
    """Stealer-log lookups (requires a Pwned 5 or higher subscription)."""

    async def by_email(self, email: str) -> Optional[list[str]]:
        """Return website domains with captured credentials for *email*."""
        return await self._client.request(f"stealerlogsbyemail/{_segment(email)}")

    async def by_website_domain(self, domain: str) -> Optional[list[str]]:
        """Return email addresses whose credentials for *domain* were captured."""
        return await self._client.request(f"stealerlogsbywebsitedomain/{_segment(domain)}")

    async def by_email_domain(self, domain: str) -> Optional[dict[str, list[str]]]:
        """Return aliases on email *domain* mapped to the websites they were captured on."""
        return await self._client.request(f"stealerlogsbyemaildomain/{_segment(domain)}")


class Pastes(EndpointGroup):
    async def account(self, email: str) -> Optional[list[Paste]]:
        """Return the pastes *email* appears in, or ``None`` if none."""
        payload = await self._client.request(f"pasteaccount/{_segment(email)}")
        if payload is None:
            return None
        return [Paste.model_validate(item) for item in payload]


class Subscription(EndpointGroup):
    async def status(self) -> Optional[SubscriptionStatus]:
        """Return the subscription attached to the API key."""
        payload = await self._client.request("subscription/status")
        return SubscriptionStatus.model_validate(payload) if payload else None

    async def domains(self) -> list[SubscribedDomain]:
        """Return the domains verified on the subscription."""
        payload = await self._client.request("subscribeddomains")
        return [SubscribedDomain.model_validate(item) for item in payload or []]


class Passwords(EndpointGroup):
    """Pwned Passwords k-anonymity range search.

    Only the first five characters of the hash leave the machine; the
    matching suffix is looked up locally in the returned range.
    """

    async def range(
        self,
        password_hash: str,
        add_padding: bool = False,
        mode: str = "sha1",
    ) -> int:
        """Return how often *password_hash* appears in the corpus (0 if never).

        Args:
            password_hash: Hex SHA-1 or NTLM hash (case-insensitive).
            add_padding: Ask the API to pad the response with zero-count
                entries so its size does not reveal the prefix.
            mode: ``"sha1"`` or ``"ntlm"``.

        Raises:
            InvalidUsageError: If the hash is shorter than five characters
                or *mode* is unknown.
        """
        if len(password_hash) < _HASH_PREFIX_LENGTH:
            raise InvalidUsageError("Password hash must be at least 5 characters long")
        if mode not in _HASH_MODES:
            raise InvalidUsageError(f"Unknown hash mode '{mode}', expected sha1 or ntlm")

        prefix = password_hash[:_HASH_PREFIX_LENGTH].upper()
        suffix = password_hash[_HASH_PREFIX_LENGTH:].upper()

        params = {"mode": "ntlm"} if mode == "ntlm" else None
        headers = {"Add-Padding": "true"} if add_padding else None
        body = await self._client.request_passwords(f"range/{prefix}", params, headers)

        for line in body.splitlines():
            if not line.strip():
                continue
            hash_suffix, _, count = line.partition(":")
            count = count.strip()
            if not count.isdecimal():
                logger.debug("Skipping malformed range line %r", line)
                continue
            if add_padding and count == "0":
                continue
            if hash_suffix.strip().upper() == suffix:
                return int(count)
        return 0

    async def check(self, password: str, add_padding: bool = False, mode: str = "sha1") -> int:
        """Hash *password* with SHA-1 and return its :meth:`range` count.

        Raises:
            InvalidUsageError: For ``mode="ntlm"``; pass a precomputed NTLM
                hash to :meth:`range` instead.
        """
        if mode == "ntlm":
            raise InvalidUsageError(
                "NTLM hash generation is not supported; pass a precomputed NTLM hash to range()"
            )
        return await self.range(sha1_hex(password), add_padding=add_padding, mode=mode)


def sha1_hex(text: str) -> str:
    """Uppercase hex SHA-1 of *text* (UTF-8)."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest().upper()


__all__ = [
    "Breached",
    "Breaches",
    "DataClasses",
    "EndpointGroup",
    "Passwords",
    "Pastes",
    "StealerLogs",
    "Subscription",
    "sha1_hex",
]
