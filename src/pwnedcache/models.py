"""Canonical Pydantic models shared across all pwnedcache modules.

The models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig` and :class:`ClientConfig`.

**Cache storage model** -- one JSON document per cache key on disk:
    :class:`CacheEntry`.

**API response models** -- the shapes returned by the Have I Been Pwned v3
API: :class:`Breach`, :class:`Paste`, :class:`SubscriptionStatus` and
:class:`SubscribedDomain`.  The API uses PascalCase field names, so every
field declares an alias and the models accept either spelling.  Unknown
fields are preserved (``extra="allow"``) because the API adds attributes
over time.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_BASE_URL = "https://haveibeenpwned.com/api/v3/"
DEFAULT_PASSWORDS_BASE_URL = "https://api.pwnedpasswords.com/"
DEFAULT_USER_AGENT = "pwnedcache"
DEFAULT_CACHE_APP_ID = "pwnedcache"


# --- Configuration ---


class CacheConfig(BaseModel):
    """Response cache configuration.

    When ``ttl_seconds`` is set it is the only freshness criterion.  When it
    is ``None`` entries are invalidated by the latest-breach signal instead
    (see :meth:`~pwnedcache.cache.ResponseCache.is_fresh`).

    Example::

        CacheConfig(enabled=True, ttl_seconds=3600)
    """

    enabled: bool = Field(default=True, description="Enable response caching")
    directory: Optional[str] = Field(
        default=None,
        description="Cache directory; defaults to the platform cache dir",
    )
    ttl_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Fixed entry lifetime in seconds; overrides breach-date invalidation",
    )


class ClientConfig(BaseModel):
    """Persistent client settings loaded from ``config.json``."""

    base_url: str = Field(default=DEFAULT_BASE_URL)
    passwords_base_url: str = Field(default=DEFAULT_PASSWORDS_BASE_URL)
    user_agent: str = Field(default=DEFAULT_USER_AGENT)
    timeout: float = Field(default=30.0, description="Request timeout in seconds")
    api_key_source: str = Field(
        default="env:HIBP_API_KEY",
        description="Credential source: env:VAR, file:/path, prompt",
    )
    cache: CacheConfig = Field(default_factory=CacheConfig)


# --- Cache storage ---


class CacheEntry(BaseModel):
    """A single cached API response as persisted on disk.

    Attributes:
        data: The opaque, JSON-compatible response payload.
        created_at: Unix timestamp (seconds) at which the entry was written.
        freshness_tag: The latest breach ``AddedDate`` known when the entry
            was written, or ``None`` if it was unknown.
    """

    data: Any
    created_at: float
    freshness_tag: Optional[str] = None


# --- API shapes ---


class _APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Breach(_APIModel):
    """A breach record.  With ``truncateResponse`` only ``name`` is present."""

    name: str = Field(alias="Name")
    title: Optional[str] = Field(default=None, alias="Title")
    domain: Optional[str] = Field(default=None, alias="Domain")
    breach_date: Optional[str] = Field(default=None, alias="BreachDate")
    added_date: Optional[str] = Field(default=None, alias="AddedDate")
    modified_date: Optional[str] = Field(default=None, alias="ModifiedDate")
    pwn_count: Optional[int] = Field(default=None, alias="PwnCount")
    description: Optional[str] = Field(default=None, alias="Description")
    logo_path: Optional[str] = Field(default=None, alias="LogoPath")
    data_classes: list[str] = Field(default_factory=list, alias="DataClasses")
    is_verified: Optional[bool] = Field(default=None, alias="IsVerified")
    is_fabricated: Optional[bool] = Field(default=None, alias="IsFabricated")
    is_sensitive: Optional[bool] = Field(default=None, alias="IsSensitive")
    is_retired: Optional[bool] = Field(default=None, alias="IsRetired")
    is_spam_list: Optional[bool] = Field(default=None, alias="IsSpamList")
    is_malware: Optional[bool] = Field(default=None, alias="IsMalware")
    is_subscription_free: Optional[bool] = Field(default=None, alias="IsSubscriptionFree")
    is_stealer_log: Optional[bool] = Field(default=None, alias="IsStealerLog")


class Paste(_APIModel):
    """A paste in which an account was found."""

    source: str = Field(alias="Source")
    id: str = Field(alias="Id")
    title: Optional[str] = Field(default=None, alias="Title")
    date: Optional[str] = Field(default=None, alias="Date")
    email_count: int = Field(default=0, alias="EmailCount")


class SubscriptionStatus(_APIModel):
    subscribed_until: Optional[str] = Field(default=None, alias="SubscribedUntil")
    subscription_name: str = Field(alias="SubscriptionName")
    description: Optional[str] = Field(default=None, alias="Description")
    domain_search_max_breached_accounts: Optional[int] = Field(
        default=None, alias="DomainSearchMaxBreachedAccounts"
    )
    rpm: int = Field(alias="Rpm")


class SubscribedDomain(_APIModel):
    domain_name: str = Field(alias="DomainName")
    pwn_count: Optional[int] = Field(default=None, alias="PwnCount")
    pwn_count_excluding_spam_lists: Optional[int] = Field(
        default=None, alias="PwnCountExcludingSpamLists"
    )
    pwn_count_excluding_spam_lists_at_last_subscription_renewal: Optional[int] = Field(
        default=None, alias="PwnCountExcludingSpamListsAtLastSubscriptionRenewal"
    )
    next_subscription_renewal: Optional[str] = Field(
        default=None, alias="NextSubscriptionRenewal"
    )
