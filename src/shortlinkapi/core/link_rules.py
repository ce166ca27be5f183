from __future__ import annotations
from datetime import datetime, timezone
import re
from typing import Optional
from urllib.parse import urlsplit

from shortlinkapi.core.errors import AliasInvalid, AliasReserved, InvalidUrl

ALIAS_MIN_LENGTH = 3
ALIAS_MAX_LENGTH = 20
ALIAS_RE = re.compile(r"^[A-Za-z0-9_-]+$")

# Top-level paths the app routes itself; an alias must not shadow them.
RESERVED_ALIASES = frozenset(
    {"api", "admin", "dashboard", "login", "register", "health", "analytics", "docs", "redoc"}
)

# "javascript:", "ftp:" etc. A colon followed by a digit is a port ("example.com:8080").
_SCHEME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9+.-]*:(?!\d)")


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def is_expired(expires_at: Optional[datetime], now: datetime) -> bool:
    return expires_at is not None and ensure_utc(now) >= ensure_utc(expires_at)


def normalize_original_url(raw: str) -> str:
    """
    Returns the URL to store for a new link.

    A URL without a scheme gets "https://" prepended ("example.com" ->
    "https://example.com"). Any scheme other than http/https is rejected,
    as is anything without a host.
    """
    value = raw.strip()
    if not value or any(ch.isspace() for ch in value):
        raise InvalidUrl()

    if not value.lower().startswith(("http://", "https://")):
        if _SCHEME_RE.match(value) or value.startswith("//"):
            raise InvalidUrl()
        value = "https://" + value

    parts = urlsplit(value)
    try:
        parts.port
    except ValueError:
        raise InvalidUrl() from None
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise InvalidUrl()
    return value


def validate_custom_alias(alias: str) -> str:
    if len(alias) < ALIAS_MIN_LENGTH:
        raise AliasInvalid(f"Alias must be at least {ALIAS_MIN_LENGTH} characters long")
    if len(alias) > ALIAS_MAX_LENGTH:
        raise AliasInvalid(f"Alias cannot exceed {ALIAS_MAX_LENGTH} characters")
    if not ALIAS_RE.fullmatch(alias):
        raise AliasInvalid()
    if alias.lower() in RESERVED_ALIASES:
        raise AliasReserved()
    return alias
