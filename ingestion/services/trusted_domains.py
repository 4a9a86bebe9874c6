"""URL allow-listing for outbound requests and links handed to clients."""

from __future__ import annotations

from typing import Iterable, Optional
from urllib.parse import urlsplit

from ingestion.services.security_log import SecurityAuditLog, get_security_log

TRUSTED_DOMAINS: tuple[str, ...] = (
    "openai.com",
    "hn.algolia.com",
    "news.ycombinator.com",
    "www.wired.com",
    "venturebeat.com",
    "thenextweb.com",
    "analyticsindiamag.com",
    "arxiv.org",
    "www.reddit.com",
    "github.com",
    "twitter.com",
    "medium.com",
)

TRUSTED_SCHEMES = frozenset({"http", "https"})
MAX_URL_LENGTH = 2048
SAFE_URL_PLACEHOLDER = "#"


def host_is_trusted(hostname: str, domains: Iterable[str]) -> bool:
    host = hostname.lower().rstrip(".")
    return any(host == d or host.endswith("." + d) for d in domains)


def validate_url(url: str, domains: Optional[Iterable[str]] = None) -> bool:
    """True only for absolute http(s) URLs on an allow-listed host under the length cap."""
    if not isinstance(url, str) or not url or len(url) >= MAX_URL_LENGTH:
        return False
    try:
        parts = urlsplit(url.strip())
        hostname = parts.hostname
        # accessing .port raises on malformed ports
        parts.port
    except ValueError:
        return False
    if parts.scheme.lower() not in TRUSTED_SCHEMES or not hostname:
        return False
    if parts.username or parts.password:
        return False
    return host_is_trusted(hostname, domains if domains is not None else TRUSTED_DOMAINS)


def sanitize_url(
    url: Optional[str],
    domains: Optional[Iterable[str]] = None,
    *,
    audit: Optional[SecurityAuditLog] = None,
) -> str:
    """Return ``url`` when it validates, otherwise the safe placeholder."""
    candidate = (url or "").strip()
    if validate_url(candidate, domains):
        return candidate
    (audit or get_security_log()).log(
        "url_validation_failed", "URL rejected by allow-list", candidate[:MAX_URL_LENGTH] or None
    )
    return SAFE_URL_PLACEHOLDER


def build_domain_list(extra: Iterable[str] = ()) -> tuple[str, ...]:
    merged = list(TRUSTED_DOMAINS)
    for domain in extra:
        d = domain.strip().lower()
        if d and d not in merged:
            merged.append(d)
    return tuple(merged)
