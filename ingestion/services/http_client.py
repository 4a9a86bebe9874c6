"""The single outbound HTTP path used by source fetchers."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional

import httpx

from ingestion.connectors.base import PermanentError, TransientError, UrlNotAllowedError
from ingestion.services.rate_limiter import SlidingWindowRateLimiter
from ingestion.services.security_log import SecurityAuditLog, get_security_log
from ingestion.services.trusted_domains import TRUSTED_DOMAINS, validate_url

MAX_TIMEOUT_SECONDS = 60.0


class SecureHttpClient:
    """GET-only client enforcing the allow-list, rate limit and timeout cap.

    Every call: URL validated, one slot taken from the shared limiter, request
    sent without cookies, non-2xx mapped to ``TransientError`` (429/5xx) or
    ``PermanentError`` (other 4xx). Failures are recorded on the audit log.
    """

    def __init__(
        self,
        limiter: SlidingWindowRateLimiter,
        *,
        trusted_domains: Iterable[str] = TRUSTED_DOMAINS,
        timeout_seconds: float = 10.0,
        user_agent: str = "AGI-Detector-Secure/1.0",
        audit: Optional[SecurityAuditLog] = None,
    ) -> None:
        self.limiter = limiter
        self.trusted_domains = tuple(trusted_domains)
        self.timeout_seconds = min(float(timeout_seconds), MAX_TIMEOUT_SECONDS)
        self.user_agent = user_agent
        self._audit = audit

    @property
    def audit(self) -> SecurityAuditLog:
        return self._audit or get_security_log()

    def get(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        if not validate_url(url, self.trusted_domains):
            self.audit.log("url_validation_failed", "URL failed security validation", url)
            raise UrlNotAllowedError(f"URL not allowed by security policy: {url}")

        self.limiter.acquire(url)

        merged: Dict[str, str] = {"User-Agent": self.user_agent, "Accept": "application/json, application/xml, text/*"}
        merged.update(headers or {})
        effective_timeout = min(float(timeout or self.timeout_seconds), MAX_TIMEOUT_SECONDS)
        try:
            resp = httpx.get(
                url,
                params=params,
                headers=merged,
                timeout=effective_timeout,
                follow_redirects=False,
            )
        except httpx.TimeoutException as exc:
            self.audit.log("request_timeout", "Request timeout", url)
            raise TransientError(f"timeout after {effective_timeout:.0f}s: {url}") from exc
        except httpx.HTTPError as exc:
            self.audit.log("request_failed", f"transport error: {type(exc).__name__}", url)
            raise TransientError(f"transport error: {exc}") from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            self.audit.log("request_failed", f"HTTP {resp.status_code}", url)
            raise TransientError(f"upstream temporary error: {resp.status_code}")
        if resp.status_code >= 300:
            self.audit.log("request_failed", f"HTTP {resp.status_code}", url)
            raise PermanentError(f"upstream error: {resp.status_code}")
        return resp
