"""Allow-list validation for source URLs embedded in exported documents."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse


@dataclass
class UrlValidationResult:
    """Result of URL validation."""

    is_valid: bool
    rejection_reason: str | None = None

    @staticmethod
    def valid() -> UrlValidationResult:
        """Create a valid result."""
        return UrlValidationResult(is_valid=True)

    @staticmethod
    def invalid(reason: str) -> UrlValidationResult:
        """Create an invalid result with reason."""
        return UrlValidationResult(is_valid=False, rejection_reason=reason)


class UrlValidator:
    """
    Validates the "chat url" written at the top of an export.

    The URL comes from the page being exported, so it is attacker
    influenced. Only http(s) URLs on a known chat host (or one of its
    subdomains) are accepted:
    - chat.openai.com, chatgpt.com
    - claude.ai
    - gemini.google.com
    - x.com, grok.com

    Example:
        validator = UrlValidator()
        result = validator.validate("https://chatgpt.com/c/123")
        if not result.is_valid:
            print(f"Rejected: {result.rejection_reason}")
    """

    DEFAULT_ALLOWED_SCHEMES = {"http", "https"}
    DEFAULT_ALLOWED_DOMAINS = {
        "chat.openai.com",
        "chatgpt.com",
        "claude.ai",
        "gemini.google.com",
        "x.com",
        "grok.com",
    }

    def __init__(
        self,
        allowed_schemes: set[str] | None = None,
        allowed_domains: set[str] | None = None,
        logger: logging.Logger | None = None,
    ):
        """
        Initialize the URL validator.

        Args:
            allowed_schemes: Set of allowed URL schemes (default: {"http", "https"})
            allowed_domains: Hosts accepted together with their subdomains
            logger: Optional logger for validation messages
        """
        self.allowed_schemes = allowed_schemes or self.DEFAULT_ALLOWED_SCHEMES
        self.allowed_domains = allowed_domains or self.DEFAULT_ALLOWED_DOMAINS
        self.logger = logger or logging.getLogger(__name__)

    def validate(self, url: Any) -> UrlValidationResult:
        """
        Validate a URL against the scheme and host allow-lists.

        Args:
            url: The candidate URL (non-strings are rejected)

        Returns:
            UrlValidationResult with is_valid and optional rejection_reason
        """
        if not isinstance(url, str):
            return UrlValidationResult.invalid("URL is not a string")

        # The URL is echoed verbatim into the document, so no line breaks or controls
        if any(ch.isspace() or not ch.isprintable() for ch in url):
            return UrlValidationResult.invalid("URL contains whitespace or control characters")

        # Browsers read a backslash as "/", so "https://evil.com\@chatgpt.com" opens evil.com
        if "\\" in url:
            return UrlValidationResult.invalid("URL contains a backslash")

        try:
            parsed = urlparse(url)
            # Accessing hostname/port triggers validation of the netloc
            hostname = parsed.hostname
            parsed.port
        except ValueError:
            return UrlValidationResult.invalid("Invalid URL format")

        scheme = parsed.scheme.lower()
        if scheme not in self.allowed_schemes:
            return UrlValidationResult.invalid(
                f"Scheme '{scheme}' not allowed (allowed: {sorted(self.allowed_schemes)})"
            )

        if not hostname:
            return UrlValidationResult.invalid("URL has no host")

        if "@" in parsed.netloc:
            return UrlValidationResult.invalid("URL contains credentials")

        if not self._is_allowed_host(hostname):
            return UrlValidationResult.invalid(f"Host '{hostname}' not in allowed list")

        return UrlValidationResult.valid()

    def _is_allowed_host(self, hostname: str) -> bool:
        """Check hostname equals, or is a subdomain of, an allowed domain."""
        return any(
            hostname == domain or hostname.endswith("." + domain) for domain in self.allowed_domains
        )

    def is_valid(self, url: Any) -> bool:
        """
        Quick check if URL is valid.

        Args:
            url: The URL to check

        Returns:
            True if valid, False otherwise
        """
        result = self.validate(url)
        if not result.is_valid:
            self.logger.debug(f"Rejected URL {url!r}: {result.rejection_reason}")
        return result.is_valid

    def get_rejection_reason(self, url: Any) -> str | None:
        """
        Get rejection reason for a URL.

        Args:
            url: The URL to check

        Returns:
            Rejection reason string if invalid, None if valid
        """
        return self.validate(url).rejection_reason


_default_validator = UrlValidator()


def is_valid_url(candidate: Any) -> bool:
    """Check a candidate URL against the default chat-host allow-list."""
    return _default_validator.is_valid(candidate)
