"""Security helpers for chatexport: HTML sanitization and URL validation."""

from .sanitizer import SanitizedNode, sanitize, sanitize_tree, strip_html_tags
from .url_validator import UrlValidationResult, UrlValidator, is_valid_url

__all__ = [
    "SanitizedNode",
    "sanitize",
    "sanitize_tree",
    "strip_html_tags",
    "UrlValidator",
    "UrlValidationResult",
    "is_valid_url",
]
