"""Parsing and sanitization of untrusted message HTML."""

import logging
import re
from typing import Any, Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# A sanitized message: the detached <body> container of a freshly parsed fragment
SanitizedNode = Tag

# Elements dropped together with their content
REMOVE_TAGS = ["script", "style"]

# Attributes that can navigate or load a resource
URL_ATTRIBUTES = ("href", "src", "action", "formaction", "data")

DANGEROUS_SCHEMES = ("javascript:", "data:", "vbscript:", "file:")

# Browsers ignore ASCII whitespace and controls inside a scheme ("java\tscript:")
_SCHEME_NOISE = re.compile(r"[\x00-\x20]+")

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE_BLOCK = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]*>")
_WHITESPACE = re.compile(r"\s+")

# Decoded in this order, so "&amp;lt;" ends up as "<"
_FALLBACK_ENTITIES = [
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
]


def strip_html_tags(html: Optional[str]) -> str:
    """
    Reduce HTML to plain text with regular expressions.

    Degraded path for when the HTML parser is unavailable: script and
    style blocks are removed, then every remaining tag, then a handful
    of entities are decoded and whitespace is collapsed.

    Args:
        html: Raw HTML string

    Returns:
        Single-line plain text
    """
    if not html:
        return ""

    text = _SCRIPT_BLOCK.sub("", html)
    text = _STYLE_BLOCK.sub("", text)
    text = _ANY_TAG.sub("", text)
    for entity, char in _FALLBACK_ENTITIES:
        text = text.replace(entity, char)
    return _WHITESPACE.sub(" ", text).strip()


def _container(text: str = "") -> SanitizedNode:
    """Build a detached <body> holding at most one text node."""
    soup = BeautifulSoup("", "html.parser")
    body = soup.new_tag("body")
    if text:
        body.string = text
    soup.append(body)
    return body


def _coerce(html_fragment: Any) -> str:
    """Turn caller input into a string, treating anything unusable as empty."""
    if html_fragment is None:
        return ""
    if isinstance(html_fragment, bytes):
        return html_fragment.decode("utf-8", errors="replace")
    if isinstance(html_fragment, str):
        return html_fragment
    logger.warning(f"Ignoring non-string message content of type {type(html_fragment).__name__}")
    return ""


def _is_dangerous_url(value: Any) -> bool:
    """Check whether an attribute value uses a blocked URL scheme."""
    if isinstance(value, list):
        value = " ".join(value)
    if not isinstance(value, str) or not value:
        return False
    normalized = _SCHEME_NOISE.sub("", value.strip()).lower()
    return normalized.startswith(DANGEROUS_SCHEMES)


def sanitize_tree(root: Tag) -> Tag:
    """
    Strip executable content from a parsed tree in place.

    Removes script/style elements, every on* event handler attribute and
    URL attributes pointing at javascript:, data:, vbscript: or file:.

    Args:
        root: Parsed element to clean

    Returns:
        The same element, for chaining
    """
    for element in root.find_all(REMOVE_TAGS):
        element.decompose()

    for element in root.find_all(True):
        # Get list of attrs to remove (can't modify during iteration)
        handlers = [attr for attr in element.attrs if attr.lower().startswith("on")]
        for attr in handlers:
            del element[attr]

        for attr in URL_ATTRIBUTES:
            if attr in element.attrs and _is_dangerous_url(element.attrs[attr]):
                del element[attr]

    return root


def sanitize(html_fragment: Any) -> SanitizedNode:
    """
    Parse an untrusted HTML fragment into a sanitized, detached tree.

    Parsing uses html5lib, so unclosed tags and bad nesting are repaired
    the way a browser would. If parsing fails altogether the result is a
    container with the regex-stripped text of the fragment.

    Example:
        body = sanitize('<p onclick="x()">hi</p><script>alert(1)</script>')
        str(body)  # '<body><p>hi</p></body>'

    Args:
        html_fragment: Raw HTML of one message

    Returns:
        The <body> element of the parsed fragment, never None
    """
    html = _coerce(html_fragment)
    if not html:
        return _container()

    try:
        soup = BeautifulSoup(html, "html5lib")
        body = soup.body
        if body is None:
            return _container()
        return sanitize_tree(body)
    except Exception as e:
        logger.warning(f"Failed to parse HTML safely, falling back to text content: {e}")
        return _container(strip_html_tags(html))
