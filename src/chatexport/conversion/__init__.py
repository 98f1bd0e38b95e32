"""Content conversion for chatexport (sanitized HTML to text and Markdown)."""

from .elements import ElementKind
from .markdown import MarkdownHeaderBuilder, MarkdownRenderer, detect_code_language, to_markdown
from .protocols import MessageRenderer
from .text import TextFlattener, flatten_cell, to_text

__all__ = [
    # Protocols
    "MessageRenderer",
    # Implementations
    "ElementKind",
    "TextFlattener",
    "MarkdownRenderer",
    "MarkdownHeaderBuilder",
    # Helpers
    "detect_code_language",
    "flatten_cell",
    "to_text",
    "to_markdown",
]
