"""
chatexport - Convert chat transcripts scraped from LLM web UIs into safe text or Markdown.

Usage:
    from chatexport import assemble, ConversationOptions, RendererKind

    document = assemble(
        [
            {"role": "user", "content": "<p>What is a monad?</p>"},
            {"role": "assistant", "content": "<p>A <b>monoid</b> in the category...</p>"},
        ],
        RendererKind.MARKDOWN,
        ConversationOptions(platform="chatgpt", url="https://chatgpt.com/c/123"),
    )
"""

__version__ = "1.0.0"

from .conversion import (
    ElementKind,
    MarkdownHeaderBuilder,
    MarkdownRenderer,
    TextFlattener,
    to_markdown,
    to_text,
)
from .core import DocumentAssembler, assemble, assemble_document
from .logging_config import setup_logging
from .models import (
    AssembledDocument,
    ConversationOptions,
    Degradation,
    Message,
    Platform,
    RendererKind,
    RenderResult,
    is_valid_platform,
    role_display,
)
from .security import UrlValidationResult, UrlValidator, is_valid_url, sanitize, strip_html_tags

__all__ = [
    "__version__",
    # Core
    "DocumentAssembler",
    "assemble",
    "assemble_document",
    # Config
    "ConversationOptions",
    "Platform",
    "RendererKind",
    "is_valid_platform",
    # Messages
    "Message",
    "role_display",
    "AssembledDocument",
    "Degradation",
    "RenderResult",
    # Conversion
    "ElementKind",
    "TextFlattener",
    "MarkdownRenderer",
    "MarkdownHeaderBuilder",
    "to_text",
    "to_markdown",
    # Security
    "sanitize",
    "strip_html_tags",
    "UrlValidator",
    "UrlValidationResult",
    "is_valid_url",
    # Logging
    "setup_logging",
]
