"""Pydantic configuration models for chatexport."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field


class RendererKind(str, Enum):
    """Output renderers available to the document assembler."""

    TEXT = "text"
    MARKDOWN = "markdown"


class Platform(str, Enum):
    """Chat platforms a transcript can be exported from."""

    CHATGPT = "chatgpt"
    CLAUDE = "claude"
    GEMINI = "gemini"
    GROK = "grok"
    UNKNOWN = "unknown"


def is_valid_platform(value: Any) -> bool:
    """
    Check that a platform name is one of the supported platforms.

    Platform names end up in log lines and output headers, so anything
    outside the known set is rejected rather than echoed.

    Args:
        value: Candidate platform name

    Returns:
        True if the value names a known platform
    """
    if not isinstance(value, str):
        return False
    return value in {p.value for p in Platform}


class ConversationOptions(BaseModel):
    """
    Options controlling how a conversation is assembled into a document.

    Accepts both snake_case field names and the camelCase keys used by
    browser-side callers.

    Example:
        options = ConversationOptions(
            platform="claude",
            url="https://claude.ai/chat/123",
        )

    JSON format:
        {"includeMetadata": true, "platform": "chatgpt", "url": "https://chatgpt.com/c/1"}
    """

    include_timestamps: bool = Field(
        False,
        alias="includeTimestamps",
        description="Accepted for compatibility; messages carry no timestamps",
    )
    include_metadata: bool = Field(
        True,
        alias="includeMetadata",
        description="Emit the chat url preamble and, for Markdown, the metadata header",
    )
    platform: str = Field("unknown", description="Platform the conversation came from")
    url: str = Field("", description="Source URL of the conversation")
    include_header: bool = Field(
        False,
        alias="includeHeader",
        description="Prepend a title/platform/date header to Markdown output",
    )
    exported_at: Optional[datetime] = Field(
        None,
        alias="exportedAt",
        description="Export timestamp for the Markdown header (defaults to now)",
    )
    collapse_blank_lines: bool = Field(
        False,
        alias="collapseBlankLines",
        description="Collapse runs of blank lines inside a rendered message (opt-in)",
    )

    model_config = {"extra": "forbid", "populate_by_name": True}

    @classmethod
    def from_json(cls, json_str: str) -> "ConversationOptions":
        """Load options from a JSON string."""
        return cls.model_validate_json(json_str)

    @classmethod
    def from_json_file(cls, path: Path) -> "ConversationOptions":
        """Load options from a JSON file."""
        return cls.from_json(path.read_text(encoding="utf-8"))
