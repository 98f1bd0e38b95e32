"""Chatexport configuration and message models."""

from .config import ConversationOptions, Platform, RendererKind, is_valid_platform
from .messages import (
    ROLE_LABELS,
    AssembledDocument,
    Degradation,
    Message,
    RenderResult,
    role_display,
)

__all__ = [
    # Config
    "ConversationOptions",
    "Platform",
    "RendererKind",
    "is_valid_platform",
    # Messages
    "Message",
    "ROLE_LABELS",
    "role_display",
    # Results
    "AssembledDocument",
    "Degradation",
    "RenderResult",
]
