"""Message and result models passed through the export pipeline."""

from dataclasses import dataclass, field

from pydantic import BaseModel, Field

ROLE_LABELS = {
    "user": "User",
    "assistant": "Assistant",
    "system": "System",
    "claude": "Claude",
    "gpt": "ChatGPT",
    "gemini": "Gemini",
    "grok": "Grok",
}


class Message(BaseModel):
    """
    One conversation turn as handed over by a page extractor.

    Attributes:
        role: Speaker token ("user", "assistant", or a platform-specific name)
        content: Raw, untrusted HTML fragment
    """

    role: str = Field(..., description="Speaker role token")
    content: str = Field("", description="Raw HTML content of the message")

    model_config = {"frozen": True, "extra": "ignore"}

    @property
    def role_display(self) -> str:
        """Human-readable label for the role."""
        return role_display(self.role)


def role_display(role: str) -> str:
    """Map a role token to its display label, title-casing unknown roles."""
    if role in ROLE_LABELS:
        return ROLE_LABELS[role]
    return role[:1].upper() + role[1:]


@dataclass(frozen=True)
class Degradation:
    """
    Record of a rendering step that fell back to plain text.

    Attributes:
        stage: Renderer pass that failed (e.g. "table", "list", "code")
        element: Tag name of the element that was degraded
        reason: Error message from the failed step
    """

    stage: str
    element: str
    reason: str


@dataclass
class RenderResult:
    """Rendered output of one message plus any degradations it hit."""

    text: str
    degradations: list[Degradation] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True if any rendering step fell back to plain text."""
        return bool(self.degradations)


@dataclass
class AssembledDocument:
    """
    Final document with aggregated rendering diagnostics.

    Attributes:
        text: The assembled document string
        message_count: Number of messages rendered
        degradations: Degradations from every message, in message order
    """

    text: str
    message_count: int = 0
    degradations: list[Degradation] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        """True if any message was rendered with a fallback."""
        return bool(self.degradations)

    def to_dict(self) -> dict:
        """Convert diagnostics to a dictionary for serialization."""
        return {
            "message_count": self.message_count,
            "degraded": self.degraded,
            "degradations": [
                {"stage": d.stage, "element": d.element, "reason": d.reason}
                for d in self.degradations
            ],
        }
