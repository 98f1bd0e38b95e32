"""Protocol definitions for message rendering."""

from typing import Any, Protocol

from ..models.messages import RenderResult


class MessageRenderer(Protocol):
    """
    Protocol for turning a sanitized message tree into document text.

    Implementations must not raise for unusual markup; steps that fail
    fall back to plain text and are reported in the result.
    """

    name: str

    def render(self, node: Any) -> RenderResult:
        """
        Render a sanitized tree.

        Args:
            node: Sanitized tree as returned by ``sanitize``

        Returns:
            RenderResult with the rendered text and degradation records
        """
        ...

    def convert(self, node: Any) -> str:
        """
        Render a sanitized tree and return only the text.

        Args:
            node: Sanitized tree as returned by ``sanitize``

        Returns:
            Rendered text
        """
        ...
