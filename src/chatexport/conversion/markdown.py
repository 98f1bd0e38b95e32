"""Markdown rendering of sanitized message trees."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Callable, Optional, Sequence

from bs4.element import Tag

from ..models.messages import Degradation, Message, RenderResult
from ..security.sanitizer import SanitizedNode, sanitize
from .elements import ElementKind, class_names, guarded, is_text, nesting_fallback, table_rows, text_content
from .text import TextFlattener, flatten_cell

logger = logging.getLogger(__name__)

_LANGUAGE_CLASS = re.compile(r"(?:^|\s)(?:language|lang)-([\w+#.-]+)")


def detect_code_language(*elements: Optional[Tag]) -> str:
    """
    Detect the programming language of a code block.

    Looks for ``language-xxx`` / ``lang-xxx`` class names first, then a
    ``data-language`` attribute, on each element in turn.

    Returns:
        Language name, or "" when nothing is declared
    """
    for element in elements:
        if element is None:
            continue
        match = _LANGUAGE_CLASS.search(class_names(element))
        if match:
            return match.group(1)
        data_language = element.get("data-language")
        if isinstance(data_language, str) and data_language.strip():
            return data_language.strip()
    return ""


# Converters receive (rendered children, element, index among element siblings, parent kind)
Converter = Callable[[str, Tag, int, ElementKind], str]


def _heading(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    level = int(element.name[1])
    return f"{'#' * level} {text}\n\n"


def _paragraph(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    return f"{text}\n\n"


def _line_break(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    return "\n"


def _strong(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    return f"**{text}**"


def _emphasis(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    return f"*{text}*"


def _inline_code(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    return f"`{text}`"


def _link(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    href = element.get("href")
    return f"[{text}]({href})" if href else text


def _image(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    src = element.get("src")
    alt = element.get("alt") or text
    return f"![{alt}]({src})" if src else f"[Image: {alt}]"


def _blockquote(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    return "\n".join(f"> {line}" for line in text.split("\n")) + "\n\n"


def _list(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    return f"{text}\n"


def _list_item(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    prefix = f"{index + 1}. " if parent is ElementKind.ORDERED_LIST else "- "
    return f"{prefix}{text}\n"


def _passthrough(text: str, element: Tag, index: int, parent: ElementKind) -> str:
    return text


CONVERTERS: MappingProxyType[ElementKind, Converter] = MappingProxyType(
    {
        ElementKind.HEADING: _heading,
        ElementKind.PARAGRAPH: _paragraph,
        ElementKind.LINE_BREAK: _line_break,
        ElementKind.STRONG: _strong,
        ElementKind.EMPHASIS: _emphasis,
        ElementKind.CODE: _inline_code,
        ElementKind.LINK: _link,
        ElementKind.IMAGE: _image,
        ElementKind.BLOCKQUOTE: _blockquote,
        ElementKind.UNORDERED_LIST: _list,
        ElementKind.ORDERED_LIST: _list,
        ElementKind.LIST_ITEM: _list_item,
    }
)


class _MarkdownFold:
    """One Markdown rendering run; children are rendered before their parent wraps them."""

    def __init__(self, degradations: list[Degradation]):
        self.degradations = degradations

    def children(self, node: Tag) -> str:
        parent_kind = ElementKind.of(node)
        parts: list[str] = []
        index = 0
        for child in node.children:
            if not isinstance(child, Tag):
                if is_text(child):
                    parts.append(str(child))
                continue

            kind = ElementKind.of(child)
            if kind is ElementKind.TABLE:
                rendered = guarded("table", child, self._table, self._raw_paragraph, self.degradations)
                self._start_block(parts, rendered)
            elif kind is ElementKind.PRE:
                rendered = guarded("code", child, self._code_block, self._raw_paragraph, self.degradations)
                self._start_block(parts, rendered)
            else:
                converter = CONVERTERS.get(kind, _passthrough)
                rendered = converter(self.children(child), child, index, parent_kind)
            parts.append(rendered)
            index += 1
        return "".join(parts)

    @staticmethod
    def _start_block(parts: list[str], rendered: str) -> None:
        # Fences and table rows only work at the start of a line
        if rendered and parts and not "".join(parts).endswith("\n"):
            parts.append("\n")

    @staticmethod
    def _raw_paragraph(element: Tag) -> str:
        text = text_content(element).strip()
        return f"{text}\n\n" if text else ""

    def _table(self, table: Tag) -> str:
        lines = []
        for row_index, (_, cells) in enumerate(table_rows(table)):
            contents = [flatten_cell(cell, self.degradations).replace("|", "\\|") for cell in cells]
            lines.append(f"| {' | '.join(contents)} |\n")
            if row_index == 0 and cells:
                lines.append(f"| {' | '.join('---' for _ in cells)} |\n")
        if not lines:
            return ""
        return "".join(lines) + "\n"

    def _code_block(self, pre: Tag) -> str:
        code = pre.find("code")
        content = text_content(code) if code is not None else text_content(pre)
        language = detect_code_language(pre, code)
        return f"```{language}\n{content}\n```\n\n"


class MarkdownRenderer:
    """
    Converts sanitized message trees to Markdown.

    Handles the markup found in chat bubbles: headings, paragraphs,
    emphasis, links, images, lists, blockquotes, tables and fenced code.
    Unknown tags contribute their content without markup.

    Example:
        renderer = MarkdownRenderer()
        markdown = renderer.convert(sanitize("<h2>Plan</h2><p><b>Step</b> one</p>"))
        # "## Plan\\n\\n**Step** one\\n\\n"
    """

    name = "markdown"

    def render(self, node: SanitizedNode | str | Any) -> RenderResult:
        """
        Render a sanitized tree to Markdown, collecting any degraded steps.

        Args:
            node: Sanitized tree (raw HTML strings are sanitized first)

        Returns:
            RenderResult with the Markdown and degradation records
        """
        if not isinstance(node, Tag):
            node = sanitize(node)
        degradations: list[Degradation] = []
        try:
            markdown = _MarkdownFold(degradations).children(node)
        except RecursionError:
            markdown = nesting_fallback(node, degradations)
        return RenderResult(text=markdown, degradations=degradations)

    def convert(self, node: SanitizedNode | str | Any) -> str:
        """
        Render a sanitized tree to Markdown.

        Args:
            node: Sanitized tree (raw HTML strings are sanitized first)

        Returns:
            Markdown string, possibly empty
        """
        return self.render(node).text


def to_markdown(node: SanitizedNode | str | Any) -> str:
    """Render a sanitized tree (or raw HTML) to Markdown."""
    return MarkdownRenderer().convert(node)


class MarkdownHeaderBuilder:
    """
    Builds the metadata header placed above a Markdown export.

    Example:
        builder = MarkdownHeaderBuilder()
        header = builder.build(messages, platform="claude")
        # "# How do I ...\\n\\n**Platform:** claude\\n..."
    """

    TITLE_LENGTH = 50

    def __init__(self, flattener: Optional[TextFlattener] = None):
        self._flattener = flattener or TextFlattener()

    def title(self, messages: Sequence[Message]) -> str:
        """Derive a title from the first user message."""
        if not messages:
            return "Empty Conversation"

        first = next((m for m in messages if m.role == "user"), None)
        if first is None:
            return "LLM Conversation"

        content = " ".join(self._flattener.convert(first.content).split())
        title = content[: self.TITLE_LENGTH].strip()
        return f"{title}..." if len(title) < len(content) else title

    def build(
        self,
        messages: Sequence[Message],
        platform: str = "unknown",
        exported_at: Optional[datetime] = None,
    ) -> str:
        """
        Build the header block.

        Args:
            messages: Messages being exported
            platform: Platform name shown in the header
            exported_at: Export timestamp (defaults to now, UTC)

        Returns:
            Header ending with a horizontal rule and a blank line
        """
        exported_at = exported_at or datetime.now(timezone.utc)
        return (
            f"# {self.title(messages)}\n\n"
            f"**Platform:** {platform}\n"
            f"**Export Date:** {exported_at.isoformat()}\n"
            f"**Message Count:** {len(messages)}\n\n"
            "---\n\n"
        )
