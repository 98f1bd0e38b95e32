"""Plain-text flattening of sanitized message trees."""

from __future__ import annotations

import logging
from typing import Any, Callable

from bs4.element import PageElement, Tag

from ..models.messages import Degradation, RenderResult
from ..security.sanitizer import SanitizedNode, sanitize
from .elements import (
    CODE_KINDS,
    LIST_KINDS,
    REPLACED_KINDS,
    SEPARATED_BLOCKS,
    SPACING_CONTAINERS,
    WRAPPED_BLOCKS,
    ElementKind,
    element_children,
    guarded,
    is_text,
    nesting_fallback,
    table_rows,
    text_content,
)

logger = logging.getLogger(__name__)

BULLET = "• "


def _raw_block(element: Tag) -> str:
    """Fallback rendering: the element's trimmed text on its own lines."""
    return f"\n{text_content(element).strip()}\n"


def should_separate(current: Tag, following: Tag, current_text: str, following_text: str) -> bool:
    """
    Decide whether two adjacent sibling elements need a line break between them.

    Args:
        current: The earlier sibling
        following: The sibling right after it
        current_text: Trimmed text of ``current``
        following_text: Trimmed text of ``following``

    Returns:
        True if a newline should be inserted before ``following``
    """
    current_kind = ElementKind.of(current)
    following_kind = ElementKind.of(following)

    if current_kind in SEPARATED_BLOCKS or following_kind in SEPARATED_BLOCKS:
        return True

    # Spans with substantial content are usually separate UI messages
    if current_kind is ElementKind.SPAN and following_kind is ElementKind.SPAN:
        if len(current_text) > 10 and len(following_text) > 10:
            return True

    if ElementKind.BUTTON in (current_kind, following_kind):
        return True

    return False


class _TextFold:
    """
    One flattening run over a sanitized tree.

    The tree is only read. Tables, code and lists are rendered to text
    first; block spacing then works from that text, the way it would on a
    tree where those elements had already been replaced.

    Three views of a node are used:
    - content: text after table/code/list rendering (drives spacing decisions)
    - inline: content plus <br> breaks and sibling separators
    - flatten: inline plus newlines around the outermost block elements
    """

    def __init__(self, degradations: list[Degradation]):
        self.degradations = degradations
        self._rendered: dict[int, str] = {}
        self._content: dict[int, str] = {}

    def root(self, node: Tag) -> str:
        """Flatten a container whose children are laid out but which is not itself wrapped."""
        return self._children(node, self.flatten, spaced=True)

    # Special-case passes

    def _special(self, element: Tag, kind: ElementKind) -> str | None:
        if kind not in REPLACED_KINDS:
            return None
        key = id(element)
        if key not in self._rendered:
            if kind is ElementKind.TABLE:
                text = guarded("table", element, self._table, _raw_block, self.degradations)
            elif kind in CODE_KINDS:
                text = guarded("code", element, self._code, _raw_block, self.degradations)
            else:
                text = guarded("list", element, self._list, _raw_block, self.degradations)
            self._rendered[key] = text
        return self._rendered[key]

    def _table(self, table: Tag) -> str:
        lines = []
        for _, cells in table_rows(table):
            lines.append("\t".join(self.root(cell).strip() for cell in cells) + "\n")
        return "\n" + "".join(lines) + "\n"

    def _code(self, block: Tag) -> str:
        return f"\n{self._code_text(block)}\n"

    def _code_text(self, node: PageElement) -> str:
        # Raw text, except that tables inside the block keep their layout
        if not isinstance(node, Tag):
            return str(node) if is_text(node) else ""
        if ElementKind.of(node) is ElementKind.TABLE:
            return self._special(node, ElementKind.TABLE) or ""
        return "".join(self._code_text(child) for child in node.children)

    def _list(self, list_element: Tag) -> str:
        ordered = ElementKind.of(list_element) is ElementKind.ORDERED_LIST
        lines = []
        for index, item in enumerate(list_element.find_all("li")):
            try:
                prefix = f"{index + 1}. " if ordered else BULLET
                lines.append(f"{prefix}{self._item_text(item).strip()}\n")
            except RecursionError:
                raise
            except Exception as e:
                logger.warning(f"Failed to process list item, skipping: {e}")
                self.degradations.append(Degradation(stage="list-item", element="li", reason=str(e)))
        return "\n" + "".join(lines) + "\n"

    def _item_text(self, node: PageElement) -> str:
        # Nested lists contribute their own lines, not text of the enclosing item
        if not isinstance(node, Tag):
            return str(node) if is_text(node) else ""
        kind = ElementKind.of(node)
        if kind in LIST_KINDS:
            return ""
        special = self._special(node, kind)
        if special is not None:
            return special
        return "".join(self._item_text(child) for child in node.children)

    # Views

    def content(self, node: PageElement) -> str:
        if not isinstance(node, Tag):
            return str(node) if is_text(node) else ""
        key = id(node)
        if key not in self._content:
            special = self._special(node, ElementKind.of(node))
            if special is None:
                special = "".join(self.content(child) for child in node.children)
            self._content[key] = special
        return self._content[key]

    def inline(self, node: PageElement) -> str:
        if not isinstance(node, Tag):
            return str(node) if is_text(node) else ""
        kind = ElementKind.of(node)
        special = self._special(node, kind)
        if special is not None:
            return special
        if kind is ElementKind.LINE_BREAK:
            return "\n"
        return self._children(node, self.inline, spaced=kind in SPACING_CONTAINERS)

    def flatten(self, node: PageElement) -> str:
        if not isinstance(node, Tag):
            return str(node) if is_text(node) else ""
        kind = ElementKind.of(node)
        special = self._special(node, kind)
        if special is not None:
            return special
        if kind is ElementKind.LINE_BREAK:
            return "\n"
        if kind in WRAPPED_BLOCKS:
            text = self.inline(node)
            stripped = text.strip()
            return f"\n{stripped}\n" if stripped else text
        return self._children(node, self.flatten, spaced=kind in SPACING_CONTAINERS)

    # Block spacing

    def _children(self, node: Tag, fold: Callable[[PageElement], str], spaced: bool) -> str:
        breaks = self._separations(node) if spaced else set()
        parts = []
        for child in node.children:
            if id(child) in breaks:
                parts.append("\n")
            parts.append(fold(child))
        return "".join(parts)

    def _separations(self, container: Tag) -> set[int]:
        """Ids of the children that get a newline inserted before them."""
        try:
            siblings = [
                child for child in element_children(container) if ElementKind.of(child) not in REPLACED_KINDS
            ]
            breaks = set()
            for current, following in zip(siblings, siblings[1:]):
                current_text = self.content(current).strip()
                following_text = self.content(following).strip()
                # Short fragments (icons, single characters) stay inline
                if len(current_text) < 3 or len(following_text) < 3:
                    continue
                if should_separate(current, following, current_text, following_text):
                    breaks.add(id(following))
            return breaks
        except RecursionError:
            raise
        except Exception as e:
            logger.warning(f"Block spacing failed for <{container.name}>, continuing without separators: {e}")
            self.degradations.append(Degradation(stage="spacing", element=container.name or "", reason=str(e)))
            return set()


def flatten_cell(cell: Tag, degradations: list[Degradation] | None = None) -> str:
    """
    Flatten one table cell to trimmed plain text.

    Args:
        cell: A td/th element
        degradations: List that receives any fallbacks hit inside the cell

    Returns:
        Cell text with nested markup flattened
    """
    return _TextFold(degradations if degradations is not None else []).root(cell).strip()


class TextFlattener:
    """
    Converts sanitized message trees to plain text.

    Keeps the structure that plain text extraction would lose: tables
    become tab-separated rows, lists get bullets or numbers, code and
    block elements sit on their own lines.

    Example:
        flattener = TextFlattener()
        text = flattener.convert(sanitize("<ul><li>a</li><li>b</li></ul>"))
        # "\\n• a\\n• b\\n\\n"
    """

    name = "text"

    def render(self, node: SanitizedNode | str | Any) -> RenderResult:
        """
        Flatten a sanitized tree, collecting any degraded steps.

        Args:
            node: Sanitized tree (raw HTML strings are sanitized first)

        Returns:
            RenderResult with the text and degradation records
        """
        if not isinstance(node, Tag):
            node = sanitize(node)
        degradations: list[Degradation] = []
        try:
            text = _TextFold(degradations).root(node)
        except RecursionError:
            text = nesting_fallback(node, degradations)
        return RenderResult(text=text, degradations=degradations)

    def convert(self, node: SanitizedNode | str | Any) -> str:
        """
        Flatten a sanitized tree to plain text.

        Args:
            node: Sanitized tree (raw HTML strings are sanitized first)

        Returns:
            Plain text, possibly empty
        """
        return self.render(node).text


def to_text(node: SanitizedNode | str | Any) -> str:
    """Flatten a sanitized tree (or raw HTML) to plain text."""
    return TextFlattener().convert(node)
