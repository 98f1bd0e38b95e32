"""Element classification and tree helpers shared by the renderers."""

import logging
from enum import Enum
from typing import Callable, Iterator

from bs4.element import NavigableString, PageElement, PreformattedString, Tag

from ..models.messages import Degradation

logger = logging.getLogger(__name__)


class ElementKind(Enum):
    """Closed set of element kinds the renderers know how to handle."""

    HEADING = "heading"
    PARAGRAPH = "paragraph"
    LINE_BREAK = "line_break"
    STRONG = "strong"
    EMPHASIS = "emphasis"
    CODE = "code"
    LINK = "link"
    IMAGE = "image"
    BLOCKQUOTE = "blockquote"
    UNORDERED_LIST = "unordered_list"
    ORDERED_LIST = "ordered_list"
    LIST_ITEM = "list_item"
    TABLE = "table"
    PRE = "pre"
    DIVISION = "division"
    SECTION = "section"
    LANDMARK = "landmark"
    SPAN = "span"
    BUTTON = "button"
    UNKNOWN = "unknown"

    @classmethod
    def of(cls, element: Tag) -> "ElementKind":
        """Classify an element by tag name, UNKNOWN for anything unsupported."""
        return _TAG_KINDS.get((element.name or "").lower(), cls.UNKNOWN)


_TAG_KINDS = {
    "h1": ElementKind.HEADING,
    "h2": ElementKind.HEADING,
    "h3": ElementKind.HEADING,
    "h4": ElementKind.HEADING,
    "h5": ElementKind.HEADING,
    "h6": ElementKind.HEADING,
    "p": ElementKind.PARAGRAPH,
    "br": ElementKind.LINE_BREAK,
    "strong": ElementKind.STRONG,
    "b": ElementKind.STRONG,
    "em": ElementKind.EMPHASIS,
    "i": ElementKind.EMPHASIS,
    "code": ElementKind.CODE,
    "a": ElementKind.LINK,
    "img": ElementKind.IMAGE,
    "blockquote": ElementKind.BLOCKQUOTE,
    "ul": ElementKind.UNORDERED_LIST,
    "ol": ElementKind.ORDERED_LIST,
    "li": ElementKind.LIST_ITEM,
    "table": ElementKind.TABLE,
    "pre": ElementKind.PRE,
    "div": ElementKind.DIVISION,
    "section": ElementKind.SECTION,
    "article": ElementKind.SECTION,
    "header": ElementKind.LANDMARK,
    "footer": ElementKind.LANDMARK,
    "nav": ElementKind.LANDMARK,
    "aside": ElementKind.LANDMARK,
    "main": ElementKind.LANDMARK,
    "span": ElementKind.SPAN,
    "button": ElementKind.BUTTON,
}

LIST_KINDS = frozenset({ElementKind.UNORDERED_LIST, ElementKind.ORDERED_LIST})

CODE_KINDS = frozenset({ElementKind.PRE, ElementKind.CODE})

# Rendered to text before block spacing runs
REPLACED_KINDS = LIST_KINDS | CODE_KINDS | {ElementKind.TABLE}

# Siblings of these kinds always get a line break between them
SEPARATED_BLOCKS = frozenset(
    {
        ElementKind.DIVISION,
        ElementKind.PARAGRAPH,
        ElementKind.HEADING,
        ElementKind.BLOCKQUOTE,
        ElementKind.SECTION,
    }
)

# Rendered on their own lines in plain text
WRAPPED_BLOCKS = SEPARATED_BLOCKS | {ElementKind.LANDMARK}

# Containers whose direct children are checked for separation
SPACING_CONTAINERS = frozenset(
    {
        ElementKind.DIVISION,
        ElementKind.SPAN,
        ElementKind.SECTION,
        ElementKind.LANDMARK,
    }
)


def is_text(node: PageElement) -> bool:
    """True for character data that contributes to text content."""
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def text_content(node: PageElement) -> str:
    """Concatenate all text below a node, like the DOM textContent property."""
    if isinstance(node, NavigableString):
        return str(node) if is_text(node) else ""
    if not isinstance(node, Tag):
        return ""
    return "".join(str(s) for s in node.descendants if is_text(s))


def element_children(node: Tag) -> list[Tag]:
    """Direct children of a node that are elements."""
    return [child for child in node.children if isinstance(child, Tag)]


def table_rows(table: Tag) -> Iterator[tuple[Tag, list[Tag]]]:
    """
    Yield (row, cells) pairs belonging to a table.

    Rows of nested tables are left to the nested table itself; cells are
    the row's direct td/th children.
    """
    for row in table.find_all("tr"):
        if row.find_parent("table") is not table:
            continue
        yield row, row.find_all(["td", "th"], recursive=False)


def class_names(element: Tag) -> str:
    """Class attribute as a single space-separated string."""
    value = element.get("class")
    if isinstance(value, list):
        return " ".join(value)
    return value or ""


def guarded(
    stage: str,
    element: Tag,
    render: Callable[[Tag], str],
    fallback: Callable[[Tag], str],
    degradations: list[Degradation],
) -> str:
    """
    Run one special-case render step with fault isolation.

    A failure degrades only this element to the fallback rendering and is
    recorded in ``degradations``; sibling elements are unaffected.
    RecursionError is passed on: a tree nested that deeply is degraded as a
    whole by ``nesting_fallback``.
    """
    try:
        return render(element)
    except RecursionError:
        raise
    except Exception as e:
        logger.warning(f"{stage} processing failed for <{element.name}>, falling back to text content: {e}")
        degradations.append(Degradation(stage=stage, element=element.name or "", reason=str(e)))
        return fallback(element)


def nesting_fallback(node: Tag, degradations: list[Degradation]) -> str:
    """Plain text of a tree nested too deeply to render, recorded as a degradation."""
    logger.warning(f"<{node.name}> is nested too deeply to render, falling back to text content")
    degradations.append(
        Degradation(stage="depth", element=node.name or "", reason="maximum nesting depth exceeded")
    )
    return text_content(node)
