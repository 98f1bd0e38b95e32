"""Assembly of rendered messages into a single export document."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any, Union

from ..conversion.markdown import MarkdownHeaderBuilder, MarkdownRenderer
from ..conversion.protocols import MessageRenderer
from ..conversion.text import TextFlattener
from ..models.config import ConversationOptions, Platform, RendererKind, is_valid_platform
from ..models.messages import AssembledDocument, Message, RenderResult
from ..security.sanitizer import sanitize
from ..security.url_validator import UrlValidator

logger = logging.getLogger(__name__)

MESSAGE_SEPARATOR = "\n\n"

_BLANK_LINE_RUNS = re.compile(r"\n{3,}")

MessageLike = Union[Message, Mapping[str, Any]]
OptionsLike = Union[ConversationOptions, Mapping[str, Any], None]


def _coerce_message(record: MessageLike) -> Message:
    """Accept Message models or plain {role, content} mappings."""
    if isinstance(record, Message):
        return record
    role = record.get("role") or "unknown"
    content = record.get("content")
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    elif not isinstance(content, str):
        content = ""
    return Message(role=str(role), content=content)


def _coerce_options(options: OptionsLike) -> ConversationOptions:
    if options is None:
        return ConversationOptions()
    if isinstance(options, ConversationOptions):
        return options
    return ConversationOptions.model_validate(dict(options))


class DocumentAssembler:
    """
    Turns an ordered list of chat messages into one document.

    Each message is sanitized, rendered with the selected renderer and
    given a role header; messages are separated by exactly one blank line.
    A source URL is written at the top only if it passes the chat-host
    allow-list.

    Example:
        assembler = DocumentAssembler()
        text = assembler.assemble(
            [{"role": "user", "content": "<p>Hi</p>"}],
            RendererKind.TEXT,
            {"url": "https://chatgpt.com/c/1"},
        )
        # "chat url: https://chatgpt.com/c/1\\n\\nUser:\\nHi"
    """

    def __init__(
        self,
        url_validator: UrlValidator | None = None,
        header_builder: MarkdownHeaderBuilder | None = None,
    ):
        """
        Initialize the assembler.

        Args:
            url_validator: Validator for the chat url preamble (default allow-list if None)
            header_builder: Builder for the Markdown metadata header
        """
        flattener = TextFlattener()
        self._url_validator = url_validator or UrlValidator()
        self._renderers: dict[RendererKind, MessageRenderer] = {
            RendererKind.TEXT: flattener,
            RendererKind.MARKDOWN: MarkdownRenderer(),
        }
        self._header_builder = header_builder or MarkdownHeaderBuilder(flattener)

    def _preamble(self, messages: list[Message], kind: RendererKind, options: ConversationOptions) -> str:
        if not options.include_metadata:
            return ""

        preamble = ""
        if kind is RendererKind.MARKDOWN and options.include_header:
            platform = options.platform
            if not is_valid_platform(platform):
                logger.debug(f"Unknown platform {platform!r}, showing {Platform.UNKNOWN.value!r}")
                platform = Platform.UNKNOWN.value
            preamble += self._header_builder.build(
                messages,
                platform=platform,
                exported_at=options.exported_at,
            )

        if options.url and self._url_validator.is_valid(options.url):
            preamble += f"chat url: {options.url}\n\n"
        return preamble

    def render_message(
        self,
        message: Message,
        renderer: MessageRenderer,
        options: ConversationOptions,
    ) -> RenderResult:
        """
        Render one message as a role header followed by its content.

        Args:
            message: The message to render
            renderer: Renderer for the message body
            options: Conversation options

        Returns:
            RenderResult with the message block and its degradations
        """
        result = renderer.render(sanitize(message.content))
        body = result.text.strip()
        if options.collapse_blank_lines:
            body = _BLANK_LINE_RUNS.sub("\n\n", body)

        block = f"{message.role_display}:"
        if body:
            block += f"\n{body}"
        return RenderResult(text=block, degradations=result.degradations)

    def assemble_document(
        self,
        messages: Iterable[MessageLike],
        renderer_kind: RendererKind | str = RendererKind.TEXT,
        options: OptionsLike = None,
    ) -> AssembledDocument:
        """
        Assemble messages into a document and report rendering diagnostics.

        Args:
            messages: Ordered messages (Message models or {role, content} mappings)
            renderer_kind: "text" or "markdown"
            options: ConversationOptions or an equivalent mapping

        Returns:
            AssembledDocument with the text and aggregated degradations

        Raises:
            ValueError: If renderer_kind is not a known renderer
        """
        kind = RendererKind(renderer_kind)
        options = _coerce_options(options)
        renderer = self._renderers[kind]
        records = [_coerce_message(record) for record in messages]

        blocks = []
        degradations = []
        for index, message in enumerate(records):
            result = self.render_message(message, renderer, options)
            if result.degraded:
                logger.warning(
                    f"Message {index} ({message.role}) rendered with {len(result.degradations)} fallback(s)"
                )
            blocks.append(result.text)
            degradations.extend(result.degradations)

        text = self._preamble(records, kind, options) + MESSAGE_SEPARATOR.join(blocks)
        logger.debug(f"Assembled {len(records)} messages into {len(text)} characters of {kind.value}")
        return AssembledDocument(
            text=text.strip(),
            message_count=len(records),
            degradations=degradations,
        )

    def assemble(
        self,
        messages: Iterable[MessageLike],
        renderer_kind: RendererKind | str = RendererKind.TEXT,
        options: OptionsLike = None,
    ) -> str:
        """
        Assemble messages into a document string.

        Args:
            messages: Ordered messages (Message models or {role, content} mappings)
            renderer_kind: "text" or "markdown"
            options: ConversationOptions or an equivalent mapping

        Returns:
            The document, trimmed of leading and trailing whitespace
        """
        return self.assemble_document(messages, renderer_kind, options).text


def assemble(
    messages: Iterable[MessageLike],
    renderer_kind: RendererKind | str = RendererKind.TEXT,
    options: OptionsLike = None,
) -> str:
    """Assemble messages into a document with the default assembler."""
    return DocumentAssembler().assemble(messages, renderer_kind, options)


def assemble_document(
    messages: Iterable[MessageLike],
    renderer_kind: RendererKind | str = RendererKind.TEXT,
    options: OptionsLike = None,
) -> AssembledDocument:
    """Assemble messages with the default assembler, keeping diagnostics."""
    return DocumentAssembler().assemble_document(messages, renderer_kind, options)
