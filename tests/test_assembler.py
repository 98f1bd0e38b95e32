"""Tests for document assembly."""

import copy
from datetime import datetime, timezone

import pytest

from chatexport import ConversationOptions, DocumentAssembler, Message, RendererKind, assemble, assemble_document
from chatexport.conversion.text import _TextFold

EXPORTED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestAssemble:
    """Tests for the assemble function."""

    def test_empty_conversation(self):
        """Test that no messages give an empty document."""
        assert assemble([], "text", {}) == ""

    def test_chat_url_preamble(self):
        """Test that an allow-listed URL is written at the top."""
        result = assemble(
            [{"role": "user", "content": "<p>Hi</p>"}],
            "text",
            {"url": "https://chatgpt.com/c/1"},
        )

        assert result == "chat url: https://chatgpt.com/c/1\n\nUser:\nHi"

    def test_rejected_url_is_omitted(self):
        """Test that URLs outside the allow-list never reach the output."""
        result = assemble(
            [{"role": "user", "content": "<p>Hi</p>"}],
            "text",
            {"url": "https://evil.com/c/1"},
        )

        assert result == "User:\nHi"
        assert "evil.com" not in result

    def test_spoofed_host_is_omitted(self):
        """Test that a URL whose browser host differs from its parsed host is dropped."""
        result = assemble(
            [{"role": "user", "content": "<p>Hi</p>"}],
            "text",
            {"url": "https://evil.com\\@chatgpt.com/c/1"},
        )

        assert result == "User:\nHi"

    def test_messages_separated_by_one_blank_line(self):
        """Test the separator between consecutive messages."""
        result = assemble(
            [
                {"role": "user", "content": "<p>Hi</p>"},
                {"role": "assistant", "content": "<p>First</p><p>Second</p>"},
                {"role": "user", "content": "<ul><li>a</li></ul>"},
            ],
            "text",
        )

        assert result == "User:\nHi\n\nAssistant:\nFirst\n\n\nSecond\n\nUser:\n• a"
        assert "Hi\n\nAssistant:" in result
        assert "Second\n\nUser:" in result

    def test_adjacent_lists_keep_their_spacing(self):
        """Test that renderer spacing inside a message is kept by default."""
        result = assemble([{"role": "user", "content": "<ul><li>a</li></ul><ul><li>b</li></ul>"}], "text")

        assert result == "User:\n• a\n\n\n• b"

    def test_role_labels(self):
        """Test known role labels and title-casing of unknown roles."""
        result = assemble(
            [
                {"role": "gpt", "content": "a"},
                {"role": "claude", "content": "b"},
                {"role": "moderator", "content": "c"},
            ],
            "text",
        )

        assert result == "ChatGPT:\na\n\nClaude:\nb\n\nModerator:\nc"

    def test_empty_message_content(self):
        """Test that an empty message keeps its role line."""
        result = assemble(
            [{"role": "user", "content": ""}, {"role": "assistant", "content": "<p>x</p>"}],
            "text",
        )

        assert result == "User:\n\nAssistant:\nx"

    def test_markdown_renderer(self):
        """Test that the renderer kind selects Markdown output."""
        result = assemble(
            [{"role": "assistant", "content": "<h2>Plan</h2><p><b>Step</b> one</p>"}],
            RendererKind.MARKDOWN,
        )

        assert result == "Assistant:\n## Plan\n\n**Step** one"

    def test_unknown_renderer_kind(self):
        """Test that an unknown renderer kind is rejected."""
        with pytest.raises(ValueError):
            assemble([{"role": "user", "content": "hi"}], "html")

    def test_scripts_never_reach_output(self):
        """Test that message content is sanitized before rendering."""
        result = assemble(
            [{"role": "assistant", "content": "<p>ok</p><script>alert(1)</script><style>p{}</style>"}],
            "markdown",
        )

        assert result == "Assistant:\nok"

    def test_input_is_not_mutated(self):
        """Test that message records are left untouched."""
        messages = [{"role": "user", "content": "<table><tr><td>1</td></tr></table>"}]
        original = copy.deepcopy(messages)

        assemble(messages, "text")
        assemble(messages, "markdown")

        assert messages == original

    def test_accepts_message_models(self):
        """Test Message models as input."""
        result = assemble([Message(role="user", content="<p>Hi</p>")])

        assert result == "User:\nHi"

    def test_missing_fields(self):
        """Test records with a missing role or non-string content."""
        result = assemble([{"content": "<p>x</p>"}, {"role": "user", "content": None}])

        assert result == "Unknown:\nx\n\nUser:"

    def test_deterministic(self):
        """Test that identical input gives identical output."""
        messages = [
            {"role": "user", "content": "<p>Compare</p>"},
            {"role": "assistant", "content": "<table><tr><th>A</th></tr><tr><td>1</td></tr></table>"},
        ]
        options = {"url": "https://claude.ai/chat/9"}

        assert assemble(messages, "markdown", options) == assemble(messages, "markdown", options)


class TestOptions:
    """Tests for option handling during assembly."""

    def test_metadata_disabled_drops_url(self):
        """Test that include_metadata=False suppresses the chat url line."""
        options = ConversationOptions(url="https://claude.ai/chat/1", include_metadata=False)

        assert assemble([{"role": "user", "content": "Hi"}], "text", options) == "User:\nHi"

    def test_camel_case_mapping(self):
        """Test options given with browser-side key names."""
        result = assemble(
            [{"role": "user", "content": "Hi"}],
            "text",
            {"includeMetadata": False, "includeTimestamps": True, "url": "https://claude.ai/chat/1"},
        )

        assert result == "User:\nHi"

    def test_markdown_header(self):
        """Test the metadata header in front of a Markdown export."""
        options = ConversationOptions(
            platform="claude",
            url="https://claude.ai/chat/1",
            include_header=True,
            exported_at=EXPORTED_AT,
        )

        result = assemble([{"role": "user", "content": "<p>Hi there</p>"}], "markdown", options)

        assert result == (
            "# Hi there\n\n"
            "**Platform:** claude\n"
            "**Export Date:** 2024-05-01T12:00:00+00:00\n"
            "**Message Count:** 1\n\n"
            "---\n\n"
            "chat url: https://claude.ai/chat/1\n\n"
            "User:\nHi there"
        )

    def test_header_ignored_for_text(self):
        """Test that the header is only added to Markdown output."""
        options = ConversationOptions(include_header=True, exported_at=EXPORTED_AT)

        assert assemble([{"role": "user", "content": "Hi"}], "text", options) == "User:\nHi"

    def test_unknown_platform_in_header(self):
        """Test that unsupported platform names are not echoed."""
        options = ConversationOptions(platform="<img src=x>", include_header=True, exported_at=EXPORTED_AT)

        result = assemble([{"role": "user", "content": "Hi"}], "markdown", options)

        assert "**Platform:** unknown\n" in result
        assert "<img" not in result

    def test_blank_line_runs_collapsed_on_request(self):
        """Test that blank line runs are kept unless collapse_blank_lines is set."""
        messages = [{"role": "assistant", "content": "<p>First</p><p>Second</p>"}]

        kept = assemble(messages, "text")
        collapsed = assemble(messages, "text", {"collapseBlankLines": True})

        assert collapsed == "Assistant:\nFirst\n\nSecond"
        assert kept == "Assistant:\nFirst\n\n\nSecond"


class TestAssembleDocument:
    """Tests for assembly with diagnostics."""

    def test_counts_messages(self):
        """Test the message count of the assembled document."""
        document = assemble_document(
            [{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}],
        )

        assert document.text == "User:\na\n\nAssistant:\nb"
        assert document.message_count == 2
        assert not document.degraded

    def test_aggregates_degradations(self, monkeypatch):
        """Test that per-message fallbacks are collected without aborting."""

        def broken(self, table):
            raise RuntimeError("bad table")

        monkeypatch.setattr(_TextFold, "_table", broken)

        document = DocumentAssembler().assemble_document(
            [
                {"role": "user", "content": "<table><tr><td>x</td></tr></table>"},
                {"role": "assistant", "content": "<p>fine</p>"},
                {"role": "user", "content": "<table><tr><td>y</td></tr></table>"},
            ],
            "text",
        )

        assert document.text == "User:\nx\n\nAssistant:\nfine\n\nUser:\ny"
        assert [d.stage for d in document.degradations] == ["table", "table"]
        assert document.to_dict()["degraded"] is True

    def test_deeply_nested_message_degrades(self):
        """Test that nesting past the recursion limit degrades one message only."""
        deep = "<div>" * 2000 + "x" + "</div>" * 2000
        messages = [
            {"role": "user", "content": deep},
            {"role": "assistant", "content": "<p>fine</p>"},
        ]

        for kind in ("text", "markdown"):
            document = assemble_document(messages, kind)

            assert document.text == "User:\nx\n\nAssistant:\nfine"
            assert [d.stage for d in document.degradations] == ["depth"]
