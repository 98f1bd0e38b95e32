"""Tests for Markdown rendering."""

from datetime import datetime, timezone

from bs4 import BeautifulSoup

from chatexport import MarkdownHeaderBuilder, MarkdownRenderer, Message, sanitize, to_markdown, to_text
from chatexport.conversion import detect_code_language
from chatexport.conversion.markdown import _MarkdownFold


class TestInlineConversion:
    """Tests for per-tag conversion."""

    def test_headings(self):
        """Test heading levels."""
        assert to_markdown(sanitize("<h1>Title</h1><h3>Sub</h3>")) == "# Title\n\n### Sub\n\n"

    def test_paragraph_with_emphasis(self):
        """Test bold and italic inside a paragraph."""
        result = to_markdown(sanitize("<p><strong>Bold</strong> and <em>italic</em>, <b>b</b> <i>i</i></p>"))

        assert result == "**Bold** and *italic*, **b** *i*\n\n"

    def test_inline_code(self):
        """Test inline code spans."""
        assert to_markdown(sanitize("<p>Use <code>print()</code></p>")) == "Use `print()`\n\n"

    def test_line_break(self):
        """Test br inside a paragraph."""
        assert to_markdown(sanitize("<p>a<br>b</p>")) == "a\nb\n\n"

    def test_links(self):
        """Test links with and without href."""
        assert to_markdown(sanitize('<a href="https://claude.ai/x">Claude</a>')) == "[Claude](https://claude.ai/x)"
        assert to_markdown(sanitize("<a>bare</a>")) == "bare"

    def test_javascript_link_renders_as_text(self):
        """Test that a sanitized-away href leaves plain text."""
        assert to_markdown(sanitize('<a href="javascript:alert(1)">click</a>')) == "click"

    def test_images(self):
        """Test images with and without a usable src."""
        assert to_markdown(sanitize('<img src="https://e.com/p.png" alt="Pic">')) == "![Pic](https://e.com/p.png)"
        assert to_markdown(sanitize('<img alt="Pic">')) == "[Image: Pic]"
        assert to_markdown(sanitize('<img src="data:image/png;base64,AA" alt="Pic">')) == "[Image: Pic]"

    def test_blockquote(self):
        """Test that every quoted line is prefixed."""
        assert to_markdown(sanitize("<blockquote>one<br>two</blockquote>")) == "> one\n> two\n\n"

    def test_unknown_tags_pass_through(self):
        """Test that unsupported tags keep their content without markup."""
        assert to_markdown(sanitize("<custom-bubble><span>hello</span></custom-bubble>")) == "hello"


class TestLists:
    """Tests for Markdown lists."""

    def test_unordered_list(self):
        """Test dash bullets."""
        assert to_markdown(sanitize("<ul><li>a</li><li>b</li></ul>")) == "- a\n- b\n\n"

    def test_ordered_list(self):
        """Test numbering by position among element siblings."""
        assert to_markdown(sanitize("<ol><li>a</li><li>b</li></ol>")) == "1. a\n2. b\n\n"

    def test_list_item_content_is_converted(self):
        """Test inline markup inside list items."""
        assert to_markdown(sanitize("<ul><li><b>key</b>: value</li></ul>")) == "- **key**: value\n\n"


class TestTables:
    """Tests for Markdown tables."""

    def test_table_with_header_separator(self):
        """Test the header separator after the first row."""
        html = "<table><tr><th>A</th></tr><tr><td>1</td></tr></table>"

        assert to_markdown(sanitize(html)) == "| A |\n| --- |\n| 1 |\n\n"

    def test_multi_column_table(self):
        """Test one separator cell per column."""
        html = "<table><thead><tr><th>Name</th><th>Age</th></tr></thead><tbody><tr><td>Ann</td><td>3</td></tr></tbody></table>"

        assert to_markdown(sanitize(html)) == "| Name | Age |\n| --- | --- |\n| Ann | 3 |\n\n"

    def test_pipes_in_cells_are_escaped(self):
        """Test that literal pipes cannot break the table."""
        html = "<table><tr><td>a|b</td></tr></table>"

        assert to_markdown(sanitize(html)) == "| a\\|b |\n| --- |\n\n"
        assert "\\|" not in to_text(sanitize(html))
        assert "a|b" in to_text(sanitize(html))

    def test_empty_table(self):
        """Test that a table without rows renders to nothing."""
        assert to_markdown(sanitize("<table></table>")) == ""

    def test_table_after_text_starts_new_line(self):
        """Test that a table is never glued onto preceding text."""
        result = to_markdown(sanitize("<div>Results:<table><tr><td>1</td></tr></table></div>"))

        assert result.startswith("Results:\n| 1 |")

    def test_failing_table_degrades(self, monkeypatch):
        """Test that a table failure falls back to its text."""

        def broken(self, table):
            raise RuntimeError("bad table")

        monkeypatch.setattr(_MarkdownFold, "_table", broken)

        result = MarkdownRenderer().render(sanitize("<table><tr><td>x</td></tr></table><p>after</p>"))

        assert result.text == "x\n\nafter\n\n"
        assert result.degradations[0].stage == "table"


class TestCodeBlocks:
    """Tests for fenced code blocks."""

    def test_language_from_class(self):
        """Test language-xxx class detection."""
        html = '<pre><code class="hljs language-python">print(1)</code></pre>'

        assert to_markdown(sanitize(html)) == "```python\nprint(1)\n```\n\n"

    def test_language_from_data_attribute(self):
        """Test data-language detection."""
        html = '<pre data-language="rust"><code>fn main() {}</code></pre>'

        assert to_markdown(sanitize(html)) == "```rust\nfn main() {}\n```\n\n"

    def test_pre_without_code(self):
        """Test that pre text is used when there is no code child."""
        assert to_markdown(sanitize("<pre>raw text</pre>")) == "```\nraw text\n```\n\n"

    def test_code_markup_is_not_converted(self):
        """Test that the fenced content stays raw."""
        html = "<pre><code>a <b>not bold</b></code></pre>"

        assert to_markdown(sanitize(html)) == "```\na not bold\n```\n\n"

    def test_detect_code_language(self):
        """Test language detection helpers."""
        body = sanitize('<pre class="lang-js"><code>x</code></pre><pre><code>y</code></pre>')
        first, second = body.find_all("pre")

        assert detect_code_language(first) == "js"
        assert detect_code_language(second, second.find("code")) == ""


class TestMarkdownHeaderBuilder:
    """Tests for the Markdown metadata header."""

    def test_builds_header(self):
        """Test title, platform, date and count."""
        builder = MarkdownHeaderBuilder()
        messages = [
            Message(role="user", content="<p>How do I sort a list?</p>"),
            Message(role="assistant", content="<p>Use sorted().</p>"),
        ]

        header = builder.build(messages, platform="chatgpt", exported_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc))

        assert header == (
            "# How do I sort a list?\n\n"
            "**Platform:** chatgpt\n"
            "**Export Date:** 2024-05-01T12:00:00+00:00\n"
            "**Message Count:** 2\n\n"
            "---\n\n"
        )

    def test_long_titles_are_truncated(self):
        """Test the 50 character title limit."""
        builder = MarkdownHeaderBuilder()
        text = "word " * 20

        title = builder.title([Message(role="user", content=f"<p>{text}</p>")])

        assert title.endswith("...")
        assert len(title) <= 53

    def test_fallback_titles(self):
        """Test titles without a user message."""
        builder = MarkdownHeaderBuilder()

        assert builder.title([]) == "Empty Conversation"
        assert builder.title([Message(role="assistant", content="hi")]) == "LLM Conversation"


class TestDeepNesting:
    """Tests for trees nested past the recursion limit."""

    def test_falls_back_to_text(self):
        """Test that Markdown rendering still returns the text content."""
        soup = BeautifulSoup("", "html.parser")
        body = soup.new_tag("body")
        soup.append(body)
        parent = body
        for _ in range(3000):
            child = soup.new_tag("b")
            parent.append(child)
            parent = child
        parent.append("deep")

        result = MarkdownRenderer().render(body)

        assert result.text == "deep"
        assert [d.stage for d in result.degradations] == ["depth"]
