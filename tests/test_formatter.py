"""Tests for the reply formatter: prose styling, highlighting and fence tracking."""

import re
from unittest.mock import patch

import pytest
from claudecli.formatter import (
    RenderMode,
    RenderState,
    StreamFormatter,
    _resolve_language,
    format_prose,
    highlight_code,
    split_lines,
)

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


class RecordingHighlighter:
    """Stands in for highlight_code and remembers what it was given."""

    def __init__(self):
        self.calls: list[tuple[str, str]] = []

    def __call__(self, code: str, language: str) -> str:
        self.calls.append((code, language))
        return f"<{language}>{code}</{language}>"


def _feed_all(fmt: StreamFormatter, chunks) -> str:
    out = "".join(fmt.feed(c) for c in chunks)
    return out + fmt.flush()


def _split_every(text: str, size: int) -> list[str]:
    return [text[i:i + size] for i in range(0, len(text), size)]


# ── highlight_code ──────────────────────────────────────────────────

class TestHighlightCode:
    def test_returns_string(self):
        result = highlight_code("x = 1", "python")
        assert isinstance(result, str)
        assert len(result) > 0

    def test_contains_ansi_codes(self):
        result = highlight_code("x = 1", "python")
        assert "\x1b[" in result

    def test_line_content_preserved(self):
        code = "def f():\n    return 1"
        assert strip_ansi(highlight_code(code, "python")) == code

    def test_no_trailing_newline_added(self):
        assert not highlight_code("x = 1", "python").endswith("\n")

    def test_trailing_newline_kept(self):
        assert strip_ansi(highlight_code("x = 1\n", "python")) == "x = 1\n"

    def test_blank_edge_lines_not_stripped(self):
        code = "\nx = 1\n\n"
        assert strip_ansi(highlight_code(code, "python")) == code

    def test_unknown_language_falls_back_to_plain_text(self):
        result = highlight_code("x = 1", "nosuchlang")
        assert strip_ansi(result) == "x = 1"

    def test_empty_language(self):
        assert strip_ansi(highlight_code("hello", "")) == "hello"

    def test_alias_language(self):
        assert strip_ansi(highlight_code("node_modules/\n*.log", "gitignore")) == "node_modules/\n*.log"

    def test_highlight_failure_returns_raw_code(self):
        with patch("claudecli.formatter.highlight", side_effect=RuntimeError("boom")):
            assert highlight_code("x = 1", "python") == "x = 1"


class TestResolveLanguage:
    @pytest.mark.parametrize("tag,expected", [
        ("gitignore", "bash"),
        ("dockerfile", "bash"),
        ("env", "bash"),
        ("txt", "text"),
        ("log", "text"),
        ("Dockerfile", "bash"),
        ("", "text"),
        ("  ", "text"),
        ("js", "js"),
    ])
    def test_mapping(self, tag, expected):
        assert _resolve_language(tag) == expected


# ── format_prose ────────────────────────────────────────────────────

class TestFormatProse:
    def test_plain_text_unchanged(self):
        assert format_prose("just a sentence.") == "just a sentence."

    def test_bold(self):
        assert format_prose("Hello **world**") == "Hello \033[1mworld\033[22m"

    def test_italic(self):
        assert format_prose("an *important* note") == "an \033[3mimportant\033[23m note"

    def test_bold_before_italic(self):
        out = format_prose("**a** and *b*")
        assert out == "\033[1ma\033[22m and \033[3mb\033[23m"

    def test_inline_code_padded(self):
        out = format_prose("use `x` here")
        assert out == "use \033[40m\033[36m x \033[39m\033[49m here"

    def test_double_backtick_not_inline_code(self):
        assert format_prose("a `` b") == "a `` b"

    def test_heading_level_1(self):
        assert format_prose("# Title") == "\033[33m\033[1m\033[4mTitle\033[24m\033[22m\033[39m"

    def test_heading_level_2(self):
        assert format_prose("## Section") == "\033[33m\033[1mSection\033[22m\033[39m"

    @pytest.mark.parametrize("hashes", ["###", "####", "#####", "######"])
    def test_heading_levels_3_to_6_share_style(self, hashes):
        assert format_prose(f"{hashes} Sub") == "\033[33mSub\033[39m"

    def test_seven_hashes_not_a_heading(self):
        assert format_prose("####### x") == "####### x"

    def test_hash_without_space_not_a_heading(self):
        assert format_prose("#hashtag") == "#hashtag"

    @pytest.mark.parametrize("marker", ["-", "*", "+"])
    def test_bullet(self, marker):
        out = format_prose(f"{marker} item")
        assert strip_ansi(out) == "• item"

    def test_bullet_keeps_indentation(self):
        out = format_prose("    - nested")
        assert out.startswith("    ")
        assert strip_ansi(out) == "    • nested"

    def test_dash_without_space_not_a_bullet(self):
        assert format_prose("-x") == "-x"

    def test_bullet_with_bold(self):
        out = format_prose("- **key**: value")
        assert strip_ansi(out) == "• key: value"
        assert "\033[1mkey\033[22m" in out

    @pytest.mark.parametrize("line", [
        "",
        "plain words",
        "numbers 1 2 3 and punctuation!?",
        "  indented text",
        "a_b = c / d",
    ])
    def test_idempotent_on_markup_free_text(self, line):
        once = format_prose(line)
        assert format_prose(once) == once
        assert once == line


# ── split_lines ─────────────────────────────────────────────────────

class TestSplitLines:
    def test_no_newline_extends_pending(self):
        assert split_lines("ab", "cd") == ([], "abcd")

    def test_single_newline(self):
        assert split_lines("ab", "c\nd") == (["abc"], "d")

    def test_multiple_lines(self):
        assert split_lines("", "a\nb\nc") == (["a", "b"], "c")

    def test_trailing_newline_leaves_empty_pending(self):
        assert split_lines("x", "\n") == (["x"], "")

    def test_empty_lines(self):
        assert split_lines("", "\n\n") == (["", ""], "")

    def test_empty_text(self):
        assert split_lines("abc", "") == ([], "abc")


# ── StreamFormatter ─────────────────────────────────────────────────

class TestStreamFormatterProse:
    def test_line_emitted_on_newline(self):
        fmt = StreamFormatter()
        assert fmt.feed("hello") == ""
        assert fmt.feed(" world\n") == "hello world\n"

    def test_partial_line_held_until_flush(self):
        fmt = StreamFormatter()
        assert fmt.feed("no newline") == ""
        assert fmt.state.pending_line == "no newline"
        assert fmt.flush() == "no newline"

    def test_flush_styles_trailing_line(self):
        fmt = StreamFormatter()
        fmt.feed("**bold** end")
        assert fmt.flush() == "\033[1mbold\033[22m end"

    def test_flush_with_nothing_pending(self):
        fmt = StreamFormatter()
        fmt.feed("done\n")
        assert fmt.flush() == ""

    def test_empty_chunk(self):
        fmt = StreamFormatter()
        assert fmt.feed("") == ""

    def test_pending_never_holds_newline(self):
        fmt = StreamFormatter()
        for chunk in ["a\nb", "c\n\nd", "e"]:
            fmt.feed(chunk)
            assert "\n" not in fmt.state.pending_line

    @pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 64])
    def test_chunk_boundary_invariance(self, size):
        text = "# Intro\nSome **bold** and *soft* words.\n- one\n  - two\n`code` tail"
        whole = _feed_all(StreamFormatter(), [text])
        pieces = _feed_all(StreamFormatter(), _split_every(text, size))
        assert pieces == whole
        assert strip_ansi(pieces) == "Intro\nSome bold and soft words.\n• one\n  • two\n code  tail"

    def test_full_text_accumulates_every_delta(self):
        fmt = StreamFormatter()
        text = "a\n```py\nx\n```\nb"
        for ch in text:
            fmt.feed(ch)
        fmt.flush()
        assert fmt.state.full_text == text


class TestStreamFormatterCodeBlock:
    def test_code_block_buffered_until_close(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        assert fmt.feed("```python\n") == ""
        assert fmt.state.mode is RenderMode.IN_CODE_BLOCK
        assert fmt.feed("x = 1\n") == ""
        assert fmt.feed("```\n") == "<python>x = 1</python>\n"
        assert fmt.state.mode is RenderMode.PROSE
        assert hl.calls == [("x = 1", "python")]

    @pytest.mark.parametrize("size", [1, 2, 3, 4, 5, 11])
    def test_code_and_language_exact_across_chunk_splits(self, size):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        text = "intro\n```rust\nfn main() {\n    println!(\"hi\");\n}\n```\noutro\n"
        _feed_all(fmt, _split_every(text, size))
        assert hl.calls == [("fn main() {\n    println!(\"hi\");\n}", "rust")]

    def test_language_whitespace_trimmed(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        _feed_all(fmt, ["  ```  js  \nlet a;\n```\n"])
        assert hl.calls == [("let a;", "js")]

    def test_no_language(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        _feed_all(fmt, ["```\nplain\n```\n"])
        assert hl.calls == [("plain", "")]

    def test_indented_closing_fence(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        _feed_all(fmt, ["```sh\nls\n   ```   \n"])
        assert hl.calls == [("ls", "sh")]

    def test_fence_with_tag_inside_block_is_content(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        _feed_all(fmt, ["```md\n```python\n```\n"])
        assert hl.calls == [("```python", "md")]

    def test_empty_block(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        _feed_all(fmt, ["```\n```\n"])
        assert hl.calls == [("", "")]

    def test_blank_lines_inside_block_kept(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        _feed_all(fmt, ["```py\na\n\nb\n```\n"])
        assert hl.calls == [("a\n\nb", "py")]

    def test_markup_inside_block_not_styled(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        out = _feed_all(fmt, ["```\n**not bold**\n```\n"])
        assert out == "<>**not bold**</>\n"

    def test_buffer_reset_after_close(self):
        fmt = StreamFormatter(highlighter=RecordingHighlighter())
        fmt.feed("```py\nx\n```\n")
        assert fmt.state.code_buffer == ""
        assert fmt.state.code_language == ""

    def test_multiple_blocks(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        out = _feed_all(fmt, ["text1\n```python\na=1\n```\nmiddle\n```javascript\nvar b=2;\n```\ntext2"])
        assert hl.calls == [("a=1", "python"), ("var b=2;", "javascript")]
        assert out == (
            "text1\n<python>a=1</python>\nmiddle\n"
            "<javascript>var b=2;</javascript>\ntext2"
        )

    def test_real_highlighting(self):
        fmt = StreamFormatter()
        out = _feed_all(fmt, ["```python\nx = 1\n```\n"])
        assert "\x1b[" in out
        assert strip_ansi(out) == "x = 1\n"


class TestStreamFormatterUnterminated:
    def test_unclosed_block_flushed_raw(self):
        hl = RecordingHighlighter()
        fmt = StreamFormatter(highlighter=hl)
        fmt.feed("```python\nx = 1\ny = 2\n")
        assert fmt.flush() == "x = 1\ny = 2\n"
        assert hl.calls == []

    def test_unclosed_block_with_partial_line(self):
        fmt = StreamFormatter(highlighter=RecordingHighlighter())
        fmt.feed("```python\nx = 1\ny = **2")
        assert fmt.flush() == "x = 1\ny = **2"

    def test_flush_resets_state(self):
        fmt = StreamFormatter(highlighter=RecordingHighlighter())
        fmt.feed("```python\nx = 1\n")
        fmt.flush()
        state = fmt.state
        assert state.mode is RenderMode.PROSE
        assert state.code_buffer == ""
        assert state.pending_line == ""

    def test_opening_fence_without_newline_is_prose(self):
        fmt = StreamFormatter(highlighter=RecordingHighlighter())
        fmt.feed("```py")
        assert fmt.flush() == "```py"


class TestRenderState:
    def test_defaults(self):
        state = RenderState()
        assert state.mode is RenderMode.PROSE
        assert state.pending_line == ""
        assert state.code_buffer == ""
        assert state.full_text == ""
        assert state.usage is None

    def test_formatter_uses_given_state(self):
        state = RenderState()
        fmt = StreamFormatter(state=state)
        fmt.feed("abc")
        assert state.pending_line == "abc"
