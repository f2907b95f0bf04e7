"""Streaming-aware reply formatter: prose styling and fenced code highlighting."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from pygments import highlight
from pygments.formatters import TerminalTrueColorFormatter
from pygments.lexers import TextLexer, get_lexer_by_name
from pygments.util import ClassNotFound

from claudecli.config import FENCE, LANGUAGE_ALIASES, PLAIN_LANGUAGE
from claudecli.events import UsageUpdate

logger = logging.getLogger(__name__)

_FORMATTER = TerminalTrueColorFormatter(style="monokai")


# ── ANSI styles ─────────────────────────────────────────────────────
# SGR sequences only: none of them contains a character the prose rules match.

_BOLD, _BOLD_OFF = "\033[1m", "\033[22m"
_ITALIC, _ITALIC_OFF = "\033[3m", "\033[23m"
_UNDERLINE, _UNDERLINE_OFF = "\033[4m", "\033[24m"
_YELLOW, _GREEN, _CYAN, _FG_OFF = "\033[33m", "\033[32m", "\033[36m", "\033[39m"
_BG_BLACK, _BG_OFF = "\033[40m", "\033[49m"

_BULLET = f"{_GREEN}• {_FG_OFF}"


def _style(text: str, on: str, off: str) -> str:
    return f"{on}{text}{off}"


# ── Code formatter ──────────────────────────────────────────────────

def _resolve_language(language: str) -> str:
    tag = (language or "").strip().lower()
    return LANGUAGE_ALIASES.get(tag, tag) or PLAIN_LANGUAGE


def highlight_code(code: str, language: str = "") -> str:
    """Apply pygments syntax highlighting to *code* for terminal display.

    Unknown tags are rendered with the plain-text lexer.  If highlighting
    fails for any reason the raw *code* is returned.  The result ends with a
    newline only when *code* does.
    """
    lang = _resolve_language(language)
    try:
        lexer = get_lexer_by_name(lang, stripnl=False)
    except ClassNotFound:
        lexer = TextLexer(stripnl=False)
    try:
        result = highlight(code, lexer, _FORMATTER)
    except Exception:
        logger.debug("highlighting failed for language %r", lang, exc_info=True)
        return code
    if not code.endswith("\n") and result.endswith("\n"):
        result = result[:-1]
    return result


# ── Prose formatter ─────────────────────────────────────────────────

_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")
_BOLD_RE = re.compile(r"\*\*(.*?)\*\*")
_ITALIC_RE = re.compile(r"\*(.*?)\*")
_HEADING_RE = re.compile(r"^(#{1,6})\s(.*)$")
_BULLET_RE = re.compile(r"^(\s*)([-*+])\s(.*)$")


def _heading(match: re.Match) -> str:
    level = len(match.group(1))
    text = match.group(2)
    if level == 1:
        return f"{_YELLOW}{_BOLD}{_UNDERLINE}{text}{_UNDERLINE_OFF}{_BOLD_OFF}{_FG_OFF}"
    if level == 2:
        return f"{_YELLOW}{_BOLD}{text}{_BOLD_OFF}{_FG_OFF}"
    return _style(text, _YELLOW, _FG_OFF)


def format_prose(line: str) -> str:
    """Style one line of prose.

    Rules run in a fixed order, each over the previous rule's output:
    inline code, bold, italic, heading, bullet.  This is a best-effort
    approximation, not a Markdown parser (``*`` inside an inline code
    span is still italicised, for example).
    """
    line = _INLINE_CODE_RE.sub(
        lambda m: f"{_BG_BLACK}{_CYAN} {m.group(1)} {_FG_OFF}{_BG_OFF}", line
    )
    line = _BOLD_RE.sub(lambda m: _style(m.group(1), _BOLD, _BOLD_OFF), line)
    line = _ITALIC_RE.sub(lambda m: _style(m.group(1), _ITALIC, _ITALIC_OFF), line)
    line = _HEADING_RE.sub(_heading, line)
    line = _BULLET_RE.sub(lambda m: f"{m.group(1)}{_BULLET}{m.group(3)}", line)
    return line


# ── Line segmenter ──────────────────────────────────────────────────

def split_lines(pending: str, text: str) -> tuple[list[str], str]:
    """Split *text* into completed lines, carrying over the unterminated tail.

    *pending* is the partial line left from earlier text.  Returns the
    completed lines (without their newlines) and the new partial line.
    """
    parts = text.split("\n")
    if len(parts) == 1:
        return [], pending + text
    lines = [pending + parts[0], *parts[1:-1]]
    return lines, parts[-1]


# ── Fence tracker ───────────────────────────────────────────────────

class RenderMode(str, Enum):
    PROSE = "prose"
    IN_CODE_BLOCK = "code"


@dataclass
class RenderState:
    """Mutable state of one assistant turn."""

    pending_line: str = ""
    mode: RenderMode = RenderMode.PROSE
    code_buffer: str = ""
    code_language: str = ""
    full_text: str = ""
    usage: UsageUpdate | None = None


class StreamFormatter:
    """Formats a streamed reply line by line.

    Prose lines are styled and returned as soon as their newline arrives.
    Lines inside a fenced code block are buffered until the closing fence
    and then returned highlighted as one block.

    Usage::

        fmt = StreamFormatter()
        for text in deltas:
            sys.stdout.write(fmt.feed(text))
        sys.stdout.write(fmt.flush())
    """

    def __init__(
        self,
        highlighter: Callable[[str, str], str] = highlight_code,
        prose: Callable[[str], str] = format_prose,
        state: RenderState | None = None,
    ) -> None:
        self.state = state if state is not None else RenderState()
        self._highlight = highlighter
        self._prose = prose

    # ── public API ──────────────────────────────────────────────

    def feed(self, text: str) -> str:
        """Consume a text delta and return output that is now final."""
        state = self.state
        state.full_text += text
        lines, state.pending_line = split_lines(state.pending_line, text)
        return "".join(self._dispatch(line) for line in lines)

    def flush(self) -> str:
        """Return whatever is still buffered at end of stream.

        An unclosed code block comes back raw since it was never complete;
        a trailing partial prose line is styled as usual.
        """
        state = self.state
        if state.mode is RenderMode.IN_CODE_BLOCK:
            out = state.code_buffer + state.pending_line
        elif state.pending_line:
            out = self._prose(state.pending_line)
        else:
            out = ""
        state.pending_line = ""
        state.mode = RenderMode.PROSE
        state.code_buffer = ""
        state.code_language = ""
        return out

    # ── state machine ───────────────────────────────────────────

    def _dispatch(self, line: str) -> str:
        if self.state.mode is RenderMode.PROSE:
            return self._in_prose(line)
        return self._in_code(line)

    def _in_prose(self, line: str) -> str:
        stripped = line.strip()
        if stripped.startswith(FENCE):
            self.state.mode = RenderMode.IN_CODE_BLOCK
            self.state.code_language = stripped[len(FENCE):].strip()
            self.state.code_buffer = ""
            return ""
        return self._prose(line) + "\n"

    def _in_code(self, line: str) -> str:
        state = self.state
        if line.strip() != FENCE:
            state.code_buffer += line + "\n"
            return ""
        code = state.code_buffer
        if code.endswith("\n"):
            code = code[:-1]
        result = self._highlight(code, state.code_language)
        state.mode = RenderMode.PROSE
        state.code_buffer = ""
        state.code_language = ""
        return result + "\n"
