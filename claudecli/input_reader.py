"""Prompted line input with a dot-terminated multi-line mode.

- ``quit`` / ``exit``: end the session
- empty line: start multi-line input; a line containing only ``.`` sends
  it, and ``\\.`` stands for a literal ``.`` line
- Ctrl+D: end the session
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

PROMPT = "\033[34mYou: \033[0m"
CONTINUATION_PROMPT = ">>> "

_END_MARKER = "."
_ESCAPED_END = "\\."
_EXIT_WORDS = frozenset({"quit", "exit"})


@dataclass
class InputResult:
    """Return value from :meth:`InputReader.read_input`."""
    text: str
    action: str  # "send" | "exit" | "archive" | "empty"


class InputReader:
    """Reads one user message per call.

    *read_line* is called with a prompt and returns one line without its
    newline, raising :class:`EOFError` at end of input (``input`` does).
    """

    def __init__(
        self,
        read_line: Callable[[str], str] = input,
        prompt: str = PROMPT,
        prompt_cont: str = CONTINUATION_PROMPT,
    ) -> None:
        self._read_line = read_line
        self.prompt = prompt
        self.prompt_cont = prompt_cont

    def read_input(self) -> InputResult:
        try:
            line = self._read_line(self.prompt)
        except EOFError:
            return InputResult(text="", action="exit")

        text = line.strip()
        command = text.lower()
        if command in _EXIT_WORDS:
            return InputResult(text="", action="exit")
        if command == "archive":
            return InputResult(text="", action="archive")
        if text:
            return InputResult(text=text, action="send")

        try:
            text = self.read_multiline()
        except EOFError:
            return InputResult(text="", action="exit")
        if not text.strip():
            return InputResult(text="", action="empty")
        return InputResult(text=text, action="send")

    def read_multiline(self) -> str:
        """Collect lines until a lone ``.`` and join them with newlines."""
        lines: list[str] = []
        while True:
            line = self._read_line(self.prompt_cont)
            if line == _END_MARKER:
                return "\n".join(lines)
            if line == _ESCAPED_END:
                lines.append(_END_MARKER)
            else:
                lines.append(line)
