"""Chat session: drives one streamed assistant turn at a time."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

from claudecli.client import AnthropicClient
from claudecli.config import SUMMARY_PROMPT
from claudecli.errors import HistoryError, TransportError
from claudecli.events import Done, Skipped, TextDelta, UsageUpdate, decode_chunk
from claudecli.formatter import RenderState, StreamFormatter
from claudecli.history import ConversationTurn, archive_history
from claudecli.spinner import Spinner
from claudecli.usage import UsageTracker, format_usage

logger = logging.getLogger(__name__)

_GREEN = "\033[32m"
_RED = "\033[31m"
_GREY = "\033[90m"
_RESET = "\033[0m"

SUMMARY_HEADER = "**Conversation summary:**\n\n"


class Conversation:
    """Ordered sequence of conversation turns."""

    def __init__(self, turns: Iterable[ConversationTurn] = ()) -> None:
        self._turns: list[ConversationTurn] = list(turns)

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> list[ConversationTurn]:
        return list(self._turns)

    def append(self, role: str, content: str) -> ConversationTurn:
        turn = ConversationTurn(role=role, content=content)
        self._turns.append(turn)
        return turn

    def replace(self, turns: Iterable[ConversationTurn]) -> None:
        self._turns = list(turns)

    def to_messages(self) -> list[dict]:
        return [{"role": t.role, "content": t.content} for t in self._turns]


class ChatSession:
    """Relays user messages to the API and renders streamed replies.

    Only one turn is in flight at a time: :meth:`send` returns once the
    reply has been fully rendered or the turn has been abandoned.
    """

    def __init__(
        self,
        client: AnthropicClient,
        conversation: Conversation | None = None,
        out: TextIO | None = None,
        err: TextIO | None = None,
        spinner: Spinner | None = None,
        usage: UsageTracker | None = None,
    ) -> None:
        self.client = client
        self.conversation = conversation if conversation is not None else Conversation()
        self.out = out if out is not None else sys.stdout
        self.err = err if err is not None else sys.stderr
        self.spinner = spinner if spinner is not None else Spinner()
        self.usage = usage if usage is not None else UsageTracker()
        self.last_state: RenderState | None = None

    def send(self, user_message: str) -> bool:
        """Run one turn.  Returns ``False`` if the turn was abandoned.

        On a transport failure the user's message stays in the
        conversation and no assistant turn is added.
        """
        self.conversation.append("user", user_message)
        state = RenderState()
        fmt = StreamFormatter(state=state)
        header_shown = False

        self.spinner.start("Claude is thinking...")
        try:
            for chunk in self.client.stream(self.conversation.to_messages()):
                self.spinner.stop()
                if not header_shown:
                    self.out.write(f"\n{_GREEN}Claude:{_RESET}\n")
                    header_shown = True
                if self._consume(chunk, fmt):
                    break
        except TransportError as exc:
            self.spinner.stop()
            self._report("Error sending message:", exc)
            self.usage.record_failure()
            return False
        finally:
            self.spinner.stop()

        tail = fmt.flush()
        if not tail.endswith("\n"):
            tail += "\n"
        self.out.write(tail)
        self.out.flush()
        self.conversation.append("assistant", state.full_text)
        self.usage.record_turn(state.usage)
        self.last_state = state
        return True

    def _consume(self, chunk: bytes, fmt: StreamFormatter) -> bool:
        """Render one chunk to completion.  Returns ``True`` on the done sentinel."""
        done = False
        for event in decode_chunk(chunk):
            if isinstance(event, TextDelta):
                output = fmt.feed(event.text)
                if output:
                    self.out.write(output)
            elif isinstance(event, UsageUpdate):
                fmt.state.usage = event
            elif isinstance(event, Skipped):
                logger.debug("skipped record: %s", event.reason)
            elif isinstance(event, Done):
                done = True
        self.out.flush()
        return done

    def summarize(self) -> str | None:
        """Ask for a summary of the conversation so far (not streamed)."""
        messages = self.conversation.to_messages()
        messages.append({"role": "user", "content": SUMMARY_PROMPT})
        self.spinner.start("Generating conversation summary...")
        try:
            completion = self.client.complete(messages)
        except TransportError as exc:
            self._report("Error generating summary:", exc)
            return None
        finally:
            self.spinner.stop()
        self.usage.record_usage(completion.usage)
        self.out.write(format_usage(completion.usage) + "\n")
        return completion.text or None

    def archive(self, archive_file: Path) -> bool:
        """Archive the conversation and replace it with a summary.

        If the summary cannot be produced the conversation is archived
        but left as it was.
        """
        if not len(self.conversation):
            self.out.write("No conversation to archive yet.\n")
            return False
        try:
            entry = archive_history(archive_file, self.conversation.turns)
        except HistoryError as exc:
            self._report("Archive failed:", exc)
            return False
        self.out.write(
            f"{_GREY}Archived {entry.message_count} messages at {entry.timestamp}{_RESET}\n"
        )

        summary = self.summarize()
        if summary is None:
            self.out.write(
                f"{_RED}Failed to generate summary. History archived but not cleared.{_RESET}\n"
            )
            return False
        self.conversation.replace(
            [ConversationTurn(role="assistant", content=SUMMARY_HEADER + summary)]
        )
        return True

    def _report(self, headline: str, exc: Exception) -> None:
        self.err.write(f"{_RED}{headline}{_RESET}\n")
        self.err.write(f"{_RED}{exc}{_RESET}\n")
        self.err.flush()
