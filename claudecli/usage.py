"""Token usage for the last turn and the whole session."""

from __future__ import annotations

import time
from dataclasses import dataclass, field

from claudecli.events import UsageUpdate

_GREY = "\033[90m"
_RESET = "\033[0m"


def format_usage(usage: UsageUpdate | None) -> str:
    if usage is None:
        return "Current usage is null"
    return (
        f"{_GREY}Input tokens: {usage.input_tokens}{_RESET}\n"
        f"{_GREY}Output tokens: {usage.output_tokens}{_RESET}"
    )


@dataclass
class UsageTracker:
    turns: int = 0
    failed_turns: int = 0
    tokens_in: int = 0
    tokens_out: int = 0
    last: UsageUpdate | None = None
    start_time: float = field(default_factory=time.time)

    def record_turn(self, usage: UsageUpdate | None) -> None:
        self.turns += 1
        self.record_usage(usage)

    def record_failure(self) -> None:
        self.failed_turns += 1

    def record_usage(self, usage: UsageUpdate | None) -> None:
        """Remember *usage* as the latest and add it to the totals."""
        if usage is None:
            return
        self.last = usage
        self.tokens_in += usage.input_tokens
        self.tokens_out += usage.output_tokens

    def elapsed_seconds(self) -> float:
        return time.time() - self.start_time

    def summary(self) -> dict:
        return {
            "turns": self.turns,
            "failed_turns": self.failed_turns,
            "tokens_in": self.tokens_in,
            "tokens_out": self.tokens_out,
            "elapsed_s": round(self.elapsed_seconds(), 2),
        }

    def display(self) -> str:
        lines = [
            f"Turns         : {self.turns}",
            f"Failed turns  : {self.failed_turns}",
            f"Input tokens  : {self.tokens_in}",
            f"Output tokens : {self.tokens_out}",
            f"Elapsed       : {self.elapsed_seconds():.1f}s",
        ]
        return "\n".join(lines)
