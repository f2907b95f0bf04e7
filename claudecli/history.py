"""Conversation history persistence and archiving."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from claudecli.errors import HistoryError

logger = logging.getLogger(__name__)

ROLES = ("user", "assistant")


@dataclass(frozen=True)
class ConversationTurn:
    role: str        # "user" | "assistant"
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown role: {self.role!r}")


@dataclass
class ArchiveEntry:
    timestamp: str
    message_count: int
    conversation: list[ConversationTurn] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "messageCount": self.message_count,
            "conversation": [asdict(t) for t in self.conversation],
        }


def load_history(path: Path) -> list[ConversationTurn]:
    """Load the saved conversation from *path*.

    A missing file means a fresh conversation.  An unreadable or malformed
    file is logged and also yields a fresh conversation.
    """
    if not path.exists():
        return []
    try:
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        return [ConversationTurn(role=m["role"], content=m["content"]) for m in raw]
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("could not load history from %s: %s", path, exc)
        return []


def save_history(path: Path, turns: list[ConversationTurn]) -> Path:
    """Write *turns* to *path* as a JSON array, creating the directory."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump([asdict(t) for t in turns], f, indent=2, ensure_ascii=False)
    except OSError as exc:
        raise HistoryError(f"Error saving history: {exc}") from exc
    return path


def archive_history(path: Path, turns: list[ConversationTurn]) -> ArchiveEntry:
    """Append a timestamped snapshot of *turns* to the archive file at *path*."""
    entry = ArchiveEntry(
        timestamp=datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
        message_count=len(turns),
        conversation=list(turns),
    )
    try:
        archives: list = []
        if path.exists():
            with open(path, encoding="utf-8") as f:
                archives = json.load(f)
            if not isinstance(archives, list):
                raise HistoryError(f"Archive file is not a list: {path}")
        archives.append(entry.to_dict())
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(archives, f, indent=2, ensure_ascii=False)
    except (OSError, ValueError) as exc:
        raise HistoryError(f"Error archiving history: {exc}") from exc
    return entry
