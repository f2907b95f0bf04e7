"""Configuration constants and environment loading for claudecli."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from claudecli.errors import ConfigError


# ── Messages API ────────────────────────────────────────────────────

API_URL = os.environ.get("ANTHROPIC_API_URL", "https://api.anthropic.com/v1/messages")
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_MODEL = os.environ.get("CLAUDECLI_MODEL", "claude-sonnet-4-20250514")
DEFAULT_MAX_TOKENS = int(os.environ.get("CLAUDECLI_MAX_TOKENS", "2000"))
API_KEY_ENV = "ANTHROPIC_API_KEY"


# ── Persistence ─────────────────────────────────────────────────────

DATA_DIR = Path(os.environ.get("CLAUDECLI_DATA_DIR", "data"))
HISTORY_FILE = DATA_DIR / "history.json"
ARCHIVE_FILE = DATA_DIR / "archive.json"


# ── Rendering ───────────────────────────────────────────────────────

FENCE = "```"

# Fence tags pygments either lacks or tokenizes poorly, mapped to a
# lexer that reads them well enough.
LANGUAGE_ALIASES: dict[str, str] = {
    "gitignore": "bash",
    "dockerfile": "bash",
    "env": "bash",
    "txt": "text",
    "log": "text",
}
PLAIN_LANGUAGE = "text"

SUMMARY_PROMPT = (
    "Please provide a detailed summary of our conversation so far. "
    "Include key topics discussed, brief outlines of significant code "
    "implementations, decisions made, concepts and syntax newly learned, "
    "and important context that should be preserved for future reference. "
    "This summary will replace our current chat history."
)


@dataclass(frozen=True)
class Settings:
    api_key: str
    model: str = DEFAULT_MODEL
    max_tokens: int = DEFAULT_MAX_TOKENS
    api_url: str = API_URL
    history_file: Path | None = HISTORY_FILE
    archive_file: Path = ARCHIVE_FILE
    debug: bool = False


def load_env(env_file: Path | None = None) -> None:
    """Load ``.env`` into ``os.environ`` without overriding variables already set.

    The working directory's ``.env`` is read by default.
    """
    path = env_file if env_file is not None else Path.cwd() / ".env"
    if path.is_file():
        load_dotenv(path, override=False)


def get_api_key() -> str:
    """Return the API key from the environment or raise :class:`ConfigError`."""
    key = os.environ.get(API_KEY_ENV, "").strip()
    if not key:
        raise ConfigError(f"{API_KEY_ENV} not found in environment or .env file")
    return key


def configure_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
