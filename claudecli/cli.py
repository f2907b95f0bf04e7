"""CLI argument parser for claudecli."""

from __future__ import annotations

import argparse
from pathlib import Path

from claudecli.config import (
    ARCHIVE_FILE,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    HISTORY_FILE,
    Settings,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="claudecli",
        description="Chat with Claude in the terminal, with highlighted code blocks",
    )

    parser.add_argument(
        "--model",
        type=str,
        default=DEFAULT_MODEL,
        help=f"Model to use (default: {DEFAULT_MODEL})",
    )
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=DEFAULT_MAX_TOKENS,
        help=f"Maximum tokens per reply (default: {DEFAULT_MAX_TOKENS})",
    )
    parser.add_argument(
        "--history-file",
        type=Path,
        default=HISTORY_FILE,
        metavar="PATH",
        help=f"Conversation history file (default: {HISTORY_FILE})",
    )
    parser.add_argument(
        "--archive-file",
        type=Path,
        default=ARCHIVE_FILE,
        metavar="PATH",
        help=f"Archive file used by the 'archive' command (default: {ARCHIVE_FILE})",
    )
    parser.add_argument(
        "--no-history",
        action="store_true",
        default=False,
        help="Start fresh and do not save the conversation",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        default=False,
        help="Log debug information to stderr",
    )
    return parser


def settings_from_args(args: argparse.Namespace, api_key: str) -> Settings:
    return Settings(
        api_key=api_key,
        model=args.model,
        max_tokens=args.max_tokens,
        history_file=None if args.no_history else args.history_file,
        archive_file=args.archive_file,
        debug=args.debug,
    )
