"""Entry point for claudecli."""

from __future__ import annotations

import signal
import sys

from claudecli.chat import ChatSession, Conversation
from claudecli.cli import build_parser, settings_from_args
from claudecli.client import AnthropicClient
from claudecli.config import Settings, configure_logging, get_api_key, load_env
from claudecli.errors import ConfigError, HistoryError
from claudecli.history import load_history, save_history
from claudecli.input_reader import InputReader
from claudecli.usage import format_usage


# ── ANSI color constants ─────────────────────────────────────
_YELLOW = "\033[33m"
_GREEN = "\033[32m"
_RED = "\033[31m"
_GREY = "\033[90m"
_RESET = "\033[0m"

WELCOME = (
    f"{_YELLOW}🎉 Welcome to Claude CLI!{_RESET}\n"
    f"{_GREY}Type \"quit\" or \"exit\" to end the conversation.{_RESET}\n"
    f"{_GREY}Type \"archive\" to archive and summarize the conversation.{_RESET}\n"
    f"{_GREY}Hit \"enter\" on an empty line to begin multi-line input; end it with a lone \".\".{_RESET}\n"
    f"{_GREY}^D to exit the program.{_RESET}\n"
)


def _load_conversation(settings: Settings) -> Conversation:
    if settings.history_file is None:
        print(f"{_GREY}📝 Starting fresh conversation{_RESET}")
        return Conversation()
    turns = load_history(settings.history_file)
    if turns:
        print(f"{_GREEN}📚 Loaded {len(turns)} previous messages{_RESET}")
    else:
        print(f"{_GREY}📝 Starting fresh conversation{_RESET}")
    return Conversation(turns)


def _save(settings: Settings, conversation: Conversation) -> None:
    if settings.history_file is None:
        return
    try:
        save_history(settings.history_file, conversation.turns)
    except HistoryError as exc:
        print(f"{_RED}{exc}{_RESET}")
        return
    print(f"{_GREY}💾 Conversation saved ({len(conversation)} messages){_RESET}")


def _on_sigterm(signum: int, frame: object) -> None:
    raise KeyboardInterrupt


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    configure_logging(args.debug)

    load_env()
    try:
        api_key = get_api_key()
    except ConfigError as exc:
        print(f"{_RED}❌ {exc}{_RESET}", file=sys.stderr)
        sys.exit(1)

    settings = settings_from_args(args, api_key)
    client = AnthropicClient(
        api_key=settings.api_key,
        model=settings.model,
        max_tokens=settings.max_tokens,
        api_url=settings.api_url,
    )
    session = ChatSession(client, conversation=_load_conversation(settings))
    reader = InputReader()

    signal.signal(signal.SIGTERM, _on_sigterm)

    print(WELCOME)
    try:
        while True:
            result = reader.read_input()

            if result.action == "exit":
                break
            if result.action == "empty":
                continue
            if result.action == "archive":
                if session.archive(settings.archive_file):
                    _save(settings, session.conversation)
                    print(f"{_GREEN}✅ Conversation archived and summarized!{_RESET}")
                continue

            if session.send(result.text):
                print(format_usage(session.last_state.usage))
                _save(settings, session.conversation)
    except KeyboardInterrupt:
        print()
    finally:
        print(f"{_YELLOW}🧼 Cleaning up...{_RESET}")
        _save(settings, session.conversation)
        print(f"{_GREY}{session.usage.display()}{_RESET}")
        print(f"{_YELLOW}👋 Goodbye!{_RESET}")


if __name__ == "__main__":
    main()
