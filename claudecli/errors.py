"""Exception classes for claudecli."""

from __future__ import annotations


class ClaudeCliError(Exception):
    """Base exception for claudecli errors."""


class ConfigError(ClaudeCliError):
    """Missing or invalid configuration (e.g. no API key)."""


class HistoryError(ClaudeCliError):
    """History or archive file could not be read or written."""


class TransportError(ClaudeCliError):
    """The Messages API could not be reached or answered with an error.

    Aborts the current turn; never raised for malformed stream records.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status:
            return f"[{self.status}] {self.message}"
        return self.message
