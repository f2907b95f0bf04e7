"""Server-sent-event decoding for the Messages API stream."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Union

logger = logging.getLogger(__name__)

_DATA_PREFIX = "data: "
_DONE_RECORD = "data: [DONE]"


@dataclass(frozen=True)
class TextDelta:
    text: str


@dataclass(frozen=True)
class UsageUpdate:
    input_tokens: int = 0
    output_tokens: int = 0


@dataclass(frozen=True)
class Done:
    """Terminal ``[DONE]`` sentinel."""


@dataclass(frozen=True)
class Skipped:
    """A ``data:`` record that could not be parsed (usually a split fragment)."""
    record: str
    reason: str


StreamEvent = Union[TextDelta, UsageUpdate, Done, Skipped]


def decode_chunk(chunk: bytes | str) -> list[StreamEvent]:
    """Decode one transport chunk into stream events.

    A chunk holds zero or more newline-delimited records.  Records without
    the ``data: `` prefix are ignored; unparsable payloads become
    :class:`Skipped` so the caller can keep going.
    """
    if isinstance(chunk, bytes):
        chunk = chunk.decode("utf-8", errors="replace")

    events: list[StreamEvent] = []
    for line in chunk.split("\n"):
        line = line.rstrip("\r")
        if not line.startswith(_DATA_PREFIX):
            continue
        if line == _DONE_RECORD:
            events.append(Done())
            continue
        event = _decode_record(line[len(_DATA_PREFIX):])
        if event is not None:
            events.append(event)
    return events


def _decode_record(payload: str) -> StreamEvent | None:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        logger.debug("skipping unparsable record %r: %s", payload[:80], exc)
        return Skipped(record=payload, reason=str(exc))

    if not isinstance(data, dict):
        return None

    kind = data.get("type")
    if kind == "content_block_delta":
        delta = data.get("delta") or {}
        text = delta.get("text") if isinstance(delta, dict) else None
        if text:
            return TextDelta(text=text)
        return None

    if kind == "message_delta":
        usage = data.get("usage")
        if isinstance(usage, dict):
            return UsageUpdate(
                input_tokens=usage.get("input_tokens") or 0,
                output_tokens=usage.get("output_tokens") or 0,
            )
    return None
