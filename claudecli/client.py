"""Messages API client: streaming and one-shot requests over HTTP."""

from __future__ import annotations

import json
import logging
import queue
import threading
import time
import urllib.error
import urllib.request
from collections.abc import Iterator
from dataclasses import dataclass, field

from claudecli.config import (
    ANTHROPIC_VERSION,
    API_URL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
)
from claudecli.errors import TransportError
from claudecli.events import UsageUpdate

logger = logging.getLogger(__name__)

_MAX_CONNECT_RETRIES = 3
_RETRY_DELAY = 2.0  # seconds between retries
_CONNECT_TIMEOUT = 300
_QUEUE_POLL_INTERVAL = 0.5  # seconds; the main thread wakes this often to see signals


@dataclass
class Completion:
    text: str = ""
    usage: UsageUpdate | None = None
    raw: dict = field(default_factory=dict)


def _stream_reader(resp: object, q: queue.Queue) -> None:
    """Read lines from an HTTP response in a background thread.

    Puts ``("chunk", bytes)`` for each line, ``("done", None)`` on
    completion, or ``("error", exc)`` on failure.
    """
    try:
        for raw_line in resp:
            q.put(("chunk", raw_line))
        q.put(("done", None))
    except Exception as exc:
        q.put(("error", exc))


def _clear_read_timeout(resp: object) -> None:
    """Let a stream block indefinitely once it is open.

    urllib applies the connect timeout to every later read as well.
    """
    sock = getattr(getattr(getattr(resp, "fp", None), "raw", None), "_sock", None)
    if sock is not None:
        sock.settimeout(None)


def _error_detail(exc: urllib.error.HTTPError) -> str:
    """Pull ``error.message`` out of an API error body, if there is one."""
    try:
        body = json.loads(exc.read().decode("utf-8", errors="replace"))
    except (OSError, ValueError):
        return str(exc.reason)
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return "Unknown API error"


class AnthropicClient:
    """Sends message requests to the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        api_url: str = API_URL,
        anthropic_version: str = ANTHROPIC_VERSION,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.max_tokens = max_tokens
        self.api_url = api_url
        self.anthropic_version = anthropic_version

    def _build_request(self, messages: list[dict], stream: bool) -> urllib.request.Request:
        payload = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": messages,
            "stream": stream,
        }
        return urllib.request.Request(
            self.api_url,
            data=json.dumps(payload).encode(),
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.api_key,
                "anthropic-version": self.anthropic_version,
            },
            method="POST",
        )

    def _open_with_retry(self, req: urllib.request.Request):
        """Open *req*, retrying connection failures and 5xx responses.

        4xx responses are not transient and fail on the first attempt.
        Every failure surfaces as :class:`TransportError`.
        """
        last_exc: Exception | None = None
        for attempt in range(_MAX_CONNECT_RETRIES):
            try:
                return urllib.request.urlopen(req, timeout=_CONNECT_TIMEOUT)
            except urllib.error.HTTPError as exc:
                if 400 <= exc.code < 500:
                    raise TransportError(_error_detail(exc), status=exc.code) from exc
                last_exc = exc
            except urllib.error.URLError as exc:
                last_exc = exc
            except OSError as exc:
                last_exc = exc
            logger.debug("attempt %d to %s failed: %s", attempt + 1, self.api_url, last_exc)
            if attempt < _MAX_CONNECT_RETRIES - 1:
                time.sleep(_RETRY_DELAY)

        if isinstance(last_exc, urllib.error.HTTPError):
            raise TransportError(_error_detail(last_exc), status=last_exc.code) from last_exc
        raise TransportError(
            f"Network error - check your internet connection ({last_exc})"
        ) from last_exc

    def stream(self, messages: list[dict]) -> Iterator[bytes]:
        """Stream a reply, yielding raw transport chunks as they arrive.

        The socket is read in a daemon thread so the main thread stays
        responsive to Ctrl+C.  A failure while reading is raised as
        :class:`TransportError`.
        """
        resp = self._open_with_retry(self._build_request(messages, stream=True))
        _clear_read_timeout(resp)

        q: queue.Queue = queue.Queue()
        reader_thread = threading.Thread(
            target=_stream_reader, args=(resp, q), daemon=True,
        )
        reader_thread.start()

        try:
            while True:
                try:
                    kind, value = q.get(timeout=_QUEUE_POLL_INTERVAL)
                except queue.Empty:
                    continue

                if kind == "done":
                    return
                if kind == "error":
                    raise TransportError(f"Stream error: {value}") from value
                yield value
        finally:
            try:
                resp.close()
            except OSError:
                pass

    def complete(self, messages: list[dict]) -> Completion:
        """Send a non-streaming request and return the first text block."""
        req = self._build_request(messages, stream=False)
        try:
            with self._open_with_retry(req) as resp:
                data = json.loads(resp.read().decode())
        except (OSError, ValueError) as exc:
            raise TransportError(f"Could not read response: {exc}") from exc
        return self._parse_completion(data)

    def _parse_completion(self, data: dict) -> Completion:
        text = ""
        for block in data.get("content", []):
            if block.get("type") == "text":
                text = block.get("text", "")
                break

        usage = None
        raw_usage = data.get("usage")
        if isinstance(raw_usage, dict):
            usage = UsageUpdate(
                input_tokens=raw_usage.get("input_tokens") or 0,
                output_tokens=raw_usage.get("output_tokens") or 0,
            )
        return Completion(text=text, usage=usage, raw=data)
