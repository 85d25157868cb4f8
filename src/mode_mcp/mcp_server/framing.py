"""
framing.py — Content-Length framing for the stdio transport.

Wire format (both directions):

    Content-Length: <n>\r\n
    \r\n
    <n bytes of UTF-8 JSON>

Additional ``Key: value`` header lines are allowed and ignored.
"""

import json
import logging
import re
from typing import Any, Callable

HEADER_SEPARATOR = b"\r\n\r\n"

_CONTENT_LENGTH_RE = re.compile(rb"content-length[ \t]*:[ \t]*(\d+)", re.IGNORECASE)

logger = logging.getLogger("mode_mcp.mcp_server.framing")


def encode_message(payload: Any) -> bytes:
    """Serialize ``payload`` to a single framed message."""
    body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    return b"Content-Length: " + str(len(body)).encode("ascii") + HEADER_SEPARATOR + body


def _content_length(header_block: bytes) -> int | None:
    # Not line-anchored: bytes left over from a skipped frame may precede the header.
    match = _CONTENT_LENGTH_RE.search(header_block)
    return int(match.group(1)) if match else None


class MessageFramer:
    """
    Reassembles Content-Length framed messages from an arbitrary chunked byte stream.

    ``feed`` returns every complete body found so far, in stream order. Partial
    frames stay buffered until the next call. A header block without a usable
    Content-Length is discarded and scanning continues after it.
    """

    def __init__(self, on_drop: Callable[[bytes], None] | None = None) -> None:
        self._buffer = bytearray()
        self._on_drop = on_drop

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet consumed by a complete frame."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[bytes]:
        self._buffer.extend(chunk)
        messages: list[bytes] = []
        while True:
            header_end = self._buffer.find(HEADER_SEPARATOR)
            if header_end == -1:
                break
            header_block = bytes(self._buffer[:header_end])
            length = _content_length(header_block)
            body_start = header_end + len(HEADER_SEPARATOR)
            if length is None:
                del self._buffer[:body_start]
                self._dropped(header_block)
                continue
            if len(self._buffer) - body_start < length:
                break
            messages.append(bytes(self._buffer[body_start : body_start + length]))
            del self._buffer[: body_start + length]
        return messages

    def _dropped(self, header_block: bytes) -> None:
        logger.warning(
            "Dropping frame without a valid Content-Length header: %r", header_block[:200]
        )
        if self._on_drop is not None:
            self._on_drop(header_block)
