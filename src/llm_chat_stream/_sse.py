"""
Incremental parser for Server-Sent Events (SSE) that extracts data fields from
arbitrarily chunked text.
Only the 'data' field is honoured; named events, ids and retry hints are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

DATA_PREFIX = "data:"
RECORD_TERMINATOR = "\n\n"


@dataclass(frozen=True, slots=True)
class SSEEvent:
    """
    Data structure representing a single Server-Sent Event (SSE).
    Stores the raw string content associated with the 'data' field.
    """

    data: str


def _payload_from_record(record: str) -> str | None:
    data_lines = [ln[len(DATA_PREFIX):].lstrip() for ln in record.split("\n") if ln.startswith(DATA_PREFIX)]
    if not data_lines:
        return None
    return "\n".join(data_lines)


class StreamDemuxer:
    """
    Splits a stream of text chunks into SSE event payloads.

    Chunks may cut a record anywhere (mid-line, mid-prefix, inside the blank
    line terminator); the incomplete tail is kept until a later push completes it.
    Carriage returns are dropped on arrival so CRLF and LF streams frame alike.
    """

    def __init__(self) -> None:
        self._buffer = ""

    @property
    def pending(self) -> str:
        return self._buffer

    def push(self, chunk: str) -> list[str]:
        """
        Append a chunk and return the payloads of every record it completes.

        Args:
            chunk: Decoded text, in arrival order.

        Returns:
            Payloads in completion order; empty when no record was closed.
        """
        if not chunk:
            return []
        self._buffer += chunk.replace("\r", "")
        return self._drain()

    def flush(self) -> list[str]:
        """
        Drain the buffer at end of stream, treating a final unterminated
        record as if it had its blank line.
        """
        self._buffer += RECORD_TERMINATOR
        events = self._drain()
        self._buffer = ""
        return events

    def reset(self) -> None:
        """Drop buffered input without emitting it."""
        self._buffer = ""

    def _drain(self) -> list[str]:
        events: list[str] = []
        end = self._buffer.find(RECORD_TERMINATOR)
        while end != -1:
            record = self._buffer[:end]
            self._buffer = self._buffer[end + len(RECORD_TERMINATOR):]
            payload = _payload_from_record(record)
            if payload is not None:
                events.append(payload)
            end = self._buffer.find(RECORD_TERMINATOR)
        return events


def iter_sse_events_from_text(text: str) -> Iterator[SSEEvent]:
    """
    Parse SSE events from a complete text block.

    Args:
        text: The raw string containing one or multiple SSE events.

    Yields:
        SSEEvent objects containing the reconstructed data fields.
    """
    demuxer = StreamDemuxer()
    for payload in demuxer.push(text):
        yield SSEEvent(data=payload)
    for payload in demuxer.flush():
        yield SSEEvent(data=payload)
