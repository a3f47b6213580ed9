"""Incremental text extraction from a chunked ``streamGenerateContent`` body.

The body is a JSON array of partial response objects, but chunks can split it
anywhere, including inside a string literal or a multi-byte character. The
decoder never parses the array; it pattern-matches ``"text": "..."`` fields
and reports the longest text reconstructed so far.
"""

from __future__ import annotations

import codecs
import logging
from typing import AsyncIterable, Callable, Optional

from .responses import array_bounds, iter_text_matches

logger = logging.getLogger(__name__)

DeltaCallback = Callable[[str], None]


class StreamDecoder:
    """Accumulates streamed bytes and tracks the best-known full text.

    Completed ``text`` matches never change once their closing quote has
    arrived, so the decoder remembers the offset just past the last complete
    match and the text committed before it. Each pass only scans the tail,
    which yields the same result as re-scanning the whole buffer.
    """

    def __init__(self, on_delta: Optional[DeltaCallback] = None) -> None:
        self._on_delta = on_delta
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._scan_pos = 0
        self._committed = ""
        self._text = ""
        self._skipped = 0

    @property
    def text(self) -> str:
        return self._text

    @property
    def buffer(self) -> str:
        return self._buffer

    def feed(self, chunk: bytes) -> str | None:
        """Append ``chunk`` and return the new full text when it grew."""

        if not chunk:
            return None
        self._buffer += self._utf8.decode(chunk)
        return self._rescan()

    def finish(self) -> str:
        """Flush any carried-over bytes and return the final text."""

        tail = self._utf8.decode(b"", final=True)
        if tail:
            self._buffer += tail
            self._rescan()
        if self._skipped:
            logger.debug("Skipped %d undecodable text fields in stream", self._skipped)
        return self._text

    def _rescan(self) -> str | None:
        start, end = array_bounds(self._buffer)
        position = max(self._scan_pos, start)
        for match_end, value in iter_text_matches(self._buffer, position, end):
            self._scan_pos = match_end
            if value is None:
                self._skipped += 1
                continue
            self._committed += value

        candidate = self._committed
        if len(candidate) <= len(self._text):
            return None
        self._text = candidate
        if self._on_delta is not None:
            self._on_delta(candidate)
        return candidate


async def decode_stream(
    chunks: AsyncIterable[bytes],
    on_delta: Optional[DeltaCallback] = None,
) -> str:
    """Consume ``chunks`` until exhausted and return the accumulated text."""

    decoder = StreamDecoder(on_delta)
    chunk_count = 0
    async for chunk in chunks:
        chunk_count += 1
        decoder.feed(chunk)
    text = decoder.finish()
    logger.debug("Decoded %d stream chunks into %d characters", chunk_count, len(text))
    return text


__all__ = ["DeltaCallback", "StreamDecoder", "decode_stream"]
