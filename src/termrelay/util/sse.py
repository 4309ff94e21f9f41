"""Incremental parser for provider event streams.

Providers send newline-delimited ``data: <json>`` records. Network chunks can
split a record (or a multi-byte UTF-8 character) anywhere, so the parser keeps
partial input between ``feed`` calls.
"""

from __future__ import annotations

import codecs
import json
import logging
from typing import Any, AsyncIterator

from termrelay.util.errors import StreamParseSkip
from termrelay.util.providers import ProviderFamily, extract_delta

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"


def decode_frame(payload: str) -> Any:
    """Decode one record payload, raising StreamParseSkip if it isn't usable JSON."""
    try:
        return json.loads(payload)
    except (ValueError, RecursionError) as e:
        raise StreamParseSkip(f"Malformed frame: {payload[:80]!r}") from e


class SseDeltaParser:
    """Turns raw response bytes into text deltas for one provider family."""

    def __init__(self, family: ProviderFamily):
        self.family = ProviderFamily.parse(family)
        self.done = False
        self.skipped = 0
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes) -> list[str]:
        """Consume a chunk and return the deltas completed by it."""
        if self.done:
            return []
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._process_lines(lines)

    def finish(self) -> list[str]:
        """Flush buffered input at end of data (last line may lack a newline)."""
        if self.done:
            return []
        tail = self._buffer + self._decoder.decode(b"", final=True)
        self._buffer = ""
        return self._process_lines(tail.split("\n"))

    def _process_lines(self, lines: list[str]) -> list[str]:
        deltas = []
        for line in lines:
            if self.done:
                break
            delta = self._process_line(line.rstrip("\r"))
            if delta:
                deltas.append(delta)
        return deltas

    def _process_line(self, line: str) -> str:
        if not line.startswith(DATA_PREFIX):
            # event:, id:, comments and blank separators carry no text
            return ""
        payload = line[len(DATA_PREFIX):]
        if payload.startswith(" "):
            payload = payload[1:]
        if payload.strip() == DONE_SENTINEL:
            self.done = True
            return ""
        try:
            frame = decode_frame(payload)
        except StreamParseSkip as e:
            self.skipped += 1
            logger.debug("Skipping %s frame: %s", self.family.value, e)
            return ""
        return extract_delta(self.family, frame)


async def iter_deltas(family: ProviderFamily, chunks: AsyncIterator[bytes]) -> AsyncIterator[str]:
    """Yield deltas from an async byte iterator until the sentinel or end of data."""
    parser = SseDeltaParser(family)
    async for chunk in chunks:
        for delta in parser.feed(chunk):
            yield delta
        if parser.done:
            return
    for delta in parser.finish():
        yield delta
