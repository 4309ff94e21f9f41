"""Tests for the incremental stream parser."""

import json

import pytest

from termrelay.util.providers import ProviderFamily
from termrelay.util.sse import SseDeltaParser, iter_deltas


def anthropic_frame(text: str) -> str:
    payload = {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": text}}
    return f"event: content_block_delta\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


def openai_frame(text: str) -> str:
    payload = {"choices": [{"index": 0, "delta": {"content": text}}]}
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


ANTHROPIC_STREAM = (
    'event: message_start\ndata: {"type": "message_start", "message": {"id": "m1"}}\n\n'
    + anthropic_frame("Hello")
    + 'event: ping\ndata: {"type": "ping"}\n\n'
    + anthropic_frame(", wörld ✓")
    + 'event: message_stop\ndata: {"type": "message_stop"}\n\n'
).encode("utf-8")

OPENAI_STREAM = (
    'data: {"choices": [{"delta": {"role": "assistant"}}]}\n\n'
    + openai_frame("foo")
    + openai_frame("bar")
    + "data: [DONE]\n\n"
).encode("utf-8")


def parse_all(family, chunks):
    parser = SseDeltaParser(family)
    deltas = []
    for chunk in chunks:
        deltas.extend(parser.feed(chunk))
    deltas.extend(parser.finish())
    return deltas


def split_every(data: bytes, size: int) -> list[bytes]:
    return [data[i:i + size] for i in range(0, len(data), size)]


class TestChunkBoundaries:
    """Deltas must not depend on how the byte stream is chunked."""

    def test_single_chunk(self):
        assert parse_all(ProviderFamily.ANTHROPIC, [ANTHROPIC_STREAM]) == ["Hello", ", wörld ✓"]

    @pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 13, 64])
    def test_anthropic_any_split(self, size):
        expected = parse_all(ProviderFamily.ANTHROPIC, [ANTHROPIC_STREAM])
        assert parse_all(ProviderFamily.ANTHROPIC, split_every(ANTHROPIC_STREAM, size)) == expected

    @pytest.mark.parametrize("size", [1, 4, 9, 31])
    def test_openai_any_split(self, size):
        expected = ["foo", "bar"]
        assert parse_all(ProviderFamily.OPENAI, split_every(OPENAI_STREAM, size)) == expected

    def test_multibyte_character_split_across_chunks(self):
        data = anthropic_frame("✓").encode("utf-8")
        idx = data.index("✓".encode("utf-8")) + 1  # inside the 3-byte sequence
        assert parse_all(ProviderFamily.ANTHROPIC, [data[:idx], data[idx:]]) == ["✓"]


class TestMalformedFrames:
    """Bad frames are skipped without ending the stream."""

    def test_bad_json_between_valid_deltas(self):
        data = (anthropic_frame("one") + "data: {not json\n\n" + anthropic_frame("two")).encode()
        parser = SseDeltaParser(ProviderFamily.ANTHROPIC)

        assert parser.feed(data) == ["one", "two"]
        assert parser.skipped == 1
        assert not parser.done

    def test_deeply_nested_frame_is_skipped(self):
        data = (openai_frame("a") + "data: " + "[" * 200_000 + "\n\n" + openai_frame("b")).encode()
        parser = SseDeltaParser(ProviderFamily.OPENAI)

        assert parser.feed(data) == ["a", "b"]
        assert parser.skipped == 1

    def test_non_data_lines_ignored(self):
        data = b": keep-alive\nevent: ping\nid: 7\nretry: 100\n\n" + openai_frame("x").encode()
        assert parse_all(ProviderFamily.OPENAI, [data]) == ["x"]

    def test_crlf_line_endings(self):
        data = openai_frame("crlf").replace("\n", "\r\n").encode()
        assert parse_all(ProviderFamily.OPENAI, [data]) == ["crlf"]

    def test_prefix_without_space(self):
        data = b'data:{"choices": [{"delta": {"content": "tight"}}]}\n'
        assert parse_all(ProviderFamily.OPENAI, [data]) == ["tight"]


class TestTermination:
    """Sentinel and end-of-data handling."""

    def test_sentinel_is_not_content_and_stops_parsing(self):
        data = (openai_frame("a") + "data: [DONE]\n\n" + openai_frame("after")).encode()
        parser = SseDeltaParser(ProviderFamily.OPENAI)

        assert parser.feed(data) == ["a"]
        assert parser.done
        assert parser.feed(openai_frame("more").encode()) == []
        assert parser.finish() == []

    def test_trailing_frame_without_newline_is_flushed(self):
        data = openai_frame("a").encode() + b'data: {"choices": [{"delta": {"content": "b"}}]}'
        parser = SseDeltaParser(ProviderFamily.OPENAI)

        assert parser.feed(data) == ["a"]
        assert parser.finish() == ["b"]

    def test_empty_stream(self):
        assert parse_all(ProviderFamily.ANTHROPIC, []) == []


class TestIterDeltas:
    """Tests for the async iteration helper."""

    @pytest.mark.asyncio
    async def test_iterates_until_end_of_data(self):
        async def chunks():
            for chunk in split_every(ANTHROPIC_STREAM, 10):
                yield chunk

        result = [d async for d in iter_deltas(ProviderFamily.ANTHROPIC, chunks())]
        assert result == ["Hello", ", wörld ✓"]

    @pytest.mark.asyncio
    async def test_stops_at_sentinel(self):
        consumed = []

        async def chunks():
            for chunk in [OPENAI_STREAM, b"never read"]:
                consumed.append(chunk)
                yield chunk

        result = [d async for d in iter_deltas(ProviderFamily.OPENAI, chunks())]
        assert result == ["foo", "bar"]
        assert consumed == [OPENAI_STREAM]
