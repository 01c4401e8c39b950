"""
Tests for the generate-stream decoder.

Chunk boundaries from the socket are arbitrary; the decoder must produce
the same deltas and context however the body is split.
"""

import pytest

from ollama_relay.decoder import StreamDecoder, relay_stream
from ollama_relay.errors import BackendStreamError, StreamDecodeError


class MockStream:
    """Stand-in for GenerationStream yielding fixed chunks."""

    def __init__(self, chunks: list[bytes]):
        self._chunks = chunks
        self.closed = False

    async def chunks(self):
        for chunk in self._chunks:
            yield chunk

    async def aclose(self):
        self.closed = True


def decode_all(chunks: list[bytes]) -> tuple[list[str], StreamDecoder]:
    decoder = StreamDecoder()
    deltas = []
    for chunk in chunks:
        deltas.extend(f.response for f in decoder.feed(chunk) if f.response)
    deltas.extend(f.response for f in decoder.finish() if f.response)
    return deltas, decoder


class TestChunkReassembly:
    """Deltas and context survive any chunking."""

    def test_two_chunk_split(self):
        deltas, decoder = decode_all([
            b'{"response":"hel"}\n',
            b'{"response":"lo"}\n{"context":[1,2,3]}\n',
        ])

        assert deltas == ["hel", "lo"]
        assert decoder.context == [1, 2, 3]
        assert decoder.text == "hello"

    def test_object_split_inside_a_line(self):
        deltas, decoder = decode_all([
            b'{"respo',
            b'nse":"hel"}\n{"response":',
            b'"lo"}\n{"context":[1,',
            b'2,3],"done":true}\n',
        ])

        assert deltas == ["hel", "lo"]
        assert decoder.context == [1, 2, 3]
        assert decoder.done

    def test_single_buffer_matches_byte_by_byte(self):
        body = b'{"response":"The "}\n{"response":"sky"}\n{"context":[4,5],"done":true}\n'

        whole, whole_decoder = decode_all([body])
        split, split_decoder = decode_all([body[i:i + 1] for i in range(len(body))])

        assert "".join(whole) == "".join(split) == "The sky"
        assert whole_decoder.context == split_decoder.context == [4, 5]

    def test_multibyte_character_split_across_chunks(self):
        deltas, _ = decode_all([b'{"response":"caf\xc3', b'\xa9"}\n'])
        assert deltas == ["café"]

    def test_final_line_without_newline(self):
        deltas, decoder = decode_all([b'{"response":"hi"}\n{"context":[9]}'])
        assert deltas == ["hi"]
        assert decoder.context == [9]

    def test_blank_and_crlf_lines_ignored(self):
        deltas, decoder = decode_all([b'\n{"response":"a"}\r\n\r\n{"response":"b"}\n'])
        assert deltas == ["a", "b"]
        assert decoder.context is None

    def test_fragment_with_text_and_context(self):
        deltas, decoder = decode_all([b'{"response":"end","context":[7],"done":true}\n'])
        assert deltas == ["end"]
        assert decoder.context == [7]


class TestDecodeFailures:
    """Malformed input ends the turn."""

    def test_malformed_line_raises(self):
        decoder = StreamDecoder()
        with pytest.raises(StreamDecodeError) as excinfo:
            list(decoder.feed(b"not json\n"))
        assert excinfo.value.line == "not json"

    def test_wrong_field_type_raises(self):
        decoder = StreamDecoder()
        with pytest.raises(StreamDecodeError):
            list(decoder.feed(b'{"context":"abc"}\n'))

    def test_fragments_before_bad_line_are_still_yielded(self):
        decoder = StreamDecoder()
        seen = []
        with pytest.raises(StreamDecodeError):
            for fragment in decoder.feed(b'{"response":"ok"}\n{broken\n'):
                seen.append(fragment.response)
        assert seen == ["ok"]

    def test_unterminated_garbage_at_end_raises(self):
        decoder = StreamDecoder()
        list(decoder.feed(b'{"response":"ok"}\n{"resp'))
        with pytest.raises(StreamDecodeError):
            decoder.finish()

    def test_backend_error_object_raises(self):
        decoder = StreamDecoder()
        with pytest.raises(BackendStreamError, match="model not found"):
            list(decoder.feed(b'{"error":"model not found"}\n'))


class TestRelayStream:
    """Publishing deltas while decoding."""

    @pytest.mark.asyncio
    async def test_publishes_each_delta_and_returns_context(self):
        published = []
        stream = MockStream([
            b'{"response":"hel"}\n',
            b'{"response":"lo"}\n{"response":"","context":[1,2,3],"done":true}\n',
        ])

        context = await relay_stream(stream, published.append)

        assert published == ["hel", "lo"]
        assert context == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_returns_none_without_context(self):
        published = []
        context = await relay_stream(MockStream([b'{"response":"hi"}\n']), published.append)

        assert published == ["hi"]
        assert context is None

    @pytest.mark.asyncio
    async def test_decode_error_keeps_earlier_deltas(self):
        published = []
        stream = MockStream([b'{"response":"par"}\n', b"garbage\n", b'{"context":[5]}\n'])

        with pytest.raises(StreamDecodeError):
            await relay_stream(stream, published.append)

        assert published == ["par"]

    @pytest.mark.asyncio
    async def test_publishes_trailing_line_on_finish(self):
        published = []
        context = await relay_stream(
            MockStream([b'{"response":"a"}\n{"response":"b","context":[2]}']),
            published.append,
        )

        assert published == ["a", "b"]
        assert context == [2]
