"""Incremental decoder for the Ollama generate stream.

The body is newline-delimited JSON. Chunks read off the socket do not
respect line boundaries: one chunk may hold several objects and an object
(or a multi-byte character) may be split across chunks. Incomplete trailing
lines are kept in a buffer until the rest arrives.

Each object carries a ``response`` text delta and, on the final one, the
``context`` to send back with the next prompt.
"""

import codecs
import logging
from typing import Callable, Iterable, Iterator, Optional

from pydantic import ValidationError

from .backend import GenerationStream
from .errors import BackendStreamError, StreamDecodeError
from .models import GenerateChunk

logger = logging.getLogger(__name__)


class StreamDecoder:
    """Turns raw body chunks into ``GenerateChunk`` objects.

    Attributes:
        context: Last context seen in the stream, None until one arrives
    """

    def __init__(self):
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._parts: list[str] = []
        self.context: Optional[list[int]] = None
        self.done = False

    @property
    def text(self) -> str:
        """All text decoded so far."""
        return "".join(self._parts)

    def feed(self, chunk: bytes) -> Iterator[GenerateChunk]:
        """Add a chunk and return an iterator over the complete lines in it.

        Parsing is lazy: a bad line raises when the iterator reaches it, so
        fragments before it can still be consumed.
        """
        self._buffer += self._utf8.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def finish(self) -> list[GenerateChunk]:
        """Flush at end of stream; parses a final line with no newline."""
        self._buffer += self._utf8.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return list(self._parse_lines([remainder]))

    def _parse_lines(self, lines: Iterable[str]) -> Iterator[GenerateChunk]:
        for line in lines:
            fragment = self._parse_line(line)
            if fragment is not None:
                yield fragment

    def _parse_line(self, line: str) -> Optional[GenerateChunk]:
        line = line.strip()
        if not line:
            return None

        try:
            fragment = GenerateChunk.model_validate_json(line)
        except ValidationError as e:
            raise StreamDecodeError(
                f"Malformed fragment in generate stream: {e.error_count()} error(s)",
                line=line,
            ) from e

        if fragment.error:
            raise BackendStreamError(fragment.error)

        self._parts.append(fragment.response)
        if fragment.context is not None:
            self.context = fragment.context
        if fragment.done:
            self.done = True
        return fragment


async def relay_stream(
    stream: GenerationStream,
    publish: Callable[[str], object],
) -> Optional[list[int]]:
    """Publish every text delta of ``stream`` as it arrives.

    Returns:
        The context from the end of the stream, or None if none was sent

    Raises:
        StreamDecodeError, BackendStreamError: the turn is over; deltas
        already published stay published
    """
    decoder = StreamDecoder()
    deltas = 0

    async for chunk in stream.chunks():
        for fragment in decoder.feed(chunk):
            if fragment.response:
                publish(fragment.response)
                deltas += 1

    for fragment in decoder.finish():
        if fragment.response:
            publish(fragment.response)
            deltas += 1

    summary = "none" if decoder.context is None else f"{len(decoder.context)} tokens"
    logger.debug(f"Stream complete: {deltas} deltas, {len(decoder.text)} chars, context={summary}")
    return decoder.context
