from __future__ import annotations

import codecs
import json
import logging
from typing import (
    Any,
    AsyncIterable,
    AsyncIterator,
    Callable,
    Iterable,
    Iterator,
    List,
    Optional,
    Union,
)

import httpx
import requests

from .errors import USAiError
from .transport import RateLimitInfo, rate_limit_info_from_headers

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "data: [DONE]"

_SKIP = object()


# =============================================================================
# Decoder
# =============================================================================

class SSEDecoder:
    """Incremental decoder for one ``data: <json>`` event stream.

    Feed it network chunks in arrival order; it returns the frames whose
    terminating newline has been seen. Chunk boundaries may fall anywhere,
    including inside a multi-byte UTF-8 sequence. Once the ``data: [DONE]``
    sentinel is read, ``finished`` is set and every later byte is ignored.
    """

    def __init__(self):
        self._buffer = ""
        self._text = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self.finished = False

    def feed(self, chunk: Union[bytes, str]) -> List[Any]:
        if self.finished:
            return []

        if isinstance(chunk, str):
            self._buffer += chunk
        else:
            self._buffer += self._text.decode(chunk)

        *lines, self._buffer = self._buffer.split("\n")

        frames = []
        for line in lines:
            frame = self._decode_line(line)
            if self.finished:
                break
            if frame is not _SKIP:
                frames.append(frame)
        return frames

    def close(self):
        """Drop any incomplete trailing line."""
        self._buffer = ""
        self._text.reset()

    def _decode_line(self, line: str) -> Any:
        line = line.strip()
        if not line:
            return _SKIP
        if line == DONE_SENTINEL:
            self.finished = True
            self._buffer = ""
            return _SKIP
        if not line.startswith(DATA_PREFIX):
            return _SKIP
        try:
            return json.loads(line[len(DATA_PREFIX):])
        except ValueError as e:
            logger.warning("Skipping malformed stream frame %r: %s", line, e)
            return _SKIP


def iter_frames(chunks: Iterable[Union[bytes, str]]) -> Iterator[Any]:
    """Decode a byte-chunk iterable into frames."""
    decoder = SSEDecoder()
    try:
        for chunk in chunks:
            yield from decoder.feed(chunk)
            if decoder.finished:
                return
    finally:
        decoder.close()


async def aiter_frames(chunks: AsyncIterable[Union[bytes, str]]) -> AsyncIterator[Any]:
    """Async counterpart of :func:`iter_frames`."""
    decoder = SSEDecoder()
    try:
        async for chunk in chunks:
            for frame in decoder.feed(chunk):
                yield frame
            if decoder.finished:
                return
    finally:
        decoder.close()


# =============================================================================
# Stream Wrappers
# =============================================================================

def _cast_frame(cast: Optional[Callable[[dict], Any]], frame: Any) -> Any:
    if cast is not None and isinstance(frame, dict):
        return cast(frame)
    return frame


class Stream:
    """Forward-only iterator over the frames of one blocking response.

    The response is released when the frames run out, when the sentinel is
    read, on error, or on ``close()``. Use it as a context manager to stop
    early without leaking the connection::

        with client.chat.completions.create_stream(...) as stream:
            for chunk in stream:
                ...
    """

    def __init__(self, response, cast: Callable[[dict], Any] = None):
        self.response = response
        self._cast = cast
        self._iterator = self._stream()

    def __iter__(self) -> Iterator[Any]:
        return self

    def __next__(self) -> Any:
        return next(self._iterator)

    def _stream(self) -> Iterator[Any]:
        try:
            for frame in iter_frames(self.response.iter_content(chunk_size=None)):
                yield _cast_frame(self._cast, frame)
        except requests.RequestException as e:
            raise USAiError.connection(f"Connection lost mid-stream: {e}") from e
        finally:
            self.response.close()

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]:
        return rate_limit_info_from_headers(self.response.headers)

    def close(self):
        """Stop iterating and release the underlying connection."""
        self._iterator.close()
        self.response.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class AsyncStream:
    """Async counterpart of :class:`Stream` over an ``httpx.Response``."""

    def __init__(self, response, cast: Callable[[dict], Any] = None):
        self.response = response
        self._cast = cast
        self._iterator = self._stream()

    def __aiter__(self) -> AsyncIterator[Any]:
        return self

    async def __anext__(self) -> Any:
        return await self._iterator.__anext__()

    async def _stream(self) -> AsyncIterator[Any]:
        try:
            async for frame in aiter_frames(self.response.aiter_bytes()):
                yield _cast_frame(self._cast, frame)
        except httpx.RequestError as e:
            raise USAiError.connection(f"Connection lost mid-stream: {e}") from e
        finally:
            await self.response.aclose()

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]:
        return rate_limit_info_from_headers(self.response.headers)

    async def aclose(self):
        """Stop iterating and release the underlying connection."""
        await self._iterator.aclose()
        await self.response.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
