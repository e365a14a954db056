"""HTTP fakes and SSE builders shared by the test modules."""

from __future__ import annotations

import json
from typing import Any, List

import httpx
from requests.structures import CaseInsensitiveDict


# ============================================================
# Blocking HTTP Fakes (requests)
# ============================================================


class FakeResponse:
    """Stand-in for ``requests.Response`` with scripted body chunks."""

    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        chunks: List[bytes] = None,
        headers: dict = None,
        reason: str = "OK",
    ):
        self.status_code = status_code
        self.reason = reason
        self.headers = CaseInsensitiveDict(headers or {})
        if chunks is None:
            chunks = [json.dumps(payload).encode("utf-8")] if payload is not None else []
        self._chunks = chunks
        self.closed = False
        self.chunks_read = 0

    @property
    def content(self) -> bytes:
        return b"".join(self._chunks)

    def iter_content(self, chunk_size=None):
        for chunk in self._chunks:
            self.chunks_read += 1
            yield chunk

    def close(self) -> None:
        self.closed = True


class FakeSession:
    """Returns (or raises) scripted outcomes in order; the last one repeats."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls: List[dict] = []
        self.closed = False

    def request(self, method, url, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def close(self) -> None:
        self.closed = True


class SleepRecorder:
    """Replaces the transport's sleep hook; records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class AsyncSleepRecorder(SleepRecorder):
    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


# ============================================================
# Async HTTP Fakes (httpx)
# ============================================================


class ScriptedHandler:
    """``httpx.MockTransport`` handler replaying scripted outcomes.

    Each outcome is an ``httpx.Response``, an exception to raise, or an async
    callable taking the request. The last outcome repeats.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests: List[httpx.Request] = []

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome(request)
        return outcome


def mock_http_client(handler: ScriptedHandler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ============================================================
# SSE Builders
# ============================================================


def sse_body(*lines: str) -> bytes:
    return "".join(line + "\n" for line in lines).encode("utf-8")


async def chunked(*chunks: bytes):
    for chunk in chunks:
        yield chunk


def chunk_line(content: str) -> str:
    frame = {
        "id": "chatcmpl-1",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": None}],
    }
    return "data: " + json.dumps(frame)
