"""Python client for the USAi API, an OpenAI-compatible government AI service."""

__version__ = "1.0.0"

from .config import ClientConfig
from .core.api import AsyncClient, Client
from .core.errors import ErrorKind, USAiError
from .core.session import ChatSession
from .core.streaming import AsyncStream, SSEDecoder, Stream, aiter_frames, iter_frames
from .core.transport import AsyncHTTPTransport, HTTPTransport, RateLimitInfo, RequestOptions
from .core.types import ChatCompletion, ChatCompletionChunk, EmbeddingResponse, ModelList

__all__ = [
    "AsyncClient",
    "AsyncHTTPTransport",
    "AsyncStream",
    "ChatCompletion",
    "ChatCompletionChunk",
    "ChatSession",
    "Client",
    "ClientConfig",
    "EmbeddingResponse",
    "ErrorKind",
    "HTTPTransport",
    "ModelList",
    "RateLimitInfo",
    "RequestOptions",
    "SSEDecoder",
    "Stream",
    "USAiError",
    "aiter_frames",
    "iter_frames",
]
