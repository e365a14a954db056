"""
Client library for the USAi OpenAI-compatible REST API.

Usage:
    from usai import Client

    client = Client(api_key="...", base_url="https://api.usai.gov")
    response = client.chat.completions.create(
        model="claude-3-5-haiku",
        messages=[{"role": "user", "content": "Hello!"}],
    )
    print(response.text)

    with client.chat.completions.create_stream(model=..., messages=...) as stream:
        for chunk in stream:
            print(chunk.delta_text, end="")

``AsyncClient`` exposes the same surface with coroutines.
"""

from __future__ import annotations

import os
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional, Union

import httpx
import requests

from ..config import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY_MS, DEFAULT_TIMEOUT_MS, ClientConfig
from ..utils import encoding
from .streaming import AsyncStream, Stream
from .transport import AsyncHTTPTransport, HTTPTransport, RequestOptions
from .types import ChatCompletion, ChatCompletionChunk, EmbeddingResponse, ModelList

MODELS_PATH = "/api/v1/models"
CHAT_COMPLETIONS_PATH = "/api/v1/chat/completions"
EMBEDDINGS_PATH = "/api/v1/embeddings"

STREAM_WITH_CREATE_MESSAGE = "Use create_stream for streaming responses"


# =============================================================================
# Request Builders
# =============================================================================

def _drop_none(params: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}


def _chat_request(
    model: str,
    messages: List[dict],
    stream: bool,
    extra_body: dict = None,
    extra_headers: dict = None,
    **params,
) -> RequestOptions:
    body = {"model": model, "messages": messages}
    body.update(_drop_none(params))
    if extra_body:
        body.update(extra_body)
    if stream:
        body["stream"] = True
    return RequestOptions(
        path=CHAT_COMPLETIONS_PATH,
        method="POST",
        body=body,
        headers=extra_headers or {},
        stream=stream,
    )


def _embedding_request(model: str, input: Union[str, List[str]], extra_headers: dict = None, **params) -> RequestOptions:
    body = {"model": model, "input": input}
    body.update(_drop_none(params))
    return RequestOptions(path=EMBEDDINGS_PATH, method="POST", body=body, headers=extra_headers or {})


def _with_system(system_prompt: Optional[str], user_message: dict) -> List[dict]:
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append(user_message)
    return messages


def _prompt_messages(prompt: str, system_prompt: str = None) -> List[dict]:
    return _with_system(system_prompt, {"role": "user", "content": prompt})


def _document_messages(prompt: str, path: str, file_name: str = None, system_prompt: str = None) -> List[dict]:
    return _with_system(system_prompt, {
        "role": "user",
        "content": [
            {"type": "text", "text": prompt},
            {
                "type": "file",
                "file_name": file_name or os.path.basename(path) or "document",
                "file": {"file_data": encoding.encode_file_as_data_uri(path)},
            },
        ],
    })


def _image_messages(prompt: str, path: str, detail: str = "auto", system_prompt: str = None) -> List[dict]:
    return _with_system(system_prompt, {
        "role": "user",
        "content": [
            {"type": "text", "text": prompt},
            {
                "type": "image_url",
                "image_url": {"url": encoding.encode_image_as_data_uri(path), "detail": detail or "auto"},
            },
        ],
    })


def _build_config(config, api_key, base_url, timeout_ms, max_retries, retry_delay_ms) -> ClientConfig:
    if config is not None:
        return config
    return ClientConfig(
        api_key=api_key or "",
        base_url=base_url or "",
        timeout_ms=timeout_ms,
        max_retries=max_retries,
        retry_delay_ms=retry_delay_ms,
    )


# =============================================================================
# Resource Classes (Namespace Emulation)
# =============================================================================

class Completions:
    """chat.completions resource."""

    def __init__(self, transport: HTTPTransport):
        self._transport = transport

    def create(
        self,
        *,
        model: str,
        messages: List[dict],
        temperature: float = None,
        top_p: float = None,
        max_tokens: int = None,
        stop: Union[str, List[str]] = None,
        presence_penalty: float = None,
        frequency_penalty: float = None,
        logit_bias: Dict[str, float] = None,
        user: str = None,
        stream: bool = False,
        extra_body: dict = None,
        extra_headers: dict = None,
    ) -> ChatCompletion:
        """Create a chat completion. Streaming goes through :meth:`create_stream`."""
        if stream:
            raise ValueError(STREAM_WITH_CREATE_MESSAGE)
        options = _chat_request(
            model, messages, False, extra_body, extra_headers,
            temperature=temperature, top_p=top_p, max_tokens=max_tokens, stop=stop,
            presence_penalty=presence_penalty, frequency_penalty=frequency_penalty,
            logit_bias=logit_bias, user=user,
        )
        return ChatCompletion(self._transport.request(options))

    def create_stream(self, *, model: str, messages: List[dict], extra_body: dict = None,
                      extra_headers: dict = None, **params) -> Stream:
        """Create a streaming chat completion; accepts the sampling options of ``create``."""
        options = _chat_request(model, messages, True, extra_body, extra_headers, **params)
        response = self._transport.request(options)
        return Stream(response, cast=ChatCompletionChunk)


class Chat:
    """chat resource namespace."""

    def __init__(self, transport: HTTPTransport):
        self.completions = Completions(transport)


class Embeddings:
    def __init__(self, transport: HTTPTransport):
        self._transport = transport

    def create(
        self,
        *,
        model: str,
        input: Union[str, List[str]],
        user: str = None,
        input_type: str = None,
        encoding_format: str = None,
        truncate: str = None,
        extra_headers: dict = None,
    ) -> EmbeddingResponse:
        options = _embedding_request(
            model, input, extra_headers,
            user=user, input_type=input_type, encoding_format=encoding_format, truncate=truncate,
        )
        return EmbeddingResponse(self._transport.request(options))


class Models:
    def __init__(self, transport: HTTPTransport):
        self._transport = transport

    def list(self) -> ModelList:
        """List available models."""
        return ModelList(self._transport.request(RequestOptions(path=MODELS_PATH)))


# =============================================================================
# Main Client
# =============================================================================

class Client:
    """
    Blocking API client.

    Construction validates the configuration and fails fast when the API key
    or base URL is missing; no request is made until a resource is used.
    """

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        config: ClientConfig = None,
        session: requests.Session = None,
    ):
        self.config = _build_config(config, api_key, base_url, timeout_ms, max_retries, retry_delay_ms)
        self._transport = HTTPTransport(self.config, session=session)

        self.chat = Chat(self._transport)
        self.embeddings = Embeddings(self._transport)
        self.models = Models(self._transport)

    @classmethod
    def from_env(cls, env_file: str = None, session: requests.Session = None, **overrides) -> "Client":
        return cls(config=ClientConfig.from_env(env_file, **overrides), session=session)

    encode_image_as_data_uri = staticmethod(encoding.encode_image_as_data_uri)
    encode_pdf_as_data_uri = staticmethod(encoding.encode_pdf_as_data_uri)
    encode_file_as_data_uri = staticmethod(encoding.encode_file_as_data_uri)

    def get_rate_limit_info(self, response):
        return self._transport.get_rate_limit_info(response)

    def complete(
        self,
        model: str,
        prompt: str,
        *,
        system_prompt: str = None,
        temperature: float = None,
        max_tokens: int = None,
        top_p: float = None,
    ) -> str:
        """One-shot completion returning just the text."""
        response = self.chat.completions.create(
            model=model,
            messages=_prompt_messages(prompt, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
        )
        return response.text

    def complete_stream(
        self,
        model: str,
        prompt: str,
        *,
        system_prompt: str = None,
        temperature: float = None,
        max_tokens: int = None,
        top_p: float = None,
    ) -> Iterator[str]:
        """Streaming one-shot completion yielding each non-empty content delta."""
        stream = self.chat.completions.create_stream(
            model=model,
            messages=_prompt_messages(prompt, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
        )
        with stream:
            for chunk in stream:
                text = chunk.delta_text
                if text:
                    yield text

    def analyze_document(
        self,
        model: str,
        document_path: str,
        prompt: str,
        *,
        system_prompt: str = None,
        file_name: str = None,
        temperature: float = None,
        max_tokens: int = None,
    ) -> str:
        response = self.chat.completions.create(
            model=model,
            messages=_document_messages(prompt, document_path, file_name, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.text

    def analyze_image(
        self,
        model: str,
        image_path: str,
        prompt: str,
        *,
        system_prompt: str = None,
        detail: str = "auto",
        temperature: float = None,
        max_tokens: int = None,
    ) -> str:
        response = self.chat.completions.create(
            model=model,
            messages=_image_messages(prompt, image_path, detail, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.text

    def __repr__(self):
        return f"Client(base_url={self.config.base_url!r}, api_key='***')"

    def close(self):
        self._transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


# =============================================================================
# Async Support
# =============================================================================

class AsyncCompletions:
    def __init__(self, transport: AsyncHTTPTransport):
        self._transport = transport

    async def create(
        self,
        *,
        model: str,
        messages: List[dict],
        temperature: float = None,
        top_p: float = None,
        max_tokens: int = None,
        stop: Union[str, List[str]] = None,
        presence_penalty: float = None,
        frequency_penalty: float = None,
        logit_bias: Dict[str, float] = None,
        user: str = None,
        stream: bool = False,
        extra_body: dict = None,
        extra_headers: dict = None,
    ) -> ChatCompletion:
        if stream:
            raise ValueError(STREAM_WITH_CREATE_MESSAGE)
        options = _chat_request(
            model, messages, False, extra_body, extra_headers,
            temperature=temperature, top_p=top_p, max_tokens=max_tokens, stop=stop,
            presence_penalty=presence_penalty, frequency_penalty=frequency_penalty,
            logit_bias=logit_bias, user=user,
        )
        return ChatCompletion(await self._transport.request(options))

    async def create_stream(self, *, model: str, messages: List[dict], extra_body: dict = None,
                            extra_headers: dict = None, **params) -> AsyncStream:
        options = _chat_request(model, messages, True, extra_body, extra_headers, **params)
        response = await self._transport.request(options)
        return AsyncStream(response, cast=ChatCompletionChunk)


class AsyncChat:
    def __init__(self, transport: AsyncHTTPTransport):
        self.completions = AsyncCompletions(transport)


class AsyncEmbeddings:
    def __init__(self, transport: AsyncHTTPTransport):
        self._transport = transport

    async def create(
        self,
        *,
        model: str,
        input: Union[str, List[str]],
        user: str = None,
        input_type: str = None,
        encoding_format: str = None,
        truncate: str = None,
        extra_headers: dict = None,
    ) -> EmbeddingResponse:
        options = _embedding_request(
            model, input, extra_headers,
            user=user, input_type=input_type, encoding_format=encoding_format, truncate=truncate,
        )
        return EmbeddingResponse(await self._transport.request(options))


class AsyncModels:
    def __init__(self, transport: AsyncHTTPTransport):
        self._transport = transport

    async def list(self) -> ModelList:
        return ModelList(await self._transport.request(RequestOptions(path=MODELS_PATH)))


class AsyncClient:
    """Cooperative counterpart of :class:`Client`.

    One instance may serve many concurrent calls; each call owns its own
    response and decode state.
    """

    def __init__(
        self,
        api_key: str = None,
        base_url: str = None,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS,
        config: ClientConfig = None,
        http_client: httpx.AsyncClient = None,
    ):
        self.config = _build_config(config, api_key, base_url, timeout_ms, max_retries, retry_delay_ms)
        self._transport = AsyncHTTPTransport(self.config, client=http_client)

        self.chat = AsyncChat(self._transport)
        self.embeddings = AsyncEmbeddings(self._transport)
        self.models = AsyncModels(self._transport)

    @classmethod
    def from_env(cls, env_file: str = None, http_client: httpx.AsyncClient = None, **overrides) -> "AsyncClient":
        return cls(config=ClientConfig.from_env(env_file, **overrides), http_client=http_client)

    encode_image_as_data_uri = staticmethod(encoding.encode_image_as_data_uri)
    encode_pdf_as_data_uri = staticmethod(encoding.encode_pdf_as_data_uri)
    encode_file_as_data_uri = staticmethod(encoding.encode_file_as_data_uri)

    def get_rate_limit_info(self, response):
        return self._transport.get_rate_limit_info(response)

    async def complete(
        self,
        model: str,
        prompt: str,
        *,
        system_prompt: str = None,
        temperature: float = None,
        max_tokens: int = None,
        top_p: float = None,
    ) -> str:
        response = await self.chat.completions.create(
            model=model,
            messages=_prompt_messages(prompt, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
        )
        return response.text

    async def complete_stream(
        self,
        model: str,
        prompt: str,
        *,
        system_prompt: str = None,
        temperature: float = None,
        max_tokens: int = None,
        top_p: float = None,
    ) -> AsyncIterator[str]:
        stream = await self.chat.completions.create_stream(
            model=model,
            messages=_prompt_messages(prompt, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
            top_p=top_p,
        )
        async with stream:
            async for chunk in stream:
                text = chunk.delta_text
                if text:
                    yield text

    async def analyze_document(
        self,
        model: str,
        document_path: str,
        prompt: str,
        *,
        system_prompt: str = None,
        file_name: str = None,
        temperature: float = None,
        max_tokens: int = None,
    ) -> str:
        response = await self.chat.completions.create(
            model=model,
            messages=_document_messages(prompt, document_path, file_name, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.text

    async def analyze_image(
        self,
        model: str,
        image_path: str,
        prompt: str,
        *,
        system_prompt: str = None,
        detail: str = "auto",
        temperature: float = None,
        max_tokens: int = None,
    ) -> str:
        response = await self.chat.completions.create(
            model=model,
            messages=_image_messages(prompt, image_path, detail, system_prompt),
            temperature=temperature,
            max_tokens=max_tokens,
        )
        return response.text

    def __repr__(self):
        return f"AsyncClient(base_url={self.config.base_url!r}, api_key='***')"

    async def aclose(self):
        await self._transport.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
