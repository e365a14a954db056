from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import httpx
import requests

from ..config import ClientConfig
from .errors import ErrorKind, USAiError, error_from_response

logger = logging.getLogger(__name__)

METHODS = frozenset({"GET", "POST", "PUT", "DELETE"})


# =============================================================================
# Request Descriptor & Rate Limit Metadata
# =============================================================================

@dataclass(frozen=True)
class RequestOptions:
    """Everything needed to issue one logical call."""

    path: str
    method: str = "GET"
    body: Any = None
    headers: Mapping[str, str] = field(default_factory=dict)
    stream: bool = False

    def __post_init__(self):
        method = self.method.upper()
        if method not in METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")
        object.__setattr__(self, "method", method)


@dataclass(frozen=True)
class RateLimitInfo:
    remaining: int
    reset: int
    limit: int


def rate_limit_info_from_headers(headers: Mapping[str, str]) -> Optional[RateLimitInfo]:
    """Read the ``X-RateLimit-*`` headers; None unless all three are usable."""
    try:
        return RateLimitInfo(
            remaining=int(headers["X-RateLimit-Remaining"]),
            reset=int(headers["X-RateLimit-Reset"]),
            limit=int(headers["X-RateLimit-Limit"]),
        )
    except (KeyError, TypeError, ValueError):
        return None


# =============================================================================
# HTTP Transport
# =============================================================================

class BaseTransport:
    """Headers, body encoding and retry policy shared by both transports."""

    def __init__(self, config: ClientConfig):
        self.config = config

    def _url(self, path: str) -> str:
        return f"{self.config.base_url}{path}"

    def _build_headers(self, extra_headers: Mapping[str, str] = None) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.config.user_agent,
        }
        if extra_headers:
            headers.update(extra_headers)
        return headers

    @staticmethod
    def _encode_body(body: Any) -> Optional[bytes]:
        if body is None:
            return None
        return json.dumps(body).encode("utf-8")

    def _backoff(self, attempt: int) -> float:
        return self.config.retry_delay * (2 ** attempt)

    def _retry_delay(self, error: USAiError, attempt: int) -> Optional[float]:
        """Seconds to wait before the next attempt, or None to raise ``error``."""
        if error.is_structural or error.kind is ErrorKind.TIMEOUT:
            return None
        if attempt >= self.config.max_retries:
            return None
        if error.kind is ErrorKind.RATE_LIMIT:
            if error.retry_after is not None and error.retry_after > 0:
                return float(error.retry_after)
            return self._backoff(attempt)
        if error.kind is ErrorKind.CONNECTION:
            return self._backoff(attempt)
        return 0.0

    def _log_retry(self, options: RequestOptions, error: USAiError, attempt: int, delay: float):
        logger.warning(
            "%s %s failed (%s), retrying in %.2fs [attempt %d/%d]",
            options.method,
            options.path,
            error,
            delay,
            attempt + 1,
            self.config.max_retries,
        )

    @staticmethod
    def _parse_success_body(status_code: int, body: bytes) -> Any:
        try:
            return json.loads(body)
        except ValueError as e:
            raise USAiError.generic(
                f"Invalid JSON in response body: {e}", status_code=status_code
            ) from e

    def get_rate_limit_info(self, response) -> Optional[RateLimitInfo]:
        return rate_limit_info_from_headers(response.headers)


class HTTPTransport(BaseTransport):
    """Blocking request engine built on a ``requests.Session``."""

    def __init__(self, config: ClientConfig, session: requests.Session = None):
        super().__init__(config)
        self._owns_session = session is None
        self._session = session or requests.Session()
        self._sleep = time.sleep

    def request(self, options: RequestOptions) -> Any:
        """Issue one logical call.

        Returns the decoded JSON body, or the open ``requests.Response`` when
        ``options.stream`` is set. Raises the last ``USAiError`` once retries
        are exhausted.
        """
        url = self._url(options.path)
        headers = self._build_headers(options.headers)
        data = self._encode_body(options.body)

        for attempt in range(self.config.max_retries + 1):
            try:
                return self._send(options, url, headers, data)
            except USAiError as error:
                delay = self._retry_delay(error, attempt)
                if delay is None:
                    raise
                self._log_retry(options, error, attempt, delay)
                if delay:
                    self._sleep(delay)

    def _send(self, options: RequestOptions, url: str, headers: dict, data: Optional[bytes]) -> Any:
        logger.debug("%s %s", options.method, url)
        try:
            response = self._session.request(
                options.method,
                url,
                headers=headers,
                data=data,
                stream=True,
                timeout=self.config.timeout,
            )
        except requests.Timeout as e:
            raise USAiError.timeout(f"Request timed out after {self.config.timeout}s") from e
        except requests.RequestException as e:
            raise USAiError.connection(f"Connection error: {e}") from e

        logger.debug("%s %s -> %s", options.method, url, response.status_code)
        if 200 <= response.status_code < 300:
            if options.stream:
                return response
            body = self._read(response)
            return self._parse_success_body(response.status_code, body)

        body = self._read(response)
        raise error_from_response(response.status_code, response.reason, body, response.headers)

    @staticmethod
    def _read(response: requests.Response) -> bytes:
        try:
            return response.content
        except requests.Timeout as e:
            raise USAiError.timeout("Timed out reading response body") from e
        except requests.RequestException as e:
            raise USAiError.connection(f"Connection error: {e}") from e
        finally:
            response.close()

    def close(self):
        if self._owns_session:
            self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()


class AsyncHTTPTransport(BaseTransport):
    """Cooperative request engine built on an ``httpx.AsyncClient``.

    The per-attempt deadline covers the wait for response headers; when it
    fires the in-flight send is cancelled. Body reads are not bounded, so a
    long-running stream is never cut off mid-way.
    """

    def __init__(self, config: ClientConfig, client: httpx.AsyncClient = None):
        super().__init__(config)
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)
        self._sleep = asyncio.sleep

    async def request(self, options: RequestOptions) -> Any:
        """Issue one logical call; see :meth:`HTTPTransport.request`."""
        url = self._url(options.path)
        headers = self._build_headers(options.headers)
        content = self._encode_body(options.body)

        for attempt in range(self.config.max_retries + 1):
            try:
                return await self._send(options, url, headers, content)
            except USAiError as error:
                delay = self._retry_delay(error, attempt)
                if delay is None:
                    raise
                self._log_retry(options, error, attempt, delay)
                if delay:
                    await self._sleep(delay)

    async def _send(self, options: RequestOptions, url: str, headers: dict, content: Optional[bytes]) -> Any:
        logger.debug("%s %s", options.method, url)
        request = self._client.build_request(options.method, url, headers=headers, content=content)
        try:
            response = await asyncio.wait_for(
                self._client.send(request, stream=True), timeout=self.config.timeout
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise USAiError.timeout(f"Request timed out after {self.config.timeout}s") from e
        except httpx.RequestError as e:
            raise USAiError.connection(f"Connection error: {e}") from e

        logger.debug("%s %s -> %s", options.method, url, response.status_code)
        if response.is_success:
            if options.stream:
                return response
            body = await self._read(response)
            return self._parse_success_body(response.status_code, body)

        body = await self._read(response)
        raise error_from_response(response.status_code, response.reason_phrase, body, response.headers)

    @staticmethod
    async def _read(response: httpx.Response) -> bytes:
        try:
            return await response.aread()
        except httpx.TimeoutException as e:
            raise USAiError.timeout("Timed out reading response body") from e
        except httpx.RequestError as e:
            raise USAiError.connection(f"Connection error: {e}") from e
        finally:
            await response.aclose()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()
