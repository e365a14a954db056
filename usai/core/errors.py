from __future__ import annotations

import json
from enum import Enum
from typing import Any, Mapping, Optional


class ErrorKind(str, Enum):
    """Discriminator for every failure the request engine can surface."""

    RATE_LIMIT = "rate_limit_error"
    AUTHENTICATION = "authentication_error"
    PERMISSION = "permission_error"
    NOT_FOUND = "not_found_error"
    CONNECTION = "connection_error"
    TIMEOUT = "timeout_error"
    GENERIC = "api_error"


# Client-side problems: retrying cannot change the outcome.
STRUCTURAL_KINDS = frozenset({ErrorKind.AUTHENTICATION, ErrorKind.PERMISSION, ErrorKind.NOT_FOUND})
# Retried with exponential backoff.
TRANSIENT_KINDS = frozenset({ErrorKind.RATE_LIMIT, ErrorKind.CONNECTION})

_STATUS_KINDS = {
    401: ErrorKind.AUTHENTICATION,
    403: ErrorKind.PERMISSION,
    404: ErrorKind.NOT_FOUND,
    429: ErrorKind.RATE_LIMIT,
}
_KIND_STATUS = {kind: status for status, kind in _STATUS_KINDS.items()}


class USAiError(Exception):
    """A classified API failure.

    One exception type for every failure; branch on ``kind`` rather than on
    subclasses. ``type`` carries the wire-level error type reported by the
    server (``invalid_request_error`` and friends) and defaults to the kind's
    value when the server gave none.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        type: str = None,
        code: str = None,
        param: str = None,
        status_code: int = None,
        retry_after: int = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.type = type or kind.value
        self.code = code
        self.param = param
        self.status_code = status_code if status_code is not None else _KIND_STATUS.get(kind)
        self.retry_after = retry_after

    def __str__(self):
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message

    def __repr__(self):
        return (
            f"USAiError(kind={self.kind.name}, message={self.message!r}, "
            f"status_code={self.status_code!r}, retry_after={self.retry_after!r})"
        )

    @property
    def is_transient(self) -> bool:
        return self.kind in TRANSIENT_KINDS

    @property
    def is_structural(self) -> bool:
        return self.kind in STRUCTURAL_KINDS

    # Named constructors, one per kind

    @classmethod
    def rate_limit(cls, message: str, retry_after: int = None) -> "USAiError":
        return cls(ErrorKind.RATE_LIMIT, message, retry_after=retry_after)

    @classmethod
    def authentication(cls, message: str) -> "USAiError":
        return cls(ErrorKind.AUTHENTICATION, message)

    @classmethod
    def permission(cls, message: str) -> "USAiError":
        return cls(ErrorKind.PERMISSION, message)

    @classmethod
    def not_found(cls, message: str) -> "USAiError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def connection(cls, message: str) -> "USAiError":
        return cls(ErrorKind.CONNECTION, message)

    @classmethod
    def timeout(cls, message: str = "Request timed out") -> "USAiError":
        return cls(ErrorKind.TIMEOUT, message)

    @classmethod
    def generic(
        cls,
        message: str,
        type: str = None,
        code: str = None,
        param: str = None,
        status_code: int = None,
    ) -> "USAiError":
        return cls(
            ErrorKind.GENERIC, message, type=type, code=code, param=param, status_code=status_code
        )


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Read a ``Retry-After`` header given in whole positive seconds."""
    if value is None:
        return None
    try:
        seconds = int(value.strip())
    except ValueError:
        return None
    return seconds if seconds > 0 else None


def _parse_error_body(body: bytes) -> Optional[dict]:
    try:
        payload = json.loads(body)
    except (ValueError, TypeError):
        return None
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if not isinstance(error, dict) or not isinstance(error.get("message"), str):
        return None
    return error


def error_from_response(
    status_code: int,
    reason: str,
    body: bytes,
    headers: Mapping[str, Any],
) -> USAiError:
    """Map a non-2xx response to a classified error.

    The body is expected to look like
    ``{"error": {"message", "type", "code"?, "param"?}}``; anything else
    falls back to a message built from the status line.
    """
    error = _parse_error_body(body)
    if error is None:
        error = {"message": f"HTTP {status_code}: {reason or ''}".rstrip(), "type": "api_error"}

    message = error["message"]
    kind = _STATUS_KINDS.get(status_code, ErrorKind.GENERIC)

    if kind is ErrorKind.RATE_LIMIT:
        return USAiError.rate_limit(message, parse_retry_after(headers.get("Retry-After")))
    if kind is ErrorKind.GENERIC:
        return USAiError.generic(
            message,
            type=error.get("type"),
            code=error.get("code"),
            param=error.get("param"),
            status_code=status_code,
        )
    return USAiError(kind, message)
