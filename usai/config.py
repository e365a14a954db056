import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from . import __version__

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY_MS = 1000

ENV_API_KEY = "USAI_API_KEY"
ENV_BASE_URL = "USAI_BASE_URL"
ENV_TIMEOUT_MS = "USAI_TIMEOUT_MS"
ENV_MAX_RETRIES = "USAI_MAX_RETRIES"
ENV_RETRY_DELAY_MS = "USAI_RETRY_DELAY_MS"


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings shared by every request a client issues.

    Validated once at construction; never re-checked afterwards.
    """

    api_key: str
    base_url: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = DEFAULT_RETRY_DELAY_MS
    user_agent: str = field(default=f"usai-api-python/{__version__}")

    def __post_init__(self):
        if not self.api_key:
            raise ValueError("API key is required")
        if not self.base_url:
            raise ValueError("Base URL is required")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must not be negative, got {self.max_retries}")
        if self.retry_delay_ms < 0:
            raise ValueError(f"retry_delay_ms must not be negative, got {self.retry_delay_ms}")
        # frozen: bypass __setattr__ to normalise the URL
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @property
    def timeout(self) -> float:
        """Per-attempt timeout in seconds."""
        return self.timeout_ms / 1000.0

    @property
    def retry_delay(self) -> float:
        return self.retry_delay_ms / 1000.0

    @classmethod
    def from_env(cls, env_file: Optional[str] = None, **overrides) -> "ClientConfig":
        """Build a config from ``USAI_*`` environment variables.

        A ``.env`` file (``env_file`` or the nearest one found) is loaded first
        without overriding variables already set. Keyword overrides that are
        not None take precedence over the environment.
        """
        load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

        values = {
            "api_key": os.environ.get(ENV_API_KEY, ""),
            "base_url": os.environ.get(ENV_BASE_URL, ""),
            "timeout_ms": _int_env(ENV_TIMEOUT_MS, DEFAULT_TIMEOUT_MS),
            "max_retries": _int_env(ENV_MAX_RETRIES, DEFAULT_MAX_RETRIES),
            "retry_delay_ms": _int_env(ENV_RETRY_DELAY_MS, DEFAULT_RETRY_DELAY_MS),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
