"""Shared fixtures."""

from __future__ import annotations

import pytest

from usai.config import ClientConfig


# ============================================================
# Configuration Fixtures
# ============================================================


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(api_key="test-key", base_url="https://api.usai.gov")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep real USAI_* variables and .env files out of the tests."""
    for name in ("USAI_API_KEY", "USAI_BASE_URL", "USAI_TIMEOUT_MS", "USAI_MAX_RETRIES", "USAI_RETRY_DELAY_MS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


# ============================================================
# Payload Fixtures
# ============================================================


@pytest.fixture
def completion_payload() -> dict:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "claude-3-5-haiku",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": "Hello there"},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    }


@pytest.fixture
def models_payload() -> dict:
    return {
        "object": "list",
        "data": [
            {"id": "claude-3-5-haiku", "object": "model", "created": 1, "owned_by": "anthropic"},
            {"id": "llama-3-70b", "object": "model", "created": 2, "owned_by": "meta"},
        ],
    }


@pytest.fixture
def embedding_payload() -> dict:
    return {
        "object": "list",
        "data": [
            {"object": "embedding", "embedding": [0.1, 0.2, 0.3], "index": 0},
            {"object": "embedding", "embedding": [0.4, 0.5, 0.6], "index": 1},
        ],
        "model": "cohere-english-v3",
        "usage": {"prompt_tokens": 4, "total_tokens": 4},
    }

