"""Chat session history tests."""

from __future__ import annotations

import json

import pytest

from tests.helpers import FakeResponse, FakeSession, chunk_line, sse_body
from usai import Client
from usai.core.errors import USAiError
from usai.core.session import ChatSession


def stream_response(*parts: str) -> FakeResponse:
    return FakeResponse(chunks=[sse_body(*(chunk_line(p) for p in parts), "data: [DONE]")])


def make_session(*outcomes, **kwargs):
    http = FakeSession(*outcomes)
    client = Client(api_key="k", base_url="https://api.usai.gov", session=http)
    return ChatSession(client, "m", **kwargs), http


class TestChatSession:
    """Turns are recorded only when the reply arrives."""

    def test_send_records_both_turns(self) -> None:
        session, http = make_session(stream_response("Hi", " there"))

        assert list(session.send("Hello")) == ["Hi", " there"]
        assert session.history == [
            {"role": "user", "content": "Hello"},
            {"role": "assistant", "content": "Hi there"},
        ]
        assert json.loads(http.calls[0]["data"])["stream"] is True

    def test_history_is_sent_on_the_next_turn(self) -> None:
        session, http = make_session(stream_response("one"), stream_response("two"))

        list(session.send("first"))
        list(session.send("second"))

        messages = json.loads(http.calls[1]["data"])["messages"]
        assert [m["content"] for m in messages] == ["first", "one", "second"]

    def test_system_prompt_survives_reset(self) -> None:
        session, _ = make_session(stream_response("ok"), system_prompt="Be brief")

        list(session.send("Hello"))
        session.reset()

        assert session.history == [{"role": "system", "content": "Be brief"}]

    def test_failed_turn_is_rolled_back(self) -> None:
        session, _ = make_session(FakeResponse(status_code=403, payload={"error": {"message": "forbidden"}}))

        with pytest.raises(USAiError):
            list(session.send("Hello"))

        assert session.history == []

    def test_abandoned_reply_is_rolled_back(self) -> None:
        response = stream_response("par", "tial")
        session, _ = make_session(response)

        reply = session.send("Hello")
        assert next(reply) == "par"
        reply.close()

        assert session.history == []
        assert response.closed

    def test_set_model_on_fresh_session(self) -> None:
        session, _ = make_session(stream_response("ok"))

        session.set_model("other")

        assert session.model == "other"
