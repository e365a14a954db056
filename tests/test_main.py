"""Command-line entry point tests."""

from __future__ import annotations

import json

import pytest

from tests.helpers import FakeResponse, FakeSession, chunk_line, sse_body
from usai import main as cli
from usai.core.api import Client

BASE_ARGS = ["--api-key", "k", "--base-url", "https://api.usai.gov"]


@pytest.fixture
def http(monkeypatch: pytest.MonkeyPatch):
    """Route every client the CLI builds through one scripted session."""
    session = FakeSession(FakeResponse(payload={}))

    def client_factory(config):
        client = Client(config=config, session=session)
        client._transport._sleep = lambda seconds: None
        return client

    monkeypatch.setattr(cli, "Client", client_factory)
    return session


class TestParser:
    def test_requires_a_command(self) -> None:
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_chat_arguments(self) -> None:
        args = cli.build_parser().parse_args(["chat", "m", "hi", "--temperature", "0.5", "--stream"])

        assert (args.model, args.prompt, args.temperature, args.stream) == ("m", "hi", 0.5, True)


class TestMain:
    """Exit codes and rendered output."""

    def test_models(self, http: FakeSession, models_payload: dict, capsys) -> None:
        http.outcomes = [FakeResponse(payload=models_payload)]

        assert cli.main(BASE_ARGS + ["models"]) == 0
        assert "llama-3-70b" in capsys.readouterr().out

    def test_chat(self, http: FakeSession, completion_payload: dict, capsys) -> None:
        http.outcomes = [FakeResponse(payload=completion_payload)]

        assert cli.main(BASE_ARGS + ["chat", "m", "Hi", "--system", "Be brief", "--max-tokens", "20"]) == 0

        body = json.loads(http.calls[0]["data"])
        assert body["max_tokens"] == 20
        assert body["messages"][0] == {"role": "system", "content": "Be brief"}
        assert "Hello there" in capsys.readouterr().out

    def test_embed_multiple_texts(self, http: FakeSession, embedding_payload: dict) -> None:
        http.outcomes = [FakeResponse(payload=embedding_payload)]

        assert cli.main(BASE_ARGS + ["embed", "e", "one", "two", "--input-type", "search_query"]) == 0
        assert json.loads(http.calls[0]["data"])["input"] == ["one", "two"]

    def test_missing_api_key_is_a_config_error(self, http: FakeSession, capsys) -> None:
        assert cli.main(["--base-url", "https://api.usai.gov", "models"]) == cli.EXIT_CONFIG_ERROR
        assert "API key is required" in capsys.readouterr().out
        assert http.calls == []

    def test_api_error_exit_code(self, http: FakeSession, capsys) -> None:
        http.outcomes = [FakeResponse(status_code=401, payload={"error": {"message": "bad key"}})]

        assert cli.main(BASE_ARGS + ["models"]) == cli.EXIT_API_ERROR
        assert "bad key" in capsys.readouterr().out

    def test_missing_document_is_a_config_error(self, http: FakeSession, tmp_path) -> None:
        assert cli.main(BASE_ARGS + ["document", "m", str(tmp_path / "none.pdf"), "Summarise"]) == cli.EXIT_CONFIG_ERROR
        assert http.calls == []


class ScriptedUI(cli.UI):
    """UI whose prompt replays canned lines."""

    def __init__(self, *lines):
        super().__init__()
        self.lines = list(lines)
        self.replies = []

    def get_input(self, label: str = "YOU") -> str:
        return self.lines.pop(0) if self.lines else "/exit"

    def stream_markdown(self, title: str, content_generator) -> str:
        reply = "".join(content_generator)
        self.replies.append((title, reply))
        return reply


class TestRepl:
    """Interactive loop commands."""

    def test_model_switch_reset_and_chat(self, http: FakeSession) -> None:
        http.outcomes = [FakeResponse(chunks=[sse_body(chunk_line("hey"), "data: [DONE]")])]
        client = cli.Client(config=cli.ClientConfig(api_key="k", base_url="https://api.usai.gov"))
        session = cli.ChatSession(client, "m1", system_prompt="Be brief")
        ui = ScriptedUI("/model m2", "hello", "/reset", "/exit")

        cli.run_repl(ui, session)

        assert ui.replies == [("m2", "hey")]
        assert json.loads(http.calls[0]["data"])["model"] == "m2"
        assert session.history == [{"role": "system", "content": "Be brief"}]

    def test_api_error_keeps_the_loop_running(self, http: FakeSession) -> None:
        http.outcomes = [FakeResponse(status_code=404, payload={"error": {"message": "no such model"}})]
        client = cli.Client(config=cli.ClientConfig(api_key="k", base_url="https://api.usai.gov"))
        ui = ScriptedUI("hello", "again")

        cli.run_repl(ui, cli.ChatSession(client, "m"))

        assert len(http.calls) == 2


class InterruptingUI(ScriptedUI):
    """Raises Ctrl-C after the first streamed chunk of the first reply."""

    def stream_markdown(self, title: str, content_generator) -> str:
        if not self.replies:
            self.replies.append((title, next(content_generator)))
            raise KeyboardInterrupt
        return super().stream_markdown(title, content_generator)


class TestReplInterrupt:
    def test_ctrl_c_mid_reply_rolls_back_and_continues(self, http: FakeSession) -> None:
        http.outcomes = [FakeResponse(chunks=[sse_body(chunk_line("a"), chunk_line("b"), "data: [DONE]")])]
        client = cli.Client(config=cli.ClientConfig(api_key="k", base_url="https://api.usai.gov"))
        session = cli.ChatSession(client, "m")
        ui = InterruptingUI("first", "second")

        cli.run_repl(ui, session)

        assert ui.replies == [("m", "a"), ("m", "ab")]
        assert [turn["content"] for turn in session.history] == ["second", "ab"]
