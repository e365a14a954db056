"""Response object tests."""

from __future__ import annotations

import pytest

from usai.core.types import APIObject, ChatCompletion, ChatCompletionChunk, EmbeddingResponse, ModelList


class TestAPIObject:
    """Attribute access over decoded JSON."""

    def test_nested_attribute_access(self, completion_payload: dict) -> None:
        obj = APIObject(completion_payload)

        assert obj.choices[0].message.content == "Hello there"
        assert obj["usage"]["total_tokens"] == 5
        assert obj.missing is None
        assert "model" in obj
        assert obj.get("nope", 1) == 1

    def test_is_read_only(self) -> None:
        with pytest.raises(AttributeError):
            APIObject({"a": 1}).a = 2

    def test_to_dict_is_a_copy(self) -> None:
        data = {"a": {"b": 1}}
        copied = APIObject(data).to_dict()
        copied["a"]["b"] = 2

        assert data["a"]["b"] == 1

    def test_equality_with_dict(self) -> None:
        assert APIObject({"a": 1}) == {"a": 1}
        assert APIObject({"a": 1}) == APIObject({"a": 1})


class TestTypedResponses:
    def test_completion_text_ignores_structured_content(self) -> None:
        response = ChatCompletion({"choices": [{"message": {"content": [{"type": "text", "text": "x"}]}}]})

        assert response.text == ""

    def test_chunk_without_delta_content(self) -> None:
        assert ChatCompletionChunk({"choices": [{"delta": {"role": "assistant"}}]}).delta_text == ""
        assert ChatCompletionChunk({"choices": []}).delta_text == ""

    def test_model_list(self, models_payload: dict) -> None:
        models = ModelList(models_payload)

        assert [m.id for m in models.data] == models.ids

    def test_embeddings(self, embedding_payload: dict) -> None:
        assert EmbeddingResponse(embedding_payload).embeddings[1] == [0.4, 0.5, 0.6]
