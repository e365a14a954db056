from __future__ import annotations

import copy
import json
from typing import Any, List


def _wrap(value: Any) -> Any:
    if isinstance(value, dict):
        return APIObject(value)
    if isinstance(value, list):
        return [_wrap(item) for item in value]
    return value


class APIObject:
    """Read-only attribute view over a decoded JSON object.

    ``resp.choices[0].message.content`` and ``resp["choices"]`` both work;
    unknown attributes read as None so optional wire fields need no guards.
    """

    __slots__ = ("_data",)

    def __init__(self, data: dict = None):
        object.__setattr__(self, "_data", data if data is not None else {})

    @classmethod
    def construct(cls, data: dict) -> "APIObject":
        return cls(data)

    def __getattr__(self, key):
        if key.startswith("__"):
            raise AttributeError(key)
        return _wrap(self._data.get(key))

    def __setattr__(self, key, value):
        raise AttributeError(f"{type(self).__name__} is read-only")

    def __getitem__(self, key):
        return _wrap(self._data[key])

    def __contains__(self, key):
        return key in self._data

    def get(self, key, default=None):
        if key not in self._data:
            return default
        return _wrap(self._data[key])

    def to_dict(self) -> dict:
        return copy.deepcopy(self._data)

    def to_json(self, indent: int = None) -> str:
        return json.dumps(self._data, indent=indent)

    def __eq__(self, other):
        if isinstance(other, APIObject):
            return self._data == other._data
        if isinstance(other, dict):
            return self._data == other
        return NotImplemented

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in self._data.items() if v is not None)
        return f"{self.__class__.__name__}({fields})"


class Model(APIObject):
    """One entry of the model listing."""


class ModelList(APIObject):
    @property
    def data(self) -> List[Model]:
        return [Model(m) for m in self._data.get("data") or []]

    @property
    def ids(self) -> List[str]:
        return [m.get("id") for m in self._data.get("data") or []]


class ChatCompletion(APIObject):
    @property
    def text(self) -> str:
        """Content of the first choice, or "" when absent or not plain text."""
        choices = self._data.get("choices") or []
        if not choices:
            return ""
        content = (choices[0].get("message") or {}).get("content")
        return content if isinstance(content, str) else ""


class ChatCompletionChunk(APIObject):
    @property
    def delta_text(self) -> str:
        choices = self._data.get("choices") or []
        if not choices:
            return ""
        return (choices[0].get("delta") or {}).get("content") or ""


class EmbeddingResponse(APIObject):
    @property
    def embeddings(self) -> List[List[float]]:
        return [item.get("embedding") or [] for item in self._data.get("data") or []]
