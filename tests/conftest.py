# tests/conftest.py

import logging

import httpx
import pytest

from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTokenizer import HelperTokenizer
from shared.logging.logging_setup import ColorLogger


class WordTokenizer(HelperTokenizer):
    """One token per whitespace-separated word, so token counts are easy to reason about."""

    def __init__(self) -> None:
        self.encoding_name = "words"
        self._vocab: dict[str, int] = {}
        self._words: list[str] = []

    def encode(self, text: str) -> list[int]:
        ids = []
        for word in text.split():
            if word not in self._vocab:
                self._vocab[word] = len(self._words)
                self._words.append(word)
            ids.append(self._vocab[word])
        return ids

    def decode(self, tokens: list[int]) -> str:
        return " ".join(self._words[t] for t in tokens)


def words(count: int, prefix: str = "w") -> str:
    return " ".join(f"{prefix}{i}" for i in range(count))


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=ColorLogger(logging.getLogger("rulebook_rag.tests")))


@pytest.fixture
def tokenizer() -> WordTokenizer:
    return WordTokenizer()


class RecordingTransport:
    """Collects requests and answers them with a handler, for httpx.MockTransport."""

    def __init__(self, handler):
        self.requests: list[httpx.Request] = []
        self._handler = handler

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)
