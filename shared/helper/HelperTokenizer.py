"""Token counting, encoding and decoding for a fixed tiktoken encoding."""

import tiktoken


class HelperTokenizer:
    """Wraps a tiktoken encoding (cl100k_base by default)."""

    def __init__(self, encoding_name: str = "cl100k_base") -> None:
        self.encoding_name = encoding_name
        self._encoding = tiktoken.get_encoding(encoding_name)

    def encode(self, text: str) -> list[int]:
        # special-token markers in rulebook text are plain text, not control tokens
        return self._encoding.encode(text, disallowed_special=())

    def decode(self, tokens: list[int]) -> str:
        return self._encoding.decode(tokens)

    def count_tokens(self, text: str) -> int:
        return len(self.encode(text))
