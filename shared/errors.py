"""Exception types raised by the ingestion and retrieval core."""


class RAGBridgeError(Exception):
    """Base class for all errors raised by the rulebook RAG bridge."""


class ExtractionError(RAGBridgeError):
    """Raised when no pages could be extracted from a source document."""


class TokenBudgetError(RAGBridgeError):
    """Raised when a chunk exceeds the embedding provider's hard token ceiling.

    Attributes:
        chunk_index: Document-wide index of the offending chunk.
        token_count: Tokens counted for that chunk.
        limit:       The configured per-item ceiling.
    """

    def __init__(self, chunk_index: int, token_count: int, limit: int) -> None:
        self.chunk_index = chunk_index
        self.token_count = token_count
        self.limit = limit
        super().__init__(
            f"Chunk too long for embedding: {token_count} tokens (limit {limit}) at chunk_index={chunk_index}"
        )


class ProviderError(RAGBridgeError):
    """Raised when an external provider request fails.

    Attributes:
        provider: Client identifier, e.g. "embed/mistral".
        status:   HTTP status code, or None for network-level failures.
        body:     Response body or the underlying error message.
    """

    def __init__(self, provider: str, status: int | None, body: str) -> None:
        self.provider = provider
        self.status = status
        self.body = body
        super().__init__(f"[{provider}] request failed: status={status} body={body}")


class EmbeddingCountMismatchError(RAGBridgeError):
    """Raised when the embedding provider returns a different number of vectors than inputs sent."""

    def __init__(self, expected: int, got: int) -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"Embeddings count mismatch: got {got}, expected {expected}")


class CollectionDimensionMismatchError(RAGBridgeError):
    """Raised when a collection has the wrong vector size and rebuilding is disabled."""

    def __init__(self, collection: str, current: int | None, expected: int) -> None:
        self.collection = collection
        self.current = current
        self.expected = expected
        super().__init__(
            f"Collection {collection!r} has vector size {current}, expected {expected}. "
            "Automatic rebuild is disabled."
        )


class EmbeddingDimensionError(RAGBridgeError):
    """Raised when a returned vector does not have the collection's dimension."""

    def __init__(self, chunk_index: int, expected: int, got: int) -> None:
        self.chunk_index = chunk_index
        self.expected = expected
        self.got = got
        super().__init__(f"Embedding for chunk_index={chunk_index} has dimension {got}, expected {expected}")
