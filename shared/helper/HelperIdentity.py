"""Content fingerprints and deterministic point identities."""

import hashlib

MAX_CHUNKS_PER_DOCUMENT = 1 << 16

_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193


def fingerprint(data: bytes) -> str:
    """Return the content identity of a document revision as "sha256:<hex>"."""
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def fnv1a_32(value: str) -> int:
    """32-bit FNV-1a over the UTF-16 code units of ``value``."""
    encoded = value.encode("utf-16-le", errors="surrogatepass")
    h = _FNV32_OFFSET
    for i in range(0, len(encoded), 2):
        h ^= encoded[i] | (encoded[i + 1] << 8)
        h = (h * _FNV32_PRIME) & 0xFFFFFFFF
    return h


def make_point_id(document_id: str, chunk_index: int) -> int:
    """Build the numeric point id for a document chunk.

    The 32-bit hash of the document id fills the high bits and the chunk
    index the low 16 bits, so ids stay below 2**48 and re-ingesting a
    document overwrites its points instead of duplicating them.

    Args:
        document_id (str): Identifier given at ingest time.
        chunk_index (int): Zero-based chunk index, below 65536.

    Returns:
        int: The point id.

    Raises:
        ValueError: If chunk_index is negative or does not fit into 16 bits.
    """
    if not 0 <= chunk_index < MAX_CHUNKS_PER_DOCUMENT:
        raise ValueError(
            f"chunk_index {chunk_index} out of range for document {document_id!r} "
            f"(max {MAX_CHUNKS_PER_DOCUMENT - 1})."
        )
    return fnv1a_32(document_id) * MAX_CHUNKS_PER_DOCUMENT + (chunk_index & 0xFFFF)
