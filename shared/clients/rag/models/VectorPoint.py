"""VectorPoint model — metadata stored alongside each chunk vector in a RAG backend."""

from pydantic import BaseModel


class VectorPoint(BaseModel):
    """Payload stored alongside each chunk vector.

    Carries every chunk and document attribute needed to display a hit, cite
    it, and filter or boost it at query time.

    Attributes:
        text:         Raw text content of this chunk.
        doc_id:       Document identifier given at ingest time (e.g. "TDA-2025.pdf").
        title:        Human-readable document title.
        section:      Section label detected in the chunk text, empty if none.
        page_start:   First source page (1-indexed).
        page_end:     Last source page (1-indexed).
        format:       Format tags of the document (e.g. "cash", "mtt").
        phase:        Phase tags of the document (e.g. "preflop", "showdown").
        version:      Free-form version label, usually a date.
        hash:         Document fingerprint ("sha256:<hex>"), identical across chunks.
        chunk_index:  Zero-based, document-wide position of this chunk.
    """

    text: str
    doc_id: str
    title: str
    section: str = ""
    page_start: int
    page_end: int
    format: list[str] = []
    phase: list[str] = []
    version: str = ""
    hash: str = ""
    chunk_index: int
