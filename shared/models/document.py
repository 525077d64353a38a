"""Pydantic models for ingested documents.

Hierarchy:
  Document      — metadata of one ingested revision, shared by all its chunks.
  Chunk         — token-bounded slice of a document's pages.
  IngestResult  — summary returned by the ingestion pipeline.
"""

from pydantic import BaseModel, Field


class Document(BaseModel):
    """Metadata of one ingested document revision.

    A re-ingest with the same id supersedes the chunks stored for that id.
    """

    id: str = Field(min_length=1)
    title: str
    fingerprint: str
    version: str = ""
    format_tags: list[str] = []
    phase_tags: list[str] = []


class Chunk(BaseModel):
    """A token-bounded slice of a document, the unit that gets embedded.

    ``chunk_index`` is unique and strictly increasing within a document and
    pages are 1-indexed.
    """

    text: str
    page_start: int
    page_end: int
    chunk_index: int


class IngestResult(BaseModel):
    document_id: str
    fingerprint: str
    chunks_written: int
