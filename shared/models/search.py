"""Pydantic models for retrieval, evidence and answer requests and responses."""

from typing import Literal

from pydantic import BaseModel, Field, field_validator


AnswerMode = Literal["beginner", "referee"]


class Classification(BaseModel):
    """Advisory tags derived from a question. Never required for retrieval."""

    format: list[str] = []
    phase: list[str] = []

    def is_empty(self) -> bool:
        return not self.format and not self.phase


class DocBoostRule(BaseModel):
    """Multiplicative boost applied to one document when the question matches a pattern."""

    pattern: str
    doc_id: str
    factor: float = Field(ge=0)


class SearchBoosts(BaseModel):
    """Soft score adjustments for the re-ranking step.

    Attributes:
        doc_boosts:     doc_id → multiplicative factor (default 1, never exclusionary).
        prefer_format:  Format tags worth a small additive bonus per match.
        prefer_phase:   Phase tags worth a small additive bonus per match.
        freshness:      Whether to add the version-year bonus.
        max_per_doc:    Diversity cap per document.
    """

    doc_boosts: dict[str, float] = {}
    prefer_format: list[str] = []
    prefer_phase: list[str] = []
    freshness: bool = True
    max_per_doc: int = Field(default=3, gt=0)

    @field_validator("doc_boosts")
    @classmethod
    def _non_negative(cls, value: dict[str, float]) -> dict[str, float]:
        for doc_id, factor in value.items():
            if factor < 0:
                raise ValueError(f"Boost factor for {doc_id!r} must be >= 0, got {factor}.")
        return value


class Context(BaseModel):
    """A retrieved chunk as handed to evidence selection and answer composition."""

    score: float
    text: str
    doc_id: str
    title: str
    section: str = ""
    page_start: int
    page_end: int
    version: str = ""
    chunk_index: int


class Evidence(Context):
    """A single highlighted sentence from a Context.

    Attributes:
        sent_text:  The sentence itself.
        abs_start:  Sentence start offset in the context text.
        abs_end:    Sentence end offset in the context text.
        preview:    Padded window around the sentence, clipped to text bounds.
        rel_start:  Sentence start offset within the preview.
        rel_end:    Sentence end offset within the preview.
        similarity: Cosine similarity between sentence and question.
    """

    sent_text: str
    abs_start: int
    abs_end: int
    preview: str
    rel_start: int
    rel_end: int
    similarity: float


class RetrieveRequest(BaseModel):
    question: str
    k: int = Field(default=12, gt=0, le=50)


class RetrieveResponse(BaseModel):
    classified: Classification
    contexts: list[Context]


class AnswerRequest(BaseModel):
    question: str
    mode: AnswerMode = "beginner"
    k: int = Field(default=12, gt=0, le=50)


class AnswerResponse(BaseModel):
    text: str
    usage_tokens: int
    classified: Classification
    contexts: list[Context]
