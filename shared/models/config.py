from pydantic import BaseModel, Field, model_validator


class EnvConfig(BaseModel):
    """
    Represents a single configuration parameter required by a client.

    Attributes:
        env_key (str): The raw key of the environment variable, without the client prefix.
        val_type (str): The expected value type ("string", "number", "bool", "list").
        default (str | int | float | bool | list | None): Default used when the variable is not set.
            If None, the variable is required and an error is raised when missing.
    """

    env_key: str
    val_type: str
    default: str | int | float | bool | list | None = None


class ChunkingConfig(BaseModel):
    """Token window used by the chunker."""

    encoding_name: str = "cl100k_base"
    max_tokens: int = Field(default=1100, gt=0)
    overlap_tokens: int = Field(default=180, ge=0)

    @model_validator(mode="after")
    def _check_step(self) -> "ChunkingConfig":
        # a non-positive step would never advance the window
        if self.overlap_tokens >= self.max_tokens:
            raise ValueError(
                f"overlap_tokens ({self.overlap_tokens}) must be smaller than max_tokens ({self.max_tokens})."
            )
        return self


class IngestConfig(BaseModel):
    """Embedding batch size and per-item token ceiling for ingestion."""

    batch_size: int = Field(default=32, gt=0)
    max_item_tokens: int = Field(default=7900, gt=0)


class SearchConfig(BaseModel):
    """Defaults for the re-ranking search engine."""

    k_raw: int = Field(default=40, gt=0)
    k_final: int = Field(default=12, gt=0)
    max_per_doc: int = Field(default=3, gt=0)
    score_threshold: float | None = 0.2

    @model_validator(mode="after")
    def _check_headroom(self) -> "SearchConfig":
        if self.k_raw <= self.k_final:
            raise ValueError(f"k_raw ({self.k_raw}) must exceed k_final ({self.k_final}).")
        return self
