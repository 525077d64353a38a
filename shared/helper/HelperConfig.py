"""Central configuration helper for the rulebook RAG bridge."""

import json
import logging
import os

from pydantic import TypeAdapter, ValidationError

from shared.models.config import ChunkingConfig, IngestConfig, SearchConfig
from shared.models.search import DocBoostRule

# documents boosted when the question names their rulebook
DEFAULT_DOC_BOOST_RULES: list[DocBoostRule] = [
    DocBoostRule(pattern=r"ropta", doc_id="ROPTA-2025-02.pdf", factor=1.25),
    DocBoostRule(pattern=r"\btda\b|tournament directors", doc_id="reglement-et-legislation-poker.pdf", factor=1.15),
]


class HelperConfig:
    """Central configuration helper. Reads all settings from environment variables."""

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    ##########################################
    ############### PRIMITIVES ###############
    ##########################################

    def get_string_val(self, key: str, default: str | None = None) -> str:
        """Read a string environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (str | None): Fallback value if the variable is not set.

        Returns:
            str: The resolved value.

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        val = os.getenv(key) or None  # empty string → None
        if val is None and default is None:
            raise ValueError(f"Environment variable '{key}' is not set.")
        return val.strip() if val is not None else default

    def get_number_val(self, key: str, default: float | int | None = None) -> float | int:
        """Read a numeric environment variable.

        Args:
            key (str): Environment variable name (case-insensitive).
            default (float | int | None): Fallback value if the variable is not set.

        Returns:
            float | int: The resolved numeric value.

        Raises:
            ValueError: If the variable is not set and no default is provided,
                or if the value cannot be parsed as a number.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        raw = raw.strip()
        try:
            return int(raw) if "." not in raw else float(raw)
        except ValueError:
            raise ValueError(f"Environment variable '{key}' is not a valid number: '{raw}'.")

    def get_bool_val(self, key: str, default: bool | None = None) -> bool:
        """Read a boolean environment variable ("true", "1" and "yes" are truthy).

        Raises:
            ValueError: If the variable is not set and no default is provided.
        """
        key = key.upper()
        raw = os.getenv(key) or None
        if raw is None:
            if default is None:
                raise ValueError(f"Environment variable '{key}' is not set.")
            return default
        return raw.strip().lower() in ("true", "1", "yes")

    def get_list_val(self, key: str, default: list[str] | None = None, separator: str = ",") -> list[str]:
        """Read a list environment variable in the form "[elem1,elem2,...]".

        Args:
            key (str): Environment variable name (case-insensitive).
            default (list[str] | None): Fallback value if the variable is not set.
            separator (str): The delimiter between elements.

        Returns:
            list[str]: The stripped, non-empty elements.

        Raises:
            ValueError: If the variable is not set and no default is provided,
                or if the value is not wrapped in brackets.
        """
        raw_val = os.getenv(key.upper()) or None
        if raw_val is None:
            if default is None:
                raise ValueError(f"Environment variable '{key.upper()}' is not set.")
            return default
        raw_val = raw_val.strip()
        if not raw_val.startswith("[") or not raw_val.endswith("]"):
            raise ValueError(
                f"Environment variable '{key.upper()}' must be in the format "
                f"'[elem1{separator}elem2{separator}...]'. Got: '{raw_val}'"
            )
        return [v.strip() for v in raw_val[1:-1].split(separator) if v.strip()]

    ##########################################
    ################ SECTIONS ################
    ##########################################

    def get_chunking_config(self) -> ChunkingConfig:
        """Token window settings used when splitting pages into chunks."""
        return ChunkingConfig(
            encoding_name=self.get_string_val("TOKENIZER_ENCODING", default="cl100k_base"),
            max_tokens=int(self.get_number_val("CHUNK_MAX_TOKENS", default=1100)),
            overlap_tokens=int(self.get_number_val("CHUNK_OVERLAP_TOKENS", default=180)),
        )

    def get_ingest_config(self) -> IngestConfig:
        """Batching and token ceiling settings for the ingestion pipeline."""
        return IngestConfig(
            batch_size=int(self.get_number_val("EMBED_BATCH_SIZE", default=32)),
            max_item_tokens=int(self.get_number_val("EMBED_MAX_TOKENS", default=7900)),
        )

    def get_search_config(self) -> SearchConfig:
        """Over-fetch, diversity and threshold settings for retrieval."""
        return SearchConfig(
            k_raw=int(self.get_number_val("SEARCH_K_RAW", default=40)),
            k_final=int(self.get_number_val("SEARCH_K_FINAL", default=12)),
            max_per_doc=int(self.get_number_val("SEARCH_MAX_PER_DOC", default=3)),
            score_threshold=float(self.get_number_val("SEARCH_SCORE_THRESHOLD", default=0.2)),
        )

    def get_doc_boost_rules(self) -> list[DocBoostRule]:
        """Soft per-document boosts from SEARCH_DOC_BOOSTS.

        The variable holds a JSON list such as
        `[{"pattern": "ropta", "doc_id": "ROPTA-2025-02.pdf", "factor": 1.25}]`.

        Raises:
            ValueError: If the value is not valid JSON or a rule is malformed.
        """
        raw = os.getenv("SEARCH_DOC_BOOSTS") or None
        if raw is None:
            return list(DEFAULT_DOC_BOOST_RULES)
        try:
            return TypeAdapter(list[DocBoostRule]).validate_python(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise ValueError(f"Environment variable 'SEARCH_DOC_BOOSTS' is invalid: {e}")

    def get_logger(self) -> logging.Logger:
        """Return the application logger.

        Returns:
            logging.Logger: The configured logger instance.
        """
        return self._logger
