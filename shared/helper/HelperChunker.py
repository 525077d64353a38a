"""Token-bounded chunking of extracted pages."""

import re

from shared.helper.HelperTokenizer import HelperTokenizer
from shared.models.config import ChunkingConfig
from shared.models.document import Chunk

SECTION_MAX_CHARS = 140

_RULE_HEADING = re.compile(r"^(?:rule|r[èe]gle|article|art\.)\s*\d+[a-z]?(?::|\s|–|-|\.)", re.IGNORECASE)
_RULE_KEYWORD = re.compile(
    r"^(?:string|mise|relance|raise|action|p[ée]nalit[ée]|penalt(?:y|ies)|proc[ée]dure|procedure)",
    re.IGNORECASE,
)


class HelperChunker:
    """Splits page texts into token-bounded, overlapping chunks.

    Pages that fit into ``max_tokens`` are emitted verbatim. Longer pages are
    cut into windows of ``max_tokens`` tokens advancing by
    ``max_tokens - overlap_tokens``; the last, possibly shorter, window is kept.
    Chunks never span two pages and ``chunk_index`` counts across the whole
    document. Blank pages are skipped without consuming an index.
    """

    def __init__(self, tokenizer: HelperTokenizer, max_tokens: int = 1100, overlap_tokens: int = 180) -> None:
        if max_tokens <= 0 or overlap_tokens < 0:
            raise ValueError(f"Invalid token window: max_tokens={max_tokens}, overlap_tokens={overlap_tokens}.")
        if overlap_tokens >= max_tokens:
            raise ValueError(
                f"overlap_tokens ({overlap_tokens}) must be smaller than max_tokens ({max_tokens})."
            )
        self.tokenizer = tokenizer
        self.max_tokens = max_tokens
        self.overlap_tokens = overlap_tokens

    @classmethod
    def from_config(cls, tokenizer: HelperTokenizer, config: ChunkingConfig) -> "HelperChunker":
        return cls(tokenizer, max_tokens=config.max_tokens, overlap_tokens=config.overlap_tokens)

    def chunk_pages(self, pages: list[str]) -> list[Chunk]:
        """Chunk an ordered list of page texts.

        Args:
            pages (list[str]): Page texts in document order; page numbers are 1-indexed.

        Returns:
            list[Chunk]: Chunks in page order with a gapless chunk_index starting at 0.
        """
        chunks: list[Chunk] = []
        for page_number, raw in enumerate(pages, start=1):
            page_text = (raw or "").strip()
            if not page_text:
                continue
            for piece in self._split_by_tokens(page_text):
                if not piece.strip():
                    continue
                chunks.append(
                    Chunk(
                        text=piece,
                        page_start=page_number,
                        page_end=page_number,
                        chunk_index=len(chunks),
                    )
                )
        return chunks

    def _split_by_tokens(self, text: str) -> list[str]:
        max_tokens = self.max_tokens
        overlap = self.overlap_tokens
        tokens = self.tokenizer.encode(text)
        if len(tokens) <= max_tokens:
            return [text]

        pieces: list[str] = []
        start = 0
        while start < len(tokens):
            window = tokens[start:min(len(tokens), start + max_tokens)]
            text, cut = self._decode_within_budget(window)
            pieces.append(text)
            end = start + cut
            if end == len(tokens):
                break
            # a trimmed window moves the next start back so no token is skipped
            start = max(start + 1, end - overlap)
        return pieces

    def _decode_within_budget(self, window: list[int]) -> tuple[str, int]:
        """Decode a window, dropping trailing tokens until it re-encodes within max_tokens.

        Returns:
            tuple[str, int]: The decoded text and the number of window tokens it covers.
        """
        # decoding a window cut inside a multi-byte character can re-encode longer
        text = self.tokenizer.decode(window)
        cut = len(window)
        while cut > 1 and self.tokenizer.count_tokens(text) > self.max_tokens:
            cut -= 1
            text = self.tokenizer.decode(window[:cut])
        return text, cut


def detect_section(text: str) -> str:
    """Derive a short section label from a chunk's text.

    Looks for a numbered rule heading first, then a line opening with a known
    rule keyword, then an all-caps title line. Returns "" when nothing matches.
    """
    lines = [line.strip() for line in re.split(r"\n+", text) if line.strip()]
    hit = (
        next((line for line in lines if _RULE_HEADING.match(line)), None)
        or next((line for line in lines if _RULE_KEYWORD.match(line)), None)
        or next(
            (line for line in lines if line == line.upper() and any(c.isalpha() for c in line) and 8 < len(line) < 120),
            None,
        )
    )
    return re.sub(r"\s+", " ", hit)[:SECTION_MAX_CHARS] if hit else ""
