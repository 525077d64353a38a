"""Sentence spans and highlight windows over chunk text."""

import re

from pydantic import BaseModel

# a run of non-terminators closed by terminators, or the unterminated tail
_SENTENCE = re.compile(r"[^.!?…]+(?:[.!?…]+|$)")


class SentenceSpan(BaseModel):
    start: int
    end: int
    text: str


class PreviewWindow(BaseModel):
    preview: str
    rel_start: int
    rel_end: int


def split_to_sentences(text: str) -> list[SentenceSpan]:
    """Split text into sentence spans.

    Boundaries are runs of ".", "!", "?" or "…". A trailing fragment without
    terminator is kept as the last sentence. Offsets point into ``text`` and
    exclude surrounding whitespace.
    """
    spans: list[SentenceSpan] = []
    for match in _SENTENCE.finditer(text):
        raw = match.group(0)
        stripped = raw.strip()
        if not stripped:
            continue
        start = match.start() + (len(raw) - len(raw.lstrip()))
        spans.append(SentenceSpan(start=start, end=start + len(stripped), text=stripped))
    return spans


def window_around(text: str, start: int, end: int, pad: int = 240) -> PreviewWindow:
    """Cut a padded preview around ``text[start:end]``, clipped to the text bounds.

    The preview is whitespace-trimmed; the returned offsets locate the span
    inside the trimmed preview and always fall within ``[0, len(preview)]``.
    """
    a = max(0, start - pad)
    b = min(len(text), end + pad)
    raw = text[a:b]
    preview = raw.strip()
    lead = len(raw) - len(raw.lstrip())
    rel_start = min(max(0, start - a - lead), len(preview))
    rel_end = min(max(rel_start, end - a - lead), len(preview))
    return PreviewWindow(preview=preview, rel_start=rel_start, rel_end=rel_end)
