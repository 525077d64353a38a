"""Page extraction from raw document bytes."""

import logging
import re
from io import BytesIO

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from shared.errors import ExtractionError

PDF_MAGIC = b"%PDF"


def _normalise_page(text: str) -> str:
    return re.sub(r"[ \t]+\n", "\n", text.replace("\r", "")).strip()


def extract_pages(data: bytes, logger: logging.Logger | None = None) -> list[str]:
    """Extract ordered page texts from document bytes.

    PDF bytes are read page by page with pypdf. Anything else is decoded as
    UTF-8 text and split on form feeds.

    Args:
        data (bytes): Raw document content.
        logger (logging.Logger | None): Logger for extraction progress.

    Returns:
        list[str]: Page texts in document order. Blank pages are kept so page
            numbers match the source; the chunker skips them.

    Raises:
        ExtractionError: If the bytes cannot be parsed or no page carries text.
    """
    log = logger or logging.getLogger(__name__)
    if data.lstrip()[:4] == PDF_MAGIC:
        try:
            reader = PdfReader(BytesIO(data))
            raw_pages = [page.extract_text() or "" for page in reader.pages]
        except PdfReadError as exc:
            raise ExtractionError(f"PDF parse error: {exc}") from exc
    else:
        try:
            raw_pages = data.decode("utf-8").split("\f")
        except UnicodeDecodeError as exc:
            raise ExtractionError(f"Document is neither a PDF nor UTF-8 text: {exc}") from exc

    pages = [_normalise_page(raw) for raw in raw_pages]
    filled = sum(1 for p in pages if p)
    log.info("Pages extracted: %d (%d with text).", len(pages), filled)
    if not filled:
        raise ExtractionError("No pages extracted from document.")
    return pages
