"""Ingest runner entry point.

Reads a rule document from disk and ingests it into the configured vector index.

Usage:
    python -m services.doc_ingest.doc_ingest --file ./docs/TDA-2025.pdf \
        [--doc-id TDA-2025.pdf] [--title "TDA Rules 2025"] [--version 2025-08-30] \
        [--format cash,mtt] [--phase preflop,showdown]
"""

import argparse
import asyncio
import sys
from datetime import date
from pathlib import Path

from services.doc_ingest.IngestService import IngestService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.errors import RAGBridgeError
from shared.helper.HelperChunker import HelperChunker
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperTokenizer import HelperTokenizer
from shared.logging.logging_setup import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest a rule document into the vector index.")
    parser.add_argument("--file", required=True, help="Path to the PDF or text document.")
    parser.add_argument("--doc-id", dest="doc_id", default=None, help="Document id (defaults to the file name).")
    parser.add_argument("--title", default=None, help="Document title (defaults to the document id).")
    parser.add_argument("--version", default=None, help="Version label (defaults to today's date).")
    parser.add_argument("--format", default="", help="Comma-separated format tags.")
    parser.add_argument("--phase", default="", help="Comma-separated phase tags.")
    return parser.parse_args(argv)


def _split_csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


async def main(argv: list[str] | None = None) -> int:
    """Run a single ingestion. Returns the process exit code."""
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)

    path = Path(args.file)
    if not path.is_file():
        logger.error("File not found: %s", path)
        return 1
    doc_id = args.doc_id or path.name

    rag_client = RAGClientManager(helper_config=config).get_client()
    embed_client = EmbedClientManager(helper_config=config).get_client()
    tokenizer = HelperTokenizer(config.get_chunking_config().encoding_name)
    ingest_service = IngestService(
        helper_config=config,
        rag_client=rag_client,
        embed_client=embed_client,
        chunker=HelperChunker.from_config(tokenizer, config.get_chunking_config()),
        ingest_config=config.get_ingest_config(),
    )

    try:
        await rag_client.boot()
        await embed_client.boot()
        result = await ingest_service.do_ingest(
            document_bytes=path.read_bytes(),
            document_id=doc_id,
            title=args.title or doc_id,
            version=args.version or date.today().isoformat(),
            format_tags=_split_csv(args.format),
            phase_tags=_split_csv(args.phase),
        )
    except RAGBridgeError as exc:
        logger.error("Ingest failed: %s", exc)
        return 1
    finally:
        await rag_client.close()
        await embed_client.close()

    logger.info("Ingested %r: %d chunks written.", result.document_id, result.chunks_written)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
