"""Ingestion service.

Extracts pages from a rule document, splits them into token-bounded chunks,
embeds the chunks in sequential batches and upserts the resulting points into
the vector index under deterministic ids.
"""

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.errors import EmbeddingCountMismatchError, EmbeddingDimensionError, ExtractionError, TokenBudgetError
from shared.helper.HelperChunker import HelperChunker, detect_section
from shared.helper.HelperConfig import HelperConfig
from shared.helper.HelperIdentity import fingerprint, make_point_id
from shared.helper.HelperPages import extract_pages
from shared.models.config import IngestConfig
from shared.models.document import Chunk, Document, IngestResult


def _normalise_tags(tags: list[str] | None) -> list[str]:
    seen: list[str] = []
    for tag in tags or []:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


class IngestService:
    """Orchestrates the ingestion pipeline from document bytes to vector index points."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
        chunker: HelperChunker,
        ingest_config: IngestConfig | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag_client = rag_client
        self._embed_client = embed_client
        self._chunker = chunker
        self._config = ingest_config or IngestConfig()

    ##########################################
    ############### CORE INGEST ##############
    ##########################################

    async def do_ingest(
        self,
        document_bytes: bytes,
        document_id: str,
        title: str,
        version: str,
        format_tags: list[str] | None = None,
        phase_tags: list[str] | None = None,
    ) -> IngestResult:
        """Ingest one document revision.

        Batches are processed strictly one after the other: token check, one
        embedding call, one upsert. Chunks of an earlier revision beyond the
        new chunk count are removed at the end, so re-ingesting a document
        replaces it instead of appending to it.

        Args:
            document_bytes (bytes): Raw PDF or UTF-8 text content.
            document_id (str): Stable identifier of the document.
            title (str): Human-readable title.
            version (str): Free-form version label, usually a date.
            format_tags (list[str] | None): Format tags stored on every chunk.
            phase_tags (list[str] | None): Phase tags stored on every chunk.

        Returns:
            IngestResult: Number of chunks written and the document fingerprint.

        Raises:
            ExtractionError: If no text could be extracted.
            TokenBudgetError: If a chunk exceeds the embedding provider's ceiling.
            EmbeddingCountMismatchError: If the provider returned the wrong number of vectors.
            ProviderError: If the embedding provider or the vector index fails.
        """
        document = Document(
            id=document_id,
            title=title or document_id,
            fingerprint=fingerprint(document_bytes),
            version=version,
            format_tags=_normalise_tags(format_tags),
            phase_tags=_normalise_tags(phase_tags),
        )
        self.logging.info("Ingesting document %r (%s, version %r).", document.id, document.fingerprint, document.version)

        pages = extract_pages(document_bytes, logger=self.logging)
        chunks = self._chunker.chunk_pages(pages)
        if not chunks:
            raise ExtractionError(f"Document {document.id!r} produced no chunks.")

        dimension = self._embed_client.get_dimension()
        await self._rag_client.do_ensure_collection(dimension)

        total = 0
        batch_size = self._config.batch_size
        for batch_start in range(0, len(chunks), batch_size):
            batch = chunks[batch_start: batch_start + batch_size]
            points = await self._embed_batch(document, batch, dimension)
            await self._rag_client.do_upsert_points(points)
            total += len(points)
            self.logging.info("Upserted %d / %d", total, len(chunks), color="cyan")

        # drop chunks left over from a longer previous revision
        await self._rag_client.do_delete_document_chunks(document.id, from_chunk_index=len(chunks))

        self.logging.info(
            "Finished: %d chunks of %r in collection %r.",
            total, document.id, self._rag_client.get_collection_name(), color="green",
        )
        return IngestResult(
            document_id=document.id,
            fingerprint=document.fingerprint,
            chunks_written=total,
        )

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _check_token_budget(self, batch: list[Chunk]) -> None:
        """Reject the batch if any chunk exceeds the per-item token ceiling.

        Raises:
            TokenBudgetError: Identifies the longest offending chunk.
        """
        counts = [self._chunker.tokenizer.count_tokens(chunk.text) for chunk in batch]
        longest = max(range(len(batch)), key=lambda i: counts[i])
        if counts[longest] > self._config.max_item_tokens:
            raise TokenBudgetError(
                chunk_index=batch[longest].chunk_index,
                token_count=counts[longest],
                limit=self._config.max_item_tokens,
            )

    async def _embed_batch(self, document: Document, batch: list[Chunk], dimension: int) -> list[dict]:
        """Embed one batch and build its points.

        Returns:
            list[dict]: Points with "id", "vector" and "payload", in chunk order.
        """
        self._check_token_budget(batch)

        vectors = await self._embed_client.do_embed([chunk.text for chunk in batch])
        if len(vectors) != len(batch):
            raise EmbeddingCountMismatchError(expected=len(batch), got=len(vectors))

        points: list[dict] = []
        for chunk, vector in zip(batch, vectors):
            if len(vector) != dimension:
                raise EmbeddingDimensionError(chunk.chunk_index, expected=dimension, got=len(vector))
            payload = VectorPoint(
                text=chunk.text,
                doc_id=document.id,
                title=document.title,
                section=detect_section(chunk.text),
                page_start=chunk.page_start,
                page_end=chunk.page_end,
                format=document.format_tags,
                phase=document.phase_tags,
                version=document.version,
                hash=document.fingerprint,
                chunk_index=chunk.chunk_index,
            )
            points.append({
                "id": make_point_id(document.id, chunk.chunk_index),
                "vector": vector,
                "payload": payload.model_dump(),
            })
        return points
