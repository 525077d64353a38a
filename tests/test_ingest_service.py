# tests/test_ingest_service.py

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import words
from services.doc_ingest.IngestService import IngestService
from shared.errors import EmbeddingCountMismatchError, EmbeddingDimensionError, ExtractionError, TokenBudgetError
from shared.helper.HelperChunker import HelperChunker
from shared.helper.HelperIdentity import fingerprint, make_point_id
from shared.models.config import IngestConfig

DOC = "\f".join([
    "Rule 1: Players must protect their hand.",
    "",
    "Rule 2: Chips must remain visible.",
    "Penalty for soft play is a warning.",
]).encode("utf-8")


def _mock_rag():
    rag = MagicMock()
    rag.do_ensure_collection = AsyncMock(return_value=False)
    rag.do_upsert_points = AsyncMock()
    rag.do_delete_document_chunks = AsyncMock()
    rag.get_collection_name.return_value = "rules"
    return rag


def _mock_embed(dimension=2, vector_size=None, drop=0):
    async def embed(texts):
        return [[0.1] * (vector_size or dimension) for _ in texts[drop:]]

    client = MagicMock()
    client.get_dimension.return_value = dimension
    client.do_embed = AsyncMock(side_effect=embed)
    return client


def _service(helper_config, tokenizer, rag, embed, batch_size=2, max_item_tokens=100):
    return IngestService(
        helper_config=helper_config,
        rag_client=rag,
        embed_client=embed,
        chunker=HelperChunker(tokenizer, max_tokens=10, overlap_tokens=3),
        ingest_config=IngestConfig(batch_size=batch_size, max_item_tokens=max_item_tokens),
    )


def _ingest(service, data=DOC, doc_id="TDA.pdf"):
    return asyncio.run(service.do_ingest(
        document_bytes=data,
        document_id=doc_id,
        title="TDA Rules",
        version="2025-08-30",
        format_tags=["MTT", "cash", "mtt"],
        phase_tags=["Showdown"],
    ))


def _upserted_points(rag) -> list[dict]:
    return [p for call in rag.do_upsert_points.await_args_list for p in call.args[0]]


def test_ingest_writes_all_chunks_in_batches(helper_config, tokenizer):
    rag, embed = _mock_rag(), _mock_embed()
    result = _ingest(_service(helper_config, tokenizer, rag, embed))

    assert result.chunks_written == 3
    assert result.fingerprint == fingerprint(DOC)
    assert rag.do_upsert_points.await_count == 2
    assert embed.do_embed.await_count == 2
    rag.do_ensure_collection.assert_awaited_once_with(2)
    rag.do_delete_document_chunks.assert_awaited_once_with("TDA.pdf", from_chunk_index=3)
    assert set(result.model_dump()) == {"document_id", "chunks_written", "fingerprint"}

    points = _upserted_points(rag)
    assert [p["id"] for p in points] == [make_point_id("TDA.pdf", i) for i in range(3)]
    assert [p["payload"]["page_start"] for p in points] == [1, 3, 4]
    assert [p["payload"]["chunk_index"] for p in points] == [0, 1, 2]

    payload = points[2]["payload"]
    assert payload["doc_id"] == "TDA.pdf"
    assert payload["title"] == "TDA Rules"
    assert payload["format"] == ["mtt", "cash"]
    assert payload["phase"] == ["showdown"]
    assert payload["version"] == "2025-08-30"
    assert payload["hash"] == fingerprint(DOC)
    assert payload["section"] == "Penalty for soft play is a warning."


def test_reingest_reuses_the_same_point_ids(helper_config, tokenizer):
    first, second = _mock_rag(), _mock_rag()
    _ingest(_service(helper_config, tokenizer, first, _mock_embed()))
    _ingest(_service(helper_config, tokenizer, second, _mock_embed()))

    assert [p["id"] for p in _upserted_points(first)] == [p["id"] for p in _upserted_points(second)]


def test_oversized_chunk_fails_before_embedding(helper_config, tokenizer):
    rag, embed = _mock_rag(), _mock_embed()
    service = _service(helper_config, tokenizer, rag, embed, max_item_tokens=5)

    with pytest.raises(TokenBudgetError) as exc_info:
        _ingest(service, data=("short\f" + words(9)).encode("utf-8"))

    assert exc_info.value.chunk_index == 1
    assert exc_info.value.token_count == 9
    embed.do_embed.assert_not_awaited()
    rag.do_upsert_points.assert_not_awaited()


def test_count_mismatch_aborts_without_upsert(helper_config, tokenizer):
    rag = _mock_rag()
    with pytest.raises(EmbeddingCountMismatchError):
        _ingest(_service(helper_config, tokenizer, rag, _mock_embed(drop=1)))
    rag.do_upsert_points.assert_not_awaited()
    rag.do_delete_document_chunks.assert_not_awaited()


def test_wrong_vector_size_aborts(helper_config, tokenizer):
    rag = _mock_rag()
    with pytest.raises(EmbeddingDimensionError):
        _ingest(_service(helper_config, tokenizer, rag, _mock_embed(dimension=2, vector_size=3)))
    rag.do_upsert_points.assert_not_awaited()


def test_document_without_text_touches_nothing(helper_config, tokenizer):
    rag, embed = _mock_rag(), _mock_embed()
    with pytest.raises(ExtractionError):
        _ingest(_service(helper_config, tokenizer, rag, embed), data=b"\f  \f")
    rag.do_ensure_collection.assert_not_awaited()
    embed.do_embed.assert_not_awaited()
