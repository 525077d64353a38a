# tests/test_rag_client_qdrant.py

import asyncio
import json

import httpx
import pytest

from conftest import RecordingTransport
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.errors import CollectionDimensionMismatchError, ProviderError
from shared.models.search import Classification


def _collection_info(size: int) -> dict:
    return {"result": {"config": {"params": {"vectors": {"size": size, "distance": "Cosine"}}}}}


def _qdrant_handler(existing_size: int | None):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            if existing_size is None:
                return httpx.Response(404, json={"status": {"error": "Not found"}})
            return httpx.Response(200, json=_collection_info(existing_size))
        return httpx.Response(200, json={"result": True})
    return handler


async def _call(client, transport, method, *args, **kwargs):
    await client.boot(transport=transport.transport())
    try:
        return await getattr(client, method)(*args, **kwargs)
    finally:
        await client.close()


@pytest.fixture
def qdrant_env(monkeypatch):
    monkeypatch.setenv("RAG_QDRANT_COLLECTION", "rules")
    monkeypatch.delenv("RAG_QDRANT_RECREATE_ON_MISMATCH", raising=False)


def test_missing_collection_is_created(helper_config, qdrant_env):
    transport = RecordingTransport(_qdrant_handler(None))
    created = asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_ensure_collection", 1024))

    assert created is True
    assert [(r.method, r.url.path) for r in transport.requests] == [
        ("GET", "/collections/rules"),
        ("PUT", "/collections/rules"),
    ]
    assert json.loads(transport.requests[1].content) == {"vectors": {"size": 1024, "distance": "Cosine"}}


def test_matching_collection_is_left_alone(helper_config, qdrant_env):
    transport = RecordingTransport(_qdrant_handler(1024))
    created = asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_ensure_collection", 1024))

    assert created is False
    assert [r.method for r in transport.requests] == ["GET"]


def test_size_mismatch_rebuilds_the_collection(helper_config, qdrant_env):
    transport = RecordingTransport(_qdrant_handler(768))
    created = asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_ensure_collection", 1024))

    assert created is True
    assert [r.method for r in transport.requests] == ["GET", "DELETE", "PUT"]


def test_size_mismatch_raises_when_rebuild_is_disabled(helper_config, qdrant_env, monkeypatch):
    monkeypatch.setenv("RAG_QDRANT_RECREATE_ON_MISMATCH", "false")
    transport = RecordingTransport(_qdrant_handler(768))

    with pytest.raises(CollectionDimensionMismatchError) as exc_info:
        asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_ensure_collection", 1024))
    assert (exc_info.value.current, exc_info.value.expected) == (768, 1024)
    assert [r.method for r in transport.requests] == ["GET"]


def test_describe_failure_is_a_provider_error(helper_config, qdrant_env):
    transport = RecordingTransport(lambda r: httpx.Response(500, text="boom"))
    with pytest.raises(ProviderError):
        asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_describe_collection"))


def test_named_vector_size_is_read(helper_config, qdrant_env):
    client = RAGClientQdrant(helper_config)
    raw = {"result": {"config": {"params": {"vectors": {"dense": {"size": 512, "distance": "Cosine"}}}}}}
    assert client.extract_collection_vector_size(raw) == 512
    assert client.extract_collection_vector_size({"result": {}}) is None


def test_upsert_waits_for_persistence(helper_config, qdrant_env):
    transport = RecordingTransport(_qdrant_handler(4))
    points = [{"id": 1, "vector": [0.1, 0.2, 0.3, 0.4], "payload": {"doc_id": "a"}}]
    asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_upsert_points", points))

    request = transport.requests[0]
    assert (request.method, request.url.path) == ("PUT", "/collections/rules/points")
    assert request.url.params["wait"] == "true"
    assert json.loads(request.content) == {"points": points}


def test_delete_document_chunks_filters_on_doc_and_index(helper_config, qdrant_env):
    transport = RecordingTransport(_qdrant_handler(4))
    asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_delete_document_chunks", "TDA.pdf", 12))

    request = transport.requests[0]
    assert (request.method, request.url.path) == ("POST", "/collections/rules/points/delete")
    assert json.loads(request.content) == {"filter": {"must": [
        {"key": "doc_id", "match": {"value": "TDA.pdf"}},
        {"key": "chunk_index", "range": {"gte": 12}},
    ]}}


def test_search_sends_threshold_and_soft_filter(helper_config, qdrant_env):
    def handler(request):
        return httpx.Response(200, json={"result": [
            {"id": 42, "score": 0.91, "payload": {
                "text": "t", "doc_id": "a.pdf", "title": "A", "page_start": 1, "page_end": 1,
                "format": ["mtt"], "chunk_index": 0,
            }},
        ]})

    transport = RecordingTransport(handler)
    soft = Classification(format=["mtt"], phase=[])
    hits = asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_search", [0.1, 0.2], 40, 0.2, soft))

    body = json.loads(transport.requests[0].content)
    assert transport.requests[0].url.path == "/collections/rules/points/search"
    assert body["limit"] == 40
    assert body["score_threshold"] == 0.2
    assert body["with_payload"] is True
    assert body["filter"] == {"should": [{"key": "format", "match": {"any": ["mtt"]}}]}
    assert hits[0].id == 42
    assert hits[0].payload.doc_id == "a.pdf"
    assert hits[0].score == pytest.approx(0.91)


def test_search_without_filter_has_no_filter_clause(helper_config, qdrant_env):
    payload = RAGClientQdrant(helper_config).get_search_payload([0.1], 10, None, Classification())
    assert "filter" not in payload
    assert "score_threshold" not in payload


def test_api_key_header(helper_config, qdrant_env, monkeypatch):
    monkeypatch.setenv("RAG_QDRANT_API_KEY", "qkey")
    assert RAGClientQdrant(helper_config)._get_auth_header() == {"api-key": "qkey"}


def test_manager_defaults_to_qdrant(helper_config, qdrant_env, monkeypatch):
    monkeypatch.delenv("RAG_ENGINE", raising=False)
    client = RAGClientManager(helper_config=helper_config).get_client()
    assert isinstance(client, RAGClientQdrant)
    assert client.get_collection_name() == "rules"


def test_search_hit_without_required_payload_is_a_provider_error(helper_config, qdrant_env):
    transport = RecordingTransport(lambda r: httpx.Response(200, json={"result": [
        {"id": 7, "score": 0.5, "payload": {"title": "no text or doc_id"}},
    ]}))

    with pytest.raises(ProviderError) as exc_info:
        asyncio.run(_call(RAGClientQdrant(helper_config), transport, "do_search", [0.1], 10, None))
    assert exc_info.value.provider == "rag/qdrant"
    assert exc_info.value.status == 200
