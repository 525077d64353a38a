# tests/test_embed_clients.py

import asyncio
import json

import httpx
import pytest

from conftest import RecordingTransport
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.mistral.EmbedClientMistral import EmbedClientMistral
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.errors import EmbeddingCountMismatchError, ProviderError


async def _embed(client, transport, texts):
    await client.boot(transport=transport.transport())
    try:
        return await client.do_embed(texts)
    finally:
        await client.close()


@pytest.fixture
def mistral_env(monkeypatch):
    monkeypatch.setenv("EMBED_MISTRAL_API_KEY", "secret")
    monkeypatch.setenv("EMBED_DIMENSION", "3")
    monkeypatch.delenv("EMBED_MODEL", raising=False)


def test_mistral_sorts_vectors_by_index_and_sends_auth(helper_config, mistral_env):
    def handler(request):
        body = json.loads(request.content)
        assert body == {"model": "mistral-embed", "input": ["first", "second"]}
        return httpx.Response(200, json={"data": [
            {"index": 1, "embedding": [0.0, 1.0, 0.0]},
            {"index": 0, "embedding": [1.0, 0.0, 0.0]},
        ]})

    transport = RecordingTransport(handler)
    client = EmbedClientMistral(helper_config=helper_config)
    vectors = asyncio.run(_embed(client, transport, ["first", "second"]))

    assert vectors == [[1.0, 0.0, 0.0], [0.0, 1.0, 0.0]]
    assert transport.requests[0].url.path == "/v1/embeddings"
    assert transport.requests[0].headers["Authorization"] == "Bearer secret"
    assert client.get_dimension() == 3


def test_blank_inputs_are_dropped_and_all_blank_makes_no_call(helper_config, mistral_env):
    def handler(request):
        assert json.loads(request.content)["input"] == ["kept"]
        return httpx.Response(200, json={"data": [{"index": 0, "embedding": [1.0]}]})

    transport = RecordingTransport(handler)
    client = EmbedClientMistral(helper_config=helper_config)
    assert asyncio.run(_embed(client, transport, ["  ", "kept ", ""])) == [[1.0]]

    empty = RecordingTransport(handler)
    assert asyncio.run(_embed(EmbedClientMistral(helper_config=helper_config), empty, ["", "  "])) == []
    assert empty.requests == []


def test_count_mismatch_raises(helper_config, mistral_env):
    transport = RecordingTransport(lambda r: httpx.Response(200, json={"data": [{"index": 0, "embedding": [1.0]}]}))
    client = EmbedClientMistral(helper_config=helper_config)

    with pytest.raises(EmbeddingCountMismatchError) as exc_info:
        asyncio.run(_embed(client, transport, ["a", "b"]))
    assert (exc_info.value.expected, exc_info.value.got) == (2, 1)


def test_provider_error_carries_status_and_body(helper_config, mistral_env):
    transport = RecordingTransport(lambda r: httpx.Response(429, text="rate limited"))
    client = EmbedClientMistral(helper_config=helper_config)

    with pytest.raises(ProviderError) as exc_info:
        asyncio.run(_embed(client, transport, ["a"]))
    assert exc_info.value.status == 429
    assert exc_info.value.provider == "embed/mistral"
    assert "rate limited" in exc_info.value.body


def test_network_failure_becomes_provider_error(helper_config, mistral_env):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = EmbedClientMistral(helper_config=helper_config)
    with pytest.raises(ProviderError) as exc_info:
        asyncio.run(_embed(client, RecordingTransport(handler), ["a"]))
    assert exc_info.value.status is None


def test_mistral_requires_api_key(helper_config, monkeypatch):
    monkeypatch.delenv("EMBED_MISTRAL_API_KEY", raising=False)
    with pytest.raises(ValueError, match="EMBED_MISTRAL_API_KEY"):
        EmbedClientMistral(helper_config=helper_config)


def test_ollama_reads_embeddings_list(helper_config, monkeypatch):
    monkeypatch.delenv("EMBED_MODEL", raising=False)

    def handler(request):
        assert request.url.path == "/api/embed"
        assert json.loads(request.content)["model"] == "bge-m3"
        return httpx.Response(200, json={"embeddings": [[0.5, 0.5]]})

    client = EmbedClientOllama(helper_config=helper_config)
    assert asyncio.run(_embed(client, RecordingTransport(handler), "question")) == [[0.5, 0.5]]


def test_ollama_rejects_unexpected_shape(helper_config):
    client = EmbedClientOllama(helper_config=helper_config)
    with pytest.raises(ValueError):
        client.extract_embeddings_from_response({"embedding": [0.1]})


def test_request_without_boot_fails(helper_config):
    client = EmbedClientOllama(helper_config=helper_config)
    with pytest.raises(RuntimeError):
        asyncio.run(client.do_embed(["a"]))


def test_manager_resolves_engine(helper_config, monkeypatch):
    monkeypatch.setenv("EMBED_ENGINE", "ollama")
    assert isinstance(EmbedClientManager(helper_config=helper_config).get_client(), EmbedClientOllama)

    monkeypatch.setenv("EMBED_ENGINE", "nope")
    with pytest.raises(ValueError, match="Unsupported Embed engine"):
        EmbedClientManager(helper_config=helper_config)


def test_malformed_embedding_response_is_a_provider_error(helper_config, monkeypatch):
    transport = RecordingTransport(lambda r: httpx.Response(200, json={"embedding": [0.1]}))
    client = EmbedClientOllama(helper_config=helper_config)

    with pytest.raises(ProviderError) as exc_info:
        asyncio.run(_embed(client, transport, ["a"]))
    assert exc_info.value.provider == "embed/ollama"
