# tests/test_query_router.py

import logging
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from server.api.routers.QueryRouter import format_sse, query_router
from shared.errors import ProviderError
from shared.models.search import AnswerResponse, Classification, RetrieveResponse


def _client(query_service) -> TestClient:
    app = FastAPI()
    app.include_router(query_router)
    app.state.logging = logging.getLogger("rulebook_rag.tests")
    app.state.query_service = query_service
    return TestClient(app)


def test_format_sse():
    assert format_sse("answer", "Main morte") == 'event: answer\ndata: "Main morte"\n\n'


def test_retrieve_route():
    service = MagicMock()
    service.do_retrieve = AsyncMock(return_value=RetrieveResponse(classified=Classification(phase=["deal"]), contexts=[]))

    response = _client(service).post("/rag/retrieve", json={"question": "misdeal?", "k": 4})

    assert response.status_code == 200
    assert response.json() == {"classified": {"format": [], "phase": ["deal"]}, "contexts": []}
    service.do_retrieve.assert_awaited_once_with("misdeal?", 4)


def test_answer_route_maps_provider_errors_to_502():
    service = MagicMock()
    service.do_answer = AsyncMock(side_effect=ProviderError("llm/mistral", 500, "down"))

    response = _client(service).post("/rag/answer", json={"question": "misdeal?"})

    assert response.status_code == 502


def test_answer_route_rejects_blank_question_and_unknown_mode():
    service = MagicMock()
    service.do_answer = AsyncMock(return_value=AnswerResponse(text="", usage_tokens=0, classified=Classification(), contexts=[]))
    client = _client(service)

    assert client.post("/rag/answer", json={"question": "  "}).status_code == 400
    assert client.post("/rag/answer", json={"question": "q", "mode": "expert"}).status_code == 422
    service.do_answer.assert_not_awaited()


def test_ask_route_streams_events():
    async def fake_stream(question, mode, k, is_disconnected=None):
        yield {"event": "evidence", "data": []}
        yield {"event": "answer", "data": "Main morte."}
        yield {"event": "done", "data": {"usage_tokens": 3}}

    service = MagicMock()
    service.do_ask_stream = fake_stream

    response = _client(service).get("/rag/ask", params={"q": "misdeal?", "mode": "referee"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.text == (
        "event: evidence\ndata: []\n\n"
        'event: answer\ndata: "Main morte."\n\n'
        'event: done\ndata: {"usage_tokens": 3}\n\n'
    )
