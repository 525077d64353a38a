"""Query router: retrieval, answers and streamed asks over the rulebook index."""

import json
from typing import Any, AsyncIterator

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from shared.errors import RAGBridgeError
from shared.models.search import AnswerMode, AnswerRequest, AnswerResponse, RetrieveRequest, RetrieveResponse

query_router = APIRouter(prefix="/rag", tags=["RAG"])


def format_sse(event: str, data: Any) -> str:
    """Render one server-sent event frame."""
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


@query_router.post("/retrieve")
async def handle_retrieve(request: Request, body: RetrieveRequest) -> RetrieveResponse:
    """Return the ranked contexts for a question.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (RetrieveRequest): Question and maximum number of contexts.

    Returns:
        RetrieveResponse: Advisory classification and ordered contexts.

    Raises:
        HTTPException: 502 if an upstream provider fails.
    """
    request.app.state.logging.info("Retrieve received: question=%r k=%d", body.question[:80], body.k)
    try:
        return await request.app.state.query_service.do_retrieve(body.question, body.k)
    except RAGBridgeError as e:
        raise HTTPException(status_code=502, detail=str(e))


@query_router.post("/answer")
async def handle_answer(request: Request, body: AnswerRequest) -> AnswerResponse:
    """Retrieve contexts and compose a cited answer.

    Raises:
        HTTPException: 400 for a blank question, 502 if an upstream provider fails.
    """
    if not body.question.strip():
        raise HTTPException(status_code=400, detail="Question is empty.")
    request.app.state.logging.info("Answer received: mode=%s question=%r", body.mode, body.question[:80])
    try:
        return await request.app.state.query_service.do_answer(body.question, body.mode, body.k)
    except RAGBridgeError as e:
        raise HTTPException(status_code=502, detail=str(e))


@query_router.get("/ask")
async def handle_ask(
    request: Request,
    q: str = Query(..., min_length=1),
    mode: AnswerMode = Query("beginner"),
    k: int = Query(12, gt=0, le=50),
) -> StreamingResponse:
    """Stream evidence, answer parts and a final event as server-sent events."""
    query_service = request.app.state.query_service

    async def event_stream() -> AsyncIterator[str]:
        async for item in query_service.do_ask_stream(q, mode, k, is_disconnected=request.is_disconnected):
            yield format_sse(item["event"], item["data"])

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
