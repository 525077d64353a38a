"""FastAPI application entry point for the rulebook RAG API."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from server.api.routers.QueryRouter import query_router
from server.api.services.QueryService import QueryService
from services.rag_search.EvidenceSelector import EvidenceSelector
from services.rag_search.QueryClassifier import QueryClassifier
from services.rag_search.SearchService import SearchService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.helper_config).get_client()
    rag_client = RAGClientManager(helper_config=app.state.helper_config).get_client()
    clients = [embed_client, llm_client, rag_client]

    logging.info("Booting all clients...")
    for client in clients:
        await client.boot()
    logging.info(
        "Clients booted: embed=%s llm=%s rag=%s",
        embed_client.get_provider_label(), llm_client.get_provider_label(), rag_client.get_provider_label(),
    )

    search_service = SearchService(
        helper_config=app.state.helper_config,
        rag_client=rag_client,
        search_config=app.state.helper_config.get_search_config(),
    )
    app.state.query_service = QueryService(
        helper_config=app.state.helper_config,
        embed_client=embed_client,
        llm_client=llm_client,
        search_service=search_service,
        classifier=QueryClassifier(helper_config=app.state.helper_config, llm_client=llm_client),
        evidence_selector=EvidenceSelector(helper_config=app.state.helper_config, embed_client=embed_client),
        doc_boost_rules=app.state.helper_config.get_doc_boost_rules(),
    )

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="rulebook_rag",
    description=(
        "Retrieval-augmented question answering over poker rulebooks. "
        "Contexts are served via POST /rag/retrieve, cited answers via POST /rag/answer "
        "and streamed evidence plus answer via GET /rag/ask."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(query_router)


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting rulebook_rag API Server v%s from root dir: %s on port %d...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
        int(os.environ.get("API_PORT", "8000")),
    )
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("API_PORT", "8000")))
