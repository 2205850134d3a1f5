"""FastAPI application entry point for the ontology RAG bridge API."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from server.api.routers.IndexRouter import index_router
from server.api.routers.QueryRouter import query_router
from server.models.responses import HealthResponse
from services.rag_indexing.IndexingService import IndexingService
from services.rag_query.QueryService import QueryService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.graph.neo4j.GraphClientNeo4j import GraphClientNeo4j
from shared.clients.llm.LLMClientManager import LLMClientManager
from shared.clients.rag.chroma.RAGStoreChroma import RAGStoreChroma
from shared.exceptions import GraphQueryFailed, IndexIOError, ProviderRequestFailed
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown."""
    app.state.logging = logging
    app.state.config = HelperConfig(logger=logging)
    app.state.default_strategy = app.state.config.get_string_val("CHUNKING_STRATEGY", default="")

    # Initialise clients
    embed_client = EmbedClientManager(helper_config=app.state.config).get_client()
    llm_client = LLMClientManager(helper_config=app.state.config).get_client()
    await embed_client.boot()
    await llm_client.boot()

    # the graph is optional; without it the structured query branch is off
    graph_client = None
    if app.state.config.get_bool_val("GRAPH_ENABLED", default=True):
        graph_client = GraphClientNeo4j(helper_config=app.state.config)
        await graph_client.boot()
        try:
            await graph_client.do_verify_connectivity()
        except GraphQueryFailed as e:
            logging.warning("Graph not reachable (%s). Continuing without graph.", e.reason)
            await graph_client.close()
            graph_client = None
    app.state.graph_client = graph_client

    rag_store = RAGStoreChroma(helper_config=app.state.config, dimension=embed_client.get_dimension())

    # Wire up services
    app.state.indexing_service = IndexingService(
        helper_config=app.state.config,
        embed_client=embed_client,
        rag_store=rag_store,
    )
    app.state.query_service = QueryService(
        helper_config=app.state.config,
        embed_client=embed_client,
        rag_store=rag_store,
        llm_client=llm_client,
        graph_client=graph_client,
    )

    logging.info("Ontology RAG Bridge API ready.", color="green")
    try:
        yield
    finally:
        # Shutdown
        rag_store.close()
        await embed_client.close()
        await llm_client.close()
        if graph_client:
            await graph_client.close()
        logging.info("Ontology RAG Bridge API shut down.")


app = FastAPI(
    title="Ontology RAG Bridge",
    description="Retrieval-augmented question answering over ontologies and property graphs.",
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
app.include_router(index_router)


##########################################
############ ERROR HANDLERS ##############
##########################################

@app.exception_handler(ProviderRequestFailed)
async def handle_provider_failure(request: Request, exc: ProviderRequestFailed) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc), "status_code": exc.status_code})


@app.exception_handler(GraphQueryFailed)
async def handle_graph_failure(request: Request, exc: GraphQueryFailed) -> JSONResponse:
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@app.exception_handler(IndexIOError)
async def handle_index_failure(request: Request, exc: IndexIOError) -> JSONResponse:
    request.app.state.logging.error("Vector index error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def handle_value_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/health", tags=["Health"])
async def health(request: Request) -> JSONResponse:
    stats = await asyncio.to_thread(request.app.state.query_service.do_get_stats)
    result = HealthResponse(
        status="ok",
        version=app_version,
        graph_enabled=request.app.state.graph_client is not None,
        document_count=stats.document_count,
    )
    return JSONResponse(content=result.model_dump())


# Server Start
if __name__ == "__main__":
    import uvicorn
    logging.info(f"Starting Ontology RAG Bridge API v{app_version} on port 8000...")
    uvicorn.run(app, host="0.0.0.0", port=8000)
