"""Index router: fills, inspects and clears the vector index."""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from server.api.routers.QueryRouter import resolve_strategy
from server.models.requests import IndexGraphRequest, IndexOntologyRequest, IndexTextRequest
from shared.dependencies.auth import verify_api_key
from shared.ontology.OntologySource import load_ontology

index_router = APIRouter(prefix="/index", dependencies=[Depends(verify_api_key)], tags=["Index"])


@index_router.post("/text")
async def handle_index_text(request: Request, body: IndexTextRequest) -> JSONResponse:
    """Chunk and index raw texts."""
    strategy = resolve_strategy(request, body.chunking_strategy)
    report = await request.app.state.indexing_service.do_index_texts(body.texts, strategy, source=body.source)
    return JSONResponse(content=report.model_dump())


@index_router.post("/graph")
async def handle_index_graph(request: Request, body: IndexGraphRequest) -> JSONResponse:
    """Index the nodes of the configured graph."""
    graph_client = request.app.state.graph_client
    if graph_client is None:
        raise HTTPException(status_code=503, detail="No graph configured.")
    strategy = resolve_strategy(request, body.chunking_strategy)
    report = await request.app.state.indexing_service.do_index_graph(graph_client, strategy)
    return JSONResponse(content=report.model_dump())


@index_router.post("/ontology")
async def handle_index_ontology(request: Request, body: IndexOntologyRequest) -> JSONResponse:
    """Index an ontology snapshot read from a path on the server."""
    strategy = resolve_strategy(request, body.chunking_strategy)
    try:
        snapshot = load_ontology(body.path)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    report = await request.app.state.indexing_service.do_index_ontology(snapshot, strategy)
    return JSONResponse(content=report.model_dump())


@index_router.get("/stats")
async def handle_index_stats(request: Request) -> JSONResponse:
    stats = await asyncio.to_thread(request.app.state.query_service.do_get_stats)
    return JSONResponse(content=stats.model_dump())


@index_router.delete("")
async def handle_index_clear(request: Request) -> JSONResponse:
    await asyncio.to_thread(request.app.state.query_service.do_clear)
    return JSONResponse(content={"status": "cleared"})
