"""Query router: answers natural language questions from the vector index."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from server.models.requests import QueryRequest
from server.models.responses import QueryResponse
from shared.dependencies.auth import verify_api_key
from shared.models.chunking import ChunkingStrategy

query_router = APIRouter()


def resolve_strategy(request: Request, name: str | None) -> ChunkingStrategy:
    """Resolve a per-request strategy name, defaulting to the configured one."""
    return ChunkingStrategy.resolve(
        name or request.app.state.default_strategy,
        logger=request.app.state.logging,
    )


@query_router.post(
    "/query",
    dependencies=[Depends(verify_api_key)],
    tags=["Query"],
)
async def handle_query(request: Request, body: QueryRequest) -> JSONResponse:
    """Answer a question with retrieval-augmented generation.

    Args:
        request (Request): The incoming FastAPI request (carries app state).
        body (QueryRequest): The question, top_k and an optional strategy name.

    Returns:
        JSONResponse: The answer text including the similarity trace.
    """
    request.app.state.logging.info("Query received: %r", body.question[:80])
    query_service = request.app.state.query_service
    if query_service is None:
        raise HTTPException(status_code=503, detail="Query service not available.")

    strategy = resolve_strategy(request, body.chunking_strategy)
    answer = await query_service.do_rag_query(body.question, top_k=body.top_k, strategy=strategy)
    result = QueryResponse(question=body.question, chunking_strategy=strategy.value, answer=answer)
    return JSONResponse(content=result.model_dump())
