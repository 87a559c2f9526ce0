from fastapi import APIRouter, Request

from shared.models.embedding import ListResult, RetrieveResult

router = APIRouter(tags=["retrieve"])


@router.get("/retrieve")
async def retrieve_embeddings(request: Request, q: str, top_k: int | None = None) -> RetrieveResult:
    """Search for the stored documents most similar to q.

    Args:
        request (Request): FastAPI request (provides app.state.embedding_service).
        q (str): Query text.
        top_k (int | None): Maximum number of results; out-of-range values are rejected.

    Returns:
        RetrieveResult: Ranked hits with id, score and payload.
    """
    embedding_service = request.app.state.embedding_service
    return await embedding_service.do_retrieve(q, top_k=top_k)


@router.get("/list")
async def list_embeddings(request: Request, limit: int | None = None, offset: str | None = None) -> ListResult:
    """List stored embeddings page by page, without vectors.

    Pass the returned next_offset as offset to fetch the following page.
    """
    embedding_service = request.app.state.embedding_service
    return await embedding_service.do_list(limit=limit, offset=offset)


@router.get("/health")
async def health(request: Request) -> dict:
    """Readiness probe: reports whether the embedding model is loaded."""
    embed_client = request.app.state.embed_client
    ready = embed_client.is_ready()
    return {
        "status": "ok" if ready else "starting",
        "embedder_ready": ready,
        "engine": embed_client.get_engine_name(),
    }
