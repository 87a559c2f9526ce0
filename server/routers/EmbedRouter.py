from fastapi import APIRouter, Request

from server.models.requests import EmbedRequest
from shared.models.embedding import OperationResult, UpsertResult

router = APIRouter(prefix="/embed", tags=["embed"])


@router.post("")
async def upsert_embedding(request: Request, body: EmbedRequest) -> UpsertResult:
    """Insert or replace the embedding stored under body.id.

    Args:
        request (Request): FastAPI request (provides app.state.embedding_service).
        body (EmbedRequest): JSON body with id, text and optional metadata.

    Returns:
        UpsertResult: Success flag and whether the point was inserted or updated.
    """
    embedding_service = request.app.state.embedding_service
    return await embedding_service.do_upsert(body.id, body.text, body.metadata)


# registered before /{point_id} so "all" is never taken for an id
@router.delete("/all")
async def delete_all_embeddings(request: Request) -> OperationResult:
    """Remove every stored embedding. Irreversible."""
    embedding_service = request.app.state.embedding_service
    return await embedding_service.do_delete_all()


@router.delete("/{point_id}")
async def delete_embedding(request: Request, point_id: str) -> OperationResult:
    """Remove one embedding. Succeeds even if the id is unknown.

    Args:
        request (Request): FastAPI request (provides app.state.embedding_service).
        point_id (str): Path id; digit-only ids address integer points.

    Returns:
        OperationResult: Success flag and message.
    """
    embedding_service = request.app.state.embedding_service
    return await embedding_service.do_delete(point_id)
