"""Pydantic models returned by the embedding service operations."""

from typing import Any

from pydantic import BaseModel

from shared.models.document import SearchHit


class OperationResult(BaseModel):
    """Outcome of a mutating operation."""

    success: bool = True
    message: str


class UpsertResult(OperationResult):
    """Outcome of an upsert.

    ``created`` comes from a best-effort existence check made before the
    write. Under concurrent upserts to the same id it may be stale; the stored
    state itself is always a single point.
    """

    id: str | int
    created: bool


class RetrieveResult(BaseModel):
    """Ranked similarity hits, highest score first."""

    results: list[SearchHit]


class ListedPoint(BaseModel):
    """A point as shown in listings: payload only, no vector."""

    id: str | int
    payload: dict[str, Any] | None = None


class ListResult(BaseModel):
    """One page of a listing.

    ``total`` is the number of points on this page, not in the collection.
    ``next_offset`` is None on the last page.
    """

    total: int
    embeddings: list[ListedPoint]
    next_offset: str | int | None = None
