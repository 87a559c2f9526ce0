"""Pydantic models for documents and the points stored in the vector index.

Hierarchy:
  ParsedDocument: a raw file split into metadata and body text.
  DocumentPoint : one (id, vector, payload) triple as written to the store.
  StoredPoint   : a point as read back from the store (vector optional).
  SearchHit     : a stored point with its similarity score.
"""

from typing import Any

from pydantic import BaseModel, Field


class ParsedDocument(BaseModel):
    """Result of splitting a raw document into its metadata block and body."""

    metadata: dict[str, str] = {}
    text: str


class DocumentPoint(BaseModel):
    """A point ready to be upserted.

    The payload always contains ``text``: the exact trimmed text that produced
    the vector. Caller metadata is merged at the top level, but can never
    override ``text``.
    """

    id: str | int
    vector: list[float]
    payload: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_text(cls, point_id: str | int, text: str, vector: list[float], metadata: dict[str, Any] | None = None) -> "DocumentPoint":
        payload = {**(metadata or {}), "text": text}
        return cls(id=point_id, vector=vector, payload=payload)


class StoredPoint(BaseModel):
    """A point read back from the store via retrieve or scroll."""

    id: str | int
    payload: dict[str, Any] | None = None
    vector: list[float] | None = None


class SearchHit(BaseModel):
    """A single similarity search result."""

    id: str | int
    score: float
    payload: dict[str, Any] | None = None
