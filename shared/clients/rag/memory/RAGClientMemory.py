"""In-process vector store with the same contract as the Qdrant engine.

Used for local development and tests. Nothing is persisted. Every operation
completes without awaiting anything, so each one is atomic on the event loop.
"""

import numpy as np

from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.exceptions.errors import StoreError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.identity import PointId
from shared.models.config import EnvConfig
from shared.models.document import DocumentPoint, SearchHit, StoredPoint


def _order_key(point_id: PointId) -> tuple:
    # integer ids sort before string/UUID ids, as in Qdrant
    if isinstance(point_id, int):
        return (0, point_id, "")
    return (1, 0, point_id)


class RAGClientMemory(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._collection_name = self.get_config_val("COLLECTION", default="documents", val_type="string")
        self._points: dict[PointId, DocumentPoint] | None = None  # None: collection absent
        self._vector_size: int | None = None
        self._distance: str | None = None

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_point_id(self, point_id: PointId) -> None:
        if isinstance(point_id, bool) or not isinstance(point_id, (str, int)):
            raise ValidationError(f"Point id must be a string or integer, got {point_id!r}.")
        if isinstance(point_id, int) and point_id < 0:
            raise ValidationError(f"Point id must not be negative, got {point_id}.")
        if isinstance(point_id, str) and not point_id:
            raise ValidationError("Point id must not be empty.")

    def _require_collection(self) -> dict[PointId, DocumentPoint]:
        if self._points is None:
            raise StoreError(f"Collection '{self._collection_name}' does not exist.")
        return self._points

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Memory"

    def get_collection_name(self) -> str:
        return self._collection_name

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="COLLECTION", val_type="string", default="documents"),
        ]

    ##########################################
    ################# OTHER ##################
    ##########################################

    def _matches(self, point: DocumentPoint, filter: dict) -> bool:
        unsupported = set(filter) - {"must"}
        if unsupported:
            raise StoreError(f"Unsupported filter clause(s): {sorted(unsupported)}")
        for condition in filter.get("must", []):
            key = condition.get("key")
            expected = condition.get("match", {}).get("value")
            if point.payload.get(key) != expected:
                return False
        return True

    def _to_stored(self, point: DocumentPoint, with_payload: bool, with_vector: bool) -> StoredPoint:
        return StoredPoint(
            id=point.id,
            payload=dict(point.payload) if with_payload else None,
            vector=list(point.vector) if with_vector else None,
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        return self._points is not None

    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        if self._points is not None:
            return
        if distance != "Cosine":
            raise StoreError(f"Memory store only supports Cosine distance, got {distance!r}.")
        self._points = {}
        self._vector_size = vector_size
        self._distance = distance

    async def do_retrieve(self, ids: list[PointId], with_payload: bool = True, with_vector: bool = False) -> list[StoredPoint]:
        points = self._require_collection()
        return [
            self._to_stored(points[point_id], with_payload, with_vector)
            for point_id in ids
            if point_id in points
        ]

    async def do_upsert_points(self, points: list[DocumentPoint]) -> None:
        stored = self._require_collection()
        for point in points:
            if len(point.vector) != self._vector_size:
                raise StoreError(
                    f"Vector dimension error: expected dim: {self._vector_size}, got {len(point.vector)}"
                )
        for point in points:
            stored[point.id] = point.model_copy(deep=True)

    async def do_delete_points(self, ids: list[PointId]) -> None:
        points = self._require_collection()
        for point_id in ids:
            points.pop(point_id, None)

    async def do_delete_points_by_filter(self, filter: dict) -> None:
        points = self._require_collection()
        doomed = [point_id for point_id, point in points.items() if self._matches(point, filter)]
        for point_id in doomed:
            del points[point_id]

    async def do_search(self, vector: list[float], limit: int, score_threshold: float | None = None, with_payload: bool = True) -> list[SearchHit]:
        points = self._require_collection()
        query = np.asarray(vector, dtype=np.float64)
        query_norm = np.linalg.norm(query)
        hits: list[SearchHit] = []
        for point in points.values():
            candidate = np.asarray(point.vector, dtype=np.float64)
            norm = query_norm * np.linalg.norm(candidate)
            score = float(np.dot(query, candidate) / norm) if norm > 0 else 0.0
            if score_threshold is not None and score < score_threshold:
                continue
            hits.append(SearchHit(id=point.id, score=score, payload=dict(point.payload) if with_payload else None))
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:limit]

    async def do_scroll(self, limit: int, offset: PointId | None = None, with_payload: bool = True, with_vector: bool = False) -> ScrollResult:
        points = self._require_collection()
        ordered = sorted(points, key=_order_key)
        if offset is not None:
            ordered = [point_id for point_id in ordered if _order_key(point_id) >= _order_key(offset)]
        page = ordered[:limit]
        next_page_offset = ordered[limit] if len(ordered) > limit else None
        return ScrollResult(
            result=[self._to_stored(points[point_id], with_payload, with_vector) for point_id in page],
            next_page_offset=next_page_offset,
        )
