"""Embedding service: orchestrates the embedding generator and the vector store.

upsert:   embed trimmed text → best-effort existence check → native overwrite.
delete:   idempotent removal by id, or of the whole collection.
retrieve: embed query → thresholded nearest-neighbour search.
list:     cursor-based page of points without vectors.

Delete and list never touch the embedding model.
"""

from typing import Any

from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.exceptions.errors import StoreError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.identity import PointId, normalize_point_id
from shared.models.document import DocumentPoint
from shared.models.embedding import ListedPoint, ListResult, OperationResult, RetrieveResult, UpsertResult


class EmbeddingService:
    """Keeps the vector index consistent and answers similarity queries."""

    def __init__(
        self,
        helper_config: HelperConfig,
        rag_client: RAGClientInterface,
        embed_client: EmbedClientInterface,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._rag = rag_client
        self._embed = embed_client

        self.max_top_k = helper_config.get_int_val("RETRIEVE_MAX_TOP_K", default=50, minimum=1)
        self.default_top_k = helper_config.get_int_val("RETRIEVE_DEFAULT_TOP_K", default=20, minimum=1)
        self.score_threshold = float(helper_config.get_number_val("RETRIEVE_SCORE_THRESHOLD", default=0.2))
        self.default_list_limit = helper_config.get_int_val("LIST_DEFAULT_LIMIT", default=50, minimum=1)
        if self.default_top_k > self.max_top_k:
            raise ValueError(
                f"RETRIEVE_DEFAULT_TOP_K ({self.default_top_k}) must not exceed RETRIEVE_MAX_TOP_K ({self.max_top_k})."
            )

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def _validate_point_id(self, point_id: PointId) -> PointId:
        point_id = normalize_point_id(point_id)
        self._rag.validate_point_id(point_id)
        return point_id

    def _validate_top_k(self, top_k: int | None) -> int:
        if top_k is None:
            return self.default_top_k
        if isinstance(top_k, bool) or not isinstance(top_k, int) or not 1 <= top_k <= self.max_top_k:
            raise ValidationError(f"top_k must be an integer between 1 and {self.max_top_k}, got {top_k!r}.")
        return top_k

    def _validate_limit(self, limit: int | None) -> int:
        if limit is None:
            return self.default_list_limit
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise ValidationError(f"limit must be a positive integer, got {limit!r}.")
        return limit

    async def _exists(self, point_id: PointId) -> bool:
        """Best-effort existence check. Store failures count as "does not exist"."""
        try:
            return bool(await self._rag.do_retrieve([point_id], with_payload=False, with_vector=False))
        except StoreError as exc:
            self.logging.debug("Existence check for point %r failed, assuming new point: %s", point_id, exc)
            return False

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_upsert(self, point_id: PointId, text: str, metadata: dict[str, Any] | None = None) -> UpsertResult:
        """Embed text and store it under point_id, replacing any existing point.

        The payload is {**metadata, "text": text}; a metadata key "text" never
        overrides the embedded text.

        Args:
            point_id (PointId): Caller-supplied or derived document id.
            text (str): Body text. Surrounding whitespace is trimmed before embedding.
            metadata (dict[str, Any] | None): Extra payload fields.

        Returns:
            UpsertResult: success flag, insert-vs-update message and flag.

        Raises:
            ValidationError: For malformed input. Nothing was applied.
            InitializationError | EmbeddingError: If embedding failed. Nothing was applied.
            StoreError: If the write failed after embedding (partial=True: state unknown).
        """
        point_id = self._validate_point_id(point_id)
        if not isinstance(text, str):
            raise ValidationError(f"text must be a string, got {type(text).__name__}.")
        if metadata is None:
            metadata = {}
        if not isinstance(metadata, dict) or not all(isinstance(key, str) for key in metadata):
            raise ValidationError("metadata must be a mapping with string keys.")

        text = text.strip()
        vector = await self._embed.embed_text(text)

        existed = await self._exists(point_id)
        point = DocumentPoint.from_text(point_id=point_id, text=text, vector=vector, metadata=metadata)
        try:
            await self._rag.do_upsert_points([point])
        except StoreError as exc:
            self.logging.error("Upsert of point %r failed after embedding: %s", point_id, exc)
            raise StoreError(
                f"Failed to store embedding for id {point_id!r}; the operation may or may not have been applied: {exc.message}",
                partial=True,
            ) from exc

        self.logging.info("%s point %r (%d chars).", "Updated" if existed else "Inserted", point_id, len(text))
        return UpsertResult(
            success=True,
            message="Embedding updated in store" if existed else "New embedding inserted",
            id=point_id,
            created=not existed,
        )

    async def do_delete(self, point_id: PointId) -> OperationResult:
        """Remove a point. Succeeds whether or not the point existed.

        Raises:
            ValidationError: For malformed ids.
            StoreError: On transport or store failure.
        """
        point_id = self._validate_point_id(point_id)
        await self._rag.do_delete_points([point_id])
        self.logging.info("Deleted point %r.", point_id)
        return OperationResult(success=True, message=f"Embedding with ID {point_id} removed from store")

    async def do_delete_all(self) -> OperationResult:
        """Remove every point in the collection. Irreversible; callers gate it.

        Raises:
            StoreError: On transport or store failure.
        """
        await self._rag.do_delete_all()
        self.logging.warning("Deleted all points from collection '%s'.", self._rag.get_collection_name())
        return OperationResult(success=True, message="All embeddings removed from store")

    async def do_retrieve(self, query: str, top_k: int | None = None, score_threshold: float | None = None) -> RetrieveResult:
        """Return the stored points most similar to the query.

        Args:
            query (str): The query text.
            top_k (int | None): Maximum number of results, 1..RETRIEVE_MAX_TOP_K.
                                Out-of-range values are rejected, not clamped.
            score_threshold (float | None): Minimum score; defaults to RETRIEVE_SCORE_THRESHOLD.

        Returns:
            RetrieveResult: Hits in non-increasing score order; empty if none clear the threshold.

        Raises:
            ValidationError: For malformed input, before any external call.
            InitializationError | EmbeddingError: If the query could not be embedded.
            StoreError: If the search failed.
        """
        if not isinstance(query, str):
            raise ValidationError(f"query must be a string, got {type(query).__name__}.")
        top_k = self._validate_top_k(top_k)
        threshold = self.score_threshold if score_threshold is None else float(score_threshold)

        vector = await self._embed.embed_text(query)
        hits = await self._rag.do_search(vector=vector, limit=top_k, score_threshold=threshold, with_payload=True)

        hits = [hit for hit in hits if hit.score >= threshold]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        self.logging.info("Retrieve query=%r top_k=%d -> %d result(s).", query[:80], top_k, len(hits[:top_k]))
        return RetrieveResult(results=hits[:top_k])

    async def do_list(self, limit: int | None = None, offset: PointId | None = None) -> ListResult:
        """Return one page of stored points (payload only) and the cursor for the next page.

        Args:
            limit (int | None): Page size; defaults to LIST_DEFAULT_LIMIT.
            offset (PointId | None): Cursor from a previous page; defaults to 0, the start.

        Raises:
            ValidationError: For malformed limit or offset.
            StoreError: If the scroll failed.
        """
        limit = self._validate_limit(limit)
        offset = 0 if offset is None else self._validate_point_id(offset)

        page = await self._rag.do_scroll(limit=limit, offset=offset, with_payload=True, with_vector=False)
        embeddings = [ListedPoint(id=point.id, payload=point.payload) for point in page.result]
        return ListResult(total=len(embeddings), embeddings=embeddings, next_offset=page.next_page_offset)
