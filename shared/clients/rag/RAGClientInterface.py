from abc import abstractmethod

from shared.clients.ClientInterface import ClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.exceptions.errors import StoreError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.identity import PointId
from shared.models.document import DocumentPoint, SearchHit, StoredPoint


class RAGClientInterface(ClientInterface):
    """Vector store adapter bound to one named collection.

    Every engine (remote index or in-process double) implements the same
    contract: idempotent collection creation, upsert-by-id as an atomic
    overwrite, idempotent deletes, thresholded similarity search and stable
    cursor-based scrolling.
    """

    request_error_class = StoreError

    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)

    ##########################################
    ############### CHECKER ##################
    ##########################################

    @abstractmethod
    def validate_point_id(self, point_id: PointId) -> None:
        """
        Checks that the backend can store a point under this id. Runs before any network call.

        Raises:
            ValidationError: If the id is not acceptable to the backend.
        """
        pass

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "rag"
        """
        return "rag"

    @abstractmethod
    def get_collection_name(self) -> str:
        """
        Returns the name of the collection this client operates on.
        """
        pass

    ##########################################
    ############### REQUESTS #################
    ##########################################

    @abstractmethod
    async def do_existence_check(self) -> bool:
        """Check if the collection exists in the rag backend.

        Returns:
            bool: True if the collection exists, False otherwise.

        Raises:
            StoreError: If the backend cannot answer.
        """
        pass

    @abstractmethod
    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        """Create the collection. A concurrent "already exists" outcome counts as success.

        Args:
            vector_size (int): The size of the vectors in the collection.
            distance (str): The distance metric for the vectors.

        Raises:
            StoreError: If creation fails for any other reason.
        """
        pass

    @abstractmethod
    async def do_retrieve(self, ids: list[PointId], with_payload: bool = True, with_vector: bool = False) -> list[StoredPoint]:
        """Look up points by id.

        Returns:
            list[StoredPoint]: The matching points; empty when none match.
        """
        pass

    @abstractmethod
    async def do_upsert_points(self, points: list[DocumentPoint]) -> None:
        """Insert new points or replace existing ones with the same ID.

        Replacement is atomic from the caller's point of view.

        Raises:
            StoreError: If the backend rejects the points (e.g. vector size mismatch).
        """
        pass

    @abstractmethod
    async def do_delete_points(self, ids: list[PointId]) -> None:
        """Delete points by id. Missing ids are ignored.

        Raises:
            StoreError: On transport or backend failure.
        """
        pass

    @abstractmethod
    async def do_delete_points_by_filter(self, filter: dict) -> None:
        """Delete all points matching the filter. An empty filter matches every point.

        Raises:
            StoreError: On transport or backend failure.
        """
        pass

    @abstractmethod
    async def do_search(self, vector: list[float], limit: int, score_threshold: float | None = None, with_payload: bool = True) -> list[SearchHit]:
        """Nearest-neighbour search.

        Args:
            vector (list[float]): Unit-normalised query vector.
            limit (int): Maximum number of hits.
            score_threshold (float | None): Hits scoring below this are excluded.
            with_payload (bool): Attach the payload to each hit.

        Returns:
            list[SearchHit]: Hits in descending score order. Tie order is unspecified.
        """
        pass

    @abstractmethod
    async def do_scroll(self, limit: int, offset: PointId | None = None, with_payload: bool = True, with_vector: bool = False) -> ScrollResult:
        """Read a single page of points ordered by id.

        Args:
            limit (int): The maximum number of points per page.
            offset (PointId | None): Cursor from the previous page's next_page_offset.
                                     None starts from the beginning of the collection.

        Returns:
            ScrollResult: The page, with next_page_offset None on the last page.
        """
        pass

    ##########################################
    ############ COMPOSED REQUESTS ###########
    ##########################################

    async def do_ensure_collection(self, vector_size: int, distance: str = "Cosine") -> bool:
        """Create the collection if it does not exist yet.

        Returns:
            bool: True if the collection was created, False if it already existed.

        Raises:
            StoreError: If the existence check or the creation fails.
        """
        if await self.do_existence_check():
            self.logging.info("Collection '%s' already exists.", self.get_collection_name())
            return False
        await self.do_create_collection(vector_size=vector_size, distance=distance)
        self.logging.info("Collection '%s' created (size=%d, distance=%s).", self.get_collection_name(), vector_size, distance)
        return True

    async def do_delete_all(self) -> None:
        """Remove every point in the collection using the match-everything empty filter."""
        await self.do_delete_points_by_filter({})
