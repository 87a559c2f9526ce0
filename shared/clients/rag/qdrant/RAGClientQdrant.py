from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.Scroll import ScrollResult
from shared.exceptions.errors import StoreError, ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.identity import PointId, is_uuid
from shared.models.config import EnvConfig
from shared.models.document import DocumentPoint, SearchHit, StoredPoint

# Qdrant stores integer ids as unsigned 64-bit values
_MAX_POINT_ID = 2 ** 64


class RAGClientQdrant(RAGClientInterface):
    def __init__(self, helper_config: HelperConfig):
        super().__init__(helper_config=helper_config)
        self._base_url = self.get_config_val("BASE_URL", default=None, val_type="string")
        self._api_key = self.get_config_val("API_KEY", default="", val_type="string")
        self._collection_name = self.get_config_val("COLLECTION", default="documents", val_type="string")

    ##########################################
    ############### CHECKER ##################
    ##########################################

    def validate_point_id(self, point_id: PointId) -> None:
        if isinstance(point_id, int) and not isinstance(point_id, bool) and 0 <= point_id < _MAX_POINT_ID:
            return
        if isinstance(point_id, str) and is_uuid(point_id):
            return
        raise ValidationError(
            f"Qdrant point ids must be unsigned 64-bit integers or UUIDs, got {point_id!r}. "
            "Derive a UUID from the document name instead."
        )

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def _get_engine_name(self) -> str:
        return "Qdrant"

    def get_collection_name(self) -> str:
        return self._collection_name

    ################ CONFIG ##################
    def _get_required_config(self) -> list[EnvConfig]:
        return [
            EnvConfig(env_key="BASE_URL", val_type="string", default=None),
            EnvConfig(env_key="API_KEY", val_type="string", default=""),
            EnvConfig(env_key="COLLECTION", val_type="string", default="documents")
        ]

    ################ AUTH ##################
    def _get_auth_header(self) -> dict:
        if self._api_key:
            return {"api-key": f"{self._api_key}"}
        else:
            return {}

    ################ ENDPOINTS ##################
    def _get_base_url(self) -> str:
        return self._base_url

    def _get_endpoint_healthcheck(self) -> str:
        return "/healthz"

    def _get_endpoint_collection(self) -> str:
        return f"/collections/{self._collection_name}"

    def _get_endpoint_check_collection_existence(self) -> str:
        return f"/collections/{self._collection_name}/exists"

    def _get_endpoint_points(self) -> str:
        return f"/collections/{self._collection_name}/points"

    def _get_endpoint_delete_points(self) -> str:
        return f"/collections/{self._collection_name}/points/delete"

    def _get_endpoint_search(self) -> str:
        return f"/collections/{self._collection_name}/points/search"

    def _get_endpoint_scroll(self) -> str:
        return f"/collections/{self._collection_name}/points/scroll"

    ##########################################
    ########### PAYLOAD BUILDER ##############
    ##########################################

    def get_create_collection_payload(self, vector_size: int, distance: str) -> dict:
        return {"vectors": {"size": vector_size, "distance": distance}}

    def get_upsert_payload(self, points: list[DocumentPoint]) -> dict:
        return {"points": [point.model_dump() for point in points]}

    def get_search_payload(self, vector: list[float], limit: int, score_threshold: float | None, with_payload: bool) -> dict:
        payload = {
            "vector": vector,
            "limit": limit,
            "with_payload": with_payload,
        }
        if score_threshold is not None:
            payload["score_threshold"] = score_threshold
        return payload

    def get_scroll_payload(self, limit: int, offset: PointId | None, with_payload: bool, with_vector: bool) -> dict:
        payload = {
            "limit": limit,
            "with_payload": with_payload,
            "with_vector": with_vector,
        }
        if offset is not None:
            payload["offset"] = offset
        return payload

    def get_delete_payload(self, filter: dict) -> dict:
        return {"filter": filter}

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def extract_points(self, raw_points: list[dict]) -> list[StoredPoint]:
        return [
            StoredPoint(id=point["id"], payload=point.get("payload"), vector=point.get("vector"))
            for point in raw_points
        ]

    def extract_search_hits(self, raw_response: dict) -> list[SearchHit]:
        return [
            SearchHit(id=hit["id"], score=hit["score"], payload=hit.get("payload"))
            for hit in raw_response["result"]
        ]

    def extract_scroll_content(self, raw_response: dict) -> ScrollResult:
        result = raw_response["result"]
        return ScrollResult(
            result=self.extract_points(result["points"]),
            next_page_offset=result.get("next_page_offset"),
        )

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def do_existence_check(self) -> bool:
        resp = await self.do_request(
            method="GET",
            endpoint=self._get_endpoint_check_collection_existence(),
            raise_on_error=True,
        )
        return self.parse_response(resp, lambda body: bool(body["result"]["exists"]))

    async def do_create_collection(self, vector_size: int, distance: str = "Cosine") -> None:
        resp = await self.do_request(
            method="PUT",
            json=self.get_create_collection_payload(vector_size, distance),
            endpoint=self._get_endpoint_collection(),
        )
        if resp.status_code == 409:
            # created concurrently by another process
            self.logging.info("Collection '%s' was created concurrently.", self._collection_name)
            return
        if not resp.is_success:
            self.logging.error(
                "Failed to create collection %r: status %d, body: %s",
                self._collection_name, resp.status_code, resp.text[:500],
            )
            raise StoreError(f"Failed to create Qdrant collection {self._collection_name!r}: status {resp.status_code}.")

    async def do_retrieve(self, ids: list[PointId], with_payload: bool = True, with_vector: bool = False) -> list[StoredPoint]:
        resp = await self.do_request(
            method="POST",
            json={"ids": ids, "with_payload": with_payload, "with_vector": with_vector},
            endpoint=self._get_endpoint_points(),
            raise_on_error=True,
        )
        return self.parse_response(resp, lambda body: self.extract_points(body["result"]))

    async def do_upsert_points(self, points: list[DocumentPoint]) -> None:
        await self.do_request(
            method="PUT",
            json=self.get_upsert_payload(points),
            params={"wait": "true"},
            endpoint=self._get_endpoint_points(),
            raise_on_error=True,
        )

    async def do_delete_points(self, ids: list[PointId]) -> None:
        await self.do_request(
            method="POST",
            json={"points": ids},
            params={"wait": "true"},
            endpoint=self._get_endpoint_delete_points(),
            raise_on_error=True,
        )

    async def do_delete_points_by_filter(self, filter: dict) -> None:
        await self.do_request(
            method="POST",
            json=self.get_delete_payload(filter),
            params={"wait": "true"},
            endpoint=self._get_endpoint_delete_points(),
            raise_on_error=True,
        )

    async def do_search(self, vector: list[float], limit: int, score_threshold: float | None = None, with_payload: bool = True) -> list[SearchHit]:
        resp = await self.do_request(
            method="POST",
            json=self.get_search_payload(vector, limit, score_threshold, with_payload),
            endpoint=self._get_endpoint_search(),
            raise_on_error=True,
        )
        return self.parse_response(resp, self.extract_search_hits)

    async def do_scroll(self, limit: int, offset: PointId | None = None, with_payload: bool = True, with_vector: bool = False) -> ScrollResult:
        resp = await self.do_request(
            method="POST",
            json=self.get_scroll_payload(limit, offset, with_payload, with_vector),
            endpoint=self._get_endpoint_scroll(),
            raise_on_error=True,
        )
        return self.parse_response(resp, self.extract_scroll_content)
