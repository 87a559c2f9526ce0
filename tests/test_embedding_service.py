"""Tests for services.embedding.EmbeddingService"""

import asyncio
from unittest.mock import AsyncMock

import httpx
import pytest

from conftest import FakeEmbedClient, stored_ids
from services.embedding.EmbeddingService import EmbeddingService
from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.exceptions.errors import InitializationError, StoreError, ValidationError
from shared.helper.identity import identity_for


class TestUpsert:

    @pytest.mark.asyncio
    async def test_insert_then_retrieve(self, service):
        result = await service.do_upsert("doc1", "The sky is blue")
        assert result.success is True
        assert result.created is True
        assert result.message == "New embedding inserted"

        found = await service.do_retrieve("sky color", top_k=1)
        assert len(found.results) == 1
        hit = found.results[0]
        assert hit.id == "doc1"
        assert hit.payload["text"] == "The sky is blue"
        assert hit.score >= 0.2

    @pytest.mark.asyncio
    async def test_second_upsert_replaces(self, service, rag_client):
        await service.do_upsert("doc1", "A")
        result = await service.do_upsert("doc1", "B")
        assert result.created is False
        assert result.message == "Embedding updated in store"

        page = await service.do_list()
        assert page.total == 1
        assert page.embeddings[0].payload["text"] == "B"
        assert len(await stored_ids(rag_client)) == 1

    @pytest.mark.asyncio
    async def test_payload_is_metadata_plus_trimmed_text(self, service, rag_client):
        await service.do_upsert("doc1", "  padded text \n", {"title": "T", "text": "ignored"})
        stored = await rag_client.do_retrieve(["doc1"], with_vector=True)
        assert stored[0].payload == {"title": "T", "text": "padded text"}
        assert stored[0].vector == await service._embed.embed_text("padded text")

    @pytest.mark.asyncio
    async def test_digit_string_ids_address_integer_points(self, service):
        await service.do_upsert("42", "integer id")
        await service.do_delete(42)
        assert (await service.do_list()).total == 0

    @pytest.mark.asyncio
    async def test_concurrent_upserts_leave_one_point(self, service, rag_client):
        await asyncio.gather(*[service.do_upsert("doc1", f"version {i}") for i in range(10)])
        assert len(await stored_ids(rag_client)) == 1
        stored = await rag_client.do_retrieve(["doc1"])
        assert stored[0].payload["text"] in {f"version {i}" for i in range(10)}

    @pytest.mark.asyncio
    async def test_invalid_input_touches_nothing(self, service, embed_client, rag_client):
        for bad_call in (
            service.do_upsert("", "text"),
            service.do_upsert("doc1", 5),
            service.do_upsert("doc1", "text", ["not", "a", "dict"]),
            service.do_upsert(True, "text"),
        ):
            with pytest.raises(ValidationError):
                await bad_call
        assert embed_client.embed_calls == 0
        assert len(await stored_ids(rag_client)) == 0

    @pytest.mark.asyncio
    async def test_embedder_unavailable(self, helper_config, rag_client):
        embed_client = FakeEmbedClient(helper_config, fail_loads=5)
        service = EmbeddingService(helper_config=helper_config, rag_client=rag_client, embed_client=embed_client)
        with pytest.raises(InitializationError) as exc_info:
            await service.do_upsert("doc1", "text")
        assert exc_info.value.partial is False
        assert len(await stored_ids(rag_client)) == 0

    @pytest.mark.asyncio
    async def test_store_failure_after_embedding_is_partial(self, service, rag_client):
        rag_client.do_upsert_points = AsyncMock(side_effect=StoreError("index unreachable"))
        with pytest.raises(StoreError) as exc_info:
            await service.do_upsert("doc1", "text")
        assert exc_info.value.partial is True
        assert "index unreachable" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_failed_existence_check_does_not_block_write(self, service, rag_client):
        rag_client.do_retrieve = AsyncMock(side_effect=StoreError("timeout"))
        result = await service.do_upsert("doc1", "text")
        assert result.created is True
        assert len(await stored_ids(rag_client)) == 1


class TestUpsertOnQdrant:

    @staticmethod
    def _service(helper_config, embed_client, monkeypatch, handler) -> EmbeddingService:
        monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant:6333")
        monkeypatch.setenv("RAG_QDRANT_COLLECTION", "docs")
        rag_client = RAGClientQdrant(helper_config)
        rag_client._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return EmbeddingService(helper_config=helper_config, rag_client=rag_client, embed_client=embed_client)

    @pytest.mark.asyncio
    async def test_id_beyond_64_bits_rejected_before_embedding(self, helper_config, embed_client, monkeypatch):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"result": {}})

        service = self._service(helper_config, embed_client, monkeypatch, handler)
        with pytest.raises(ValidationError):
            await service.do_upsert(2 ** 64, "text")
        assert embed_client.embed_calls == 0
        assert requests == []

    @pytest.mark.asyncio
    async def test_unreadable_existence_reply_still_inserts(self, helper_config, embed_client, monkeypatch):
        writes = []

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "POST" and request.url.path == "/collections/docs/points":
                return httpx.Response(200, text="<html>gateway</html>")
            if request.method == "PUT" and request.url.path == "/collections/docs/points":
                writes.append(request)
                return httpx.Response(200, json={"result": {"status": "completed"}})
            return httpx.Response(404, json={"status": {"error": "Not found"}})

        service = self._service(helper_config, embed_client, monkeypatch, handler)
        point_id = identity_for("a.txt")
        result = await service.do_upsert(point_id, "text")
        assert result.created is True
        assert len(writes) == 1


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, service):
        await service.do_upsert("doc1", "text")
        first = await service.do_delete("doc1")
        second = await service.do_delete("doc1")
        assert first.success and second.success
        assert first.message == "Embedding with ID doc1 removed from store"
        assert (await service.do_list()).total == 0

    @pytest.mark.asyncio
    async def test_delete_never_loads_model(self, service, embed_client):
        await service.do_delete("missing")
        assert embed_client.load_calls == 0

    @pytest.mark.asyncio
    async def test_delete_all(self, service):
        for i in range(5):
            await service.do_upsert(f"doc{i}", f"text {i}")
        result = await service.do_delete_all()
        assert result.message == "All embeddings removed from store"

        page = await service.do_list()
        assert page.embeddings == []
        assert page.next_offset is None

    @pytest.mark.asyncio
    async def test_delete_all_on_empty_collection(self, service):
        assert (await service.do_delete_all()).success is True

    @pytest.mark.asyncio
    async def test_store_failure_propagates(self, service, rag_client):
        rag_client.do_delete_points = AsyncMock(side_effect=StoreError("down"))
        with pytest.raises(StoreError):
            await service.do_delete("doc1")


class TestRetrieve:

    @pytest.mark.asyncio
    async def test_results_above_threshold_and_sorted(self, service):
        await service.do_upsert("sky", "the sky is blue")
        await service.do_upsert("sky2", "blue sky over the sea today")
        await service.do_upsert("grass", "grass grows green")

        found = await service.do_retrieve("blue sky", top_k=10)
        ids = [hit.id for hit in found.results]
        assert "grass" not in ids
        assert set(ids) == {"sky", "sky2"}
        scores = [hit.score for hit in found.results]
        assert scores == sorted(scores, reverse=True)
        assert all(score >= 0.2 for score in scores)

    @pytest.mark.asyncio
    async def test_no_match_is_empty_not_error(self, service):
        await service.do_upsert("sky", "the sky is blue")
        found = await service.do_retrieve("quantum chromodynamics")
        assert found.results == []

    @pytest.mark.asyncio
    async def test_empty_store(self, service):
        assert (await service.do_retrieve("anything")).results == []

    @pytest.mark.asyncio
    async def test_top_k_bounds_results(self, service):
        for i in range(5):
            await service.do_upsert(f"doc{i}", f"shared words number {i}")
        found = await service.do_retrieve("shared words", top_k=3)
        assert len(found.results) == 3

    @pytest.mark.asyncio
    @pytest.mark.parametrize("top_k", [0, 51, -1, True, 2.5])
    async def test_top_k_out_of_range_rejected_before_embedding(self, service, embed_client, top_k):
        with pytest.raises(ValidationError):
            await service.do_retrieve("sky", top_k=top_k)
        assert embed_client.embed_calls == 0

    @pytest.mark.asyncio
    async def test_top_k_limits_configurable(self, helper_config, rag_client, embed_client, monkeypatch):
        monkeypatch.setenv("RETRIEVE_MAX_TOP_K", "5")
        monkeypatch.setenv("RETRIEVE_DEFAULT_TOP_K", "2")
        service = EmbeddingService(helper_config=helper_config, rag_client=rag_client, embed_client=embed_client)
        assert service.default_top_k == 2
        with pytest.raises(ValidationError):
            await service.do_retrieve("sky", top_k=6)

    def test_default_top_k_above_max_is_config_error(self, helper_config, rag_client, embed_client, monkeypatch):
        monkeypatch.setenv("RETRIEVE_DEFAULT_TOP_K", "60")
        with pytest.raises(ValueError):
            EmbeddingService(helper_config=helper_config, rag_client=rag_client, embed_client=embed_client)

    @pytest.mark.asyncio
    async def test_custom_threshold(self, service):
        await service.do_upsert("sky", "the sky is blue")
        strict = await service.do_retrieve("sky", score_threshold=0.99)
        assert strict.results == []


class TestList:

    @pytest.mark.asyncio
    async def test_pagination_covers_every_point_once(self, service):
        ids = [f"doc{i:02d}" for i in range(12)]
        for point_id in ids:
            await service.do_upsert(point_id, f"text {point_id}")

        seen = []
        offset = None
        pages = 0
        while True:
            page = await service.do_list(limit=5, offset=offset)
            pages += 1
            assert page.total == len(page.embeddings)
            seen.extend(item.id for item in page.embeddings)
            offset = page.next_offset
            if offset is None:
                break

        assert pages == 3
        assert sorted(seen) == ids

    @pytest.mark.asyncio
    async def test_list_hides_vectors(self, service):
        await service.do_upsert("doc1", "text", {"source": "unit"})
        page = await service.do_list()
        item = page.embeddings[0].model_dump()
        assert item == {"id": "doc1", "payload": {"source": "unit", "text": "text"}}

    @pytest.mark.asyncio
    async def test_default_limit(self, service):
        for i in range(55):
            await service.do_upsert(i, f"text {i}")
        page = await service.do_list()
        assert page.total == 50
        assert page.next_offset == 50

    @pytest.mark.asyncio
    @pytest.mark.parametrize("limit", [0, -1, True])
    async def test_invalid_limit(self, service, limit):
        with pytest.raises(ValidationError):
            await service.do_list(limit=limit)

    @pytest.mark.asyncio
    async def test_list_never_loads_model(self, service, embed_client):
        await service.do_list()
        assert embed_client.load_calls == 0
