"""Tests for the directory ingestion service and its runner"""

from unittest.mock import AsyncMock, patch

import pytest

from conftest import FakeEmbedClient, stored_ids
from services.ingest import ingest_runner
from services.ingest.IngestService import IngestService
from shared.exceptions.errors import StoreError, ValidationError
from shared.helper.identity import identity_for


@pytest.fixture()
def ingest_service(helper_config, service):
    return IngestService(helper_config=helper_config, embedding_service=service)


@pytest.fixture()
def docs_dir(tmp_path):
    (tmp_path / "sky.md").write_text("title: Sky\nsource: handbook\n---\nThe sky is blue.\n", encoding="utf-8")
    (tmp_path / "plain.txt").write_text("Grass grows green.", encoding="utf-8")
    (tmp_path / "empty.md").write_text("title: Nothing here\n---\n   \n", encoding="utf-8")
    (tmp_path / "nested").mkdir()
    (tmp_path / "nested" / "ignored.txt").write_text("not read", encoding="utf-8")
    return tmp_path


class TestIngestService:

    @pytest.mark.asyncio
    async def test_ingests_regular_files(self, ingest_service, rag_client, docs_dir):
        report = await ingest_service.do_ingest_directory(docs_dir)
        assert report.processed == 2
        assert report.skipped == 1
        assert report.failed == []
        assert len(await stored_ids(rag_client)) == 2

        stored = await rag_client.do_retrieve([identity_for("sky.md")])
        assert stored[0].payload == {"title": "Sky", "source": "handbook", "text": "The sky is blue."}

    @pytest.mark.asyncio
    async def test_reingest_updates_in_place(self, ingest_service, rag_client, docs_dir):
        await ingest_service.do_ingest_directory(docs_dir)
        (docs_dir / "plain.txt").write_text("Grass is now brown.", encoding="utf-8")
        await ingest_service.do_ingest_directory(docs_dir)

        assert len(await stored_ids(rag_client)) == 2
        stored = await rag_client.do_retrieve([identity_for("plain.txt")])
        assert stored[0].payload["text"] == "Grass is now brown."

    @pytest.mark.asyncio
    async def test_emptied_file_removes_its_point(self, ingest_service, rag_client, docs_dir):
        await ingest_service.do_ingest_directory(docs_dir)
        (docs_dir / "plain.txt").write_text("title: Cleared\n---\n", encoding="utf-8")
        report = await ingest_service.do_ingest_directory(docs_dir)

        assert report.processed == 1
        assert report.skipped == 2
        assert await rag_client.do_retrieve([identity_for("plain.txt")]) == []
        assert await stored_ids(rag_client) == [identity_for("sky.md")]

    @pytest.mark.asyncio
    async def test_failing_file_does_not_stop_the_rest(self, ingest_service, rag_client, docs_dir):
        (docs_dir / "binary.bin").write_bytes(b"\xff\xfe\x00garbage")
        report = await ingest_service.do_ingest_directory(docs_dir)
        assert report.failed == ["binary.bin"]
        assert report.processed == 2

    @pytest.mark.asyncio
    async def test_store_failures_are_reported(self, ingest_service, rag_client, docs_dir):
        rag_client.do_upsert_points = AsyncMock(side_effect=StoreError("down"))
        report = await ingest_service.do_ingest_directory(docs_dir)
        assert sorted(report.failed) == ["plain.txt", "sky.md"]
        assert report.processed == 0

    @pytest.mark.asyncio
    async def test_missing_directory(self, ingest_service, tmp_path):
        with pytest.raises(ValidationError):
            await ingest_service.do_ingest_directory(tmp_path / "missing")

    @pytest.mark.asyncio
    async def test_empty_directory(self, ingest_service, tmp_path):
        report = await ingest_service.do_ingest_directory(tmp_path)
        assert report.processed == 0 and report.skipped == 0 and report.failed == []


class TestIngestRunner:

    def test_parse_args(self):
        assert ingest_runner.parse_args(["docs"]).directory == "docs"
        assert ingest_runner.parse_args([]).directory is None

    @pytest.mark.asyncio
    async def test_main_ingests_directory(self, embed_client, docs_dir):
        with patch.object(ingest_runner.EmbedClientManager, "get_client", return_value=embed_client):
            exit_code = await ingest_runner.main([str(docs_dir)])
        assert exit_code == 0
        assert embed_client.load_calls == 1

    @pytest.mark.asyncio
    async def test_main_fails_when_embedder_unavailable(self, helper_config, docs_dir):
        broken = FakeEmbedClient(helper_config, fail_loads=1)
        with patch.object(ingest_runner.EmbedClientManager, "get_client", return_value=broken):
            exit_code = await ingest_runner.main([str(docs_dir)])
        assert exit_code == 1

    @pytest.mark.asyncio
    async def test_main_missing_directory(self, embed_client, tmp_path):
        with patch.object(ingest_runner.EmbedClientManager, "get_client", return_value=embed_client):
            exit_code = await ingest_runner.main([str(tmp_path / "missing")])
        assert exit_code == 1
