"""
Shared fixtures for the embedding store test suite

No test loads a real model or reaches a real Qdrant: the embedder is a
deterministic bag-of-words hasher and the store is the in-memory engine
"""

import asyncio
import hashlib
import logging
import os
import re

import numpy as np
import pytest
import pytest_asyncio

from services.embedding.EmbeddingService import EmbeddingService
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.memory.RAGClientMemory import RAGClientMemory
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from shared.models.config import EnvConfig


_MANAGED_PREFIXES = ("EMBED_", "RAG_", "RETRIEVE_", "LIST_", "INGEST_", "CORS_")


@pytest.fixture(autouse=True)
def env_vars(monkeypatch):
    """Pin every environment variable the code reads

    autouse=True ensures a developer's shell settings never leak into a test
    """
    for key in list(os.environ):
        if key.startswith(_MANAGED_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    env = {
        "EMBED_ENGINE": "local",
        "RAG_ENGINE": "memory",
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return env


@pytest.fixture()
def helper_config():
    return HelperConfig(logger=ColorLogger(logging.getLogger("tests")))


class FakeEmbedClient(EmbedClientInterface):
    """Embeds text by hashing each lowercase word into one of the vector's buckets

    Texts sharing words get a positive cosine similarity, texts without common
    words score (almost always) zero. Loading can be made to fail a number of
    times, and embedding can be made to fail, to exercise error paths
    """

    def __init__(self, helper_config, fail_loads: int = 0, load_delay: float = 0.01):
        super().__init__(helper_config=helper_config)
        self.load_calls = 0
        self.embed_calls = 0
        self.fail_loads = fail_loads
        self.fail_embeds = False
        self.load_delay = load_delay

    def _get_engine_name(self) -> str:
        return "Fake"

    def _get_default_model(self) -> str:
        return "word-hash"

    def _get_required_config(self) -> list[EnvConfig]:
        return []

    async def _load_model(self) -> int:
        self.load_calls += 1
        await asyncio.sleep(self.load_delay)
        if self.fail_loads > 0:
            self.fail_loads -= 1
            raise RuntimeError("model weights unavailable")
        return self.embed_dimension

    async def _embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.embed_calls += 1
        if self.fail_embeds:
            raise RuntimeError("model runtime failure")
        return [embed_words(text, self.embed_dimension) for text in texts]


def embed_words(text: str, dimension: int = 384) -> list[float]:
    vector = np.zeros(dimension)
    for word in re.findall(r"\w+", text.lower()):
        bucket = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % dimension
        vector[bucket] += 1.0
    return vector.tolist()


@pytest.fixture()
def embed_client(helper_config):
    return FakeEmbedClient(helper_config)


@pytest_asyncio.fixture()
async def rag_client(helper_config):
    """An in-memory store with its 384-dim collection already created"""
    client = RAGClientMemory(helper_config)
    await client.boot()
    await client.do_ensure_collection(vector_size=384, distance="Cosine")
    yield client
    await client.close()


@pytest.fixture()
def service(helper_config, rag_client, embed_client):
    return EmbeddingService(helper_config=helper_config, rag_client=rag_client, embed_client=embed_client)


async def stored_ids(rag_client) -> list:
    """Ids of every point in the store, in scroll order"""
    page = await rag_client.do_scroll(limit=10_000, with_payload=False)
    return [point.id for point in page.result]
