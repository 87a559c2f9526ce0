"""Ingest runner entry point.

Loads every file of a directory into the configured vector store.

Usage:
    python -m services.ingest.ingest_runner [directory]
"""

import argparse
import asyncio
import sys

from services.embedding.EmbeddingService import EmbeddingService
from services.ingest.IngestService import IngestService
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.exceptions.errors import ServiceError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Embed and store every file of a directory.")
    parser.add_argument(
        "directory",
        nargs="?",
        default=None,
        help="Directory to ingest (default: $INGEST_DIRECTORY or ./files)",
    )
    return parser.parse_args(argv)


async def main(argv: list[str] | None = None) -> int:
    """Run the ingestion pipeline. Returns the process exit code."""
    args = parse_args(argv)
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    directory = args.directory or config.get_string_val("INGEST_DIRECTORY", default="./files")

    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()

    try:
        # the embedder is required; without it there is nothing to ingest
        try:
            await embed_client.boot()
            await embed_client.do_initialize()
        except ServiceError as e:
            logger.error(f"Error initialising Embed client {embed_client.get_engine_name()}: {e}. Aborting.")
            return 1

        try:
            await rag_client.boot()
            if not await rag_client.do_healthcheck():
                logger.error(f"RAG client {rag_client.get_engine_name()} is not healthy. Aborting.")
                return 1
            await rag_client.do_ensure_collection(
                vector_size=embed_client.embed_dimension,
                distance=embed_client.embed_distance,
            )
        except ServiceError as e:
            logger.error(f"Error booting RAG client {rag_client.get_engine_name()}: {e}. Aborting.")
            return 1

        embedding_service = EmbeddingService(
            helper_config=config,
            rag_client=rag_client,
            embed_client=embed_client,
        )
        ingest_service = IngestService(helper_config=config, embedding_service=embedding_service)
        try:
            report = await ingest_service.do_ingest_directory(directory)
        except ServiceError as e:
            logger.error(f"Error reading directory: {e}")
            return 1

        logger.info("All files processed.", color="green")
        return 1 if report.failed else 0
    finally:
        await embed_client.close()
        await rag_client.close()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
