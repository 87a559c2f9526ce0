"""FastAPI application entry point for the embedding store service."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from services.embedding.EmbeddingService import EmbeddingService
from server.routers.EmbedRouter import router as embed_router
from server.routers.RetrieveRouter import router as retrieve_router
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.exceptions.errors import InitializationError, ServiceError, StoreError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging

logging = setup_logging()
helper_config = HelperConfig(logger=logging)
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = helper_config

    embed_client = EmbedClientManager(helper_config=helper_config).get_client()
    rag_client = RAGClientManager(helper_config=helper_config).get_client()

    logging.info("Booting all clients...")
    for client in [embed_client, rag_client]:
        await client.boot()

    try:
        await check_connections(embed_client, rag_client)
        # no traffic before the collection exists and the model is loaded
        await rag_client.do_ensure_collection(
            vector_size=embed_client.embed_dimension,
            distance=embed_client.embed_distance,
        )
        await embed_client.do_initialize()
    except Exception:
        logging.critical("Startup failed, closing all clients.")
        for client in [embed_client, rag_client]:
            await client.close()
        raise
    logging.info("All clients ready.", color="green")

    app.state.embed_client = embed_client
    app.state.rag_client = rag_client
    app.state.embedding_service = EmbeddingService(
        helper_config=helper_config,
        rag_client=rag_client,
        embed_client=embed_client,
    )

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    for client in [embed_client, rag_client]:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="embedding_store",
    description=(
        "Embedding store and retrieval service for retrieval-augmented chat. "
        "Documents are embedded and upserted via POST /embed and searched via GET /retrieve."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=helper_config.get_list_val("CORS_ALLOW_ORIGINS", default=["http://localhost:8883"]),
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)

app.include_router(embed_router)
app.include_router(retrieve_router)


@app.exception_handler(ServiceError)
async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
    """Turn pipeline errors into structured failure responses."""
    logging.error("%s %s failed (%s): %s", request.method, request.url.path, exc.error_type, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def check_connections(embed_client: EmbedClientInterface, rag_client: RAGClientInterface) -> None:
    """Check connectivity to both backends on startup.

    Raises:
        StoreError: If the vector store is not reachable.
        InitializationError: If the embedding backend is not reachable.
    """
    if not await rag_client.do_healthcheck():
        raise StoreError(f"RAG client '{rag_client.get_engine_name()}' is not reachable. Cannot serve requests.")
    if not await embed_client.do_healthcheck():
        raise InitializationError(f"Embed client '{embed_client.get_engine_name()}' is not reachable. Embedding will not work.")


if __name__ == "__main__":
    import uvicorn

    port = helper_config.get_int_val("PORT", default=3000, minimum=1)
    logging.info("Starting embedding_store API Server v%s on port %d...", app_version, port)
    uvicorn.run(app, host="0.0.0.0", port=port)
