"""FastAPI application setup."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.controller import product_router
from src.api.error_handlers import register_error_handlers
from src.clients import BlobStorageClient, CosmosDBClient
from src.config import get_config
from src.services import ProductService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _connect_clients(app: FastAPI) -> AsyncIterator[None]:
    """Open the Cosmos DB and Blob Storage clients for the app's lifetime."""
    config = get_config()
    cosmos_client = CosmosDBClient(
        endpoint=config.cosmosdb.endpoint,
        key=config.cosmosdb.key,
        database_name=config.cosmosdb.database_name,
        container_name=config.cosmosdb.container_name,
        partition_key_path=config.cosmosdb.partition_key_path,
    )
    media_client = BlobStorageClient(
        connection_string=config.blob_storage.connection_string,
        container_name=config.blob_storage.container_name,
    )

    async with cosmos_client, media_client:
        app.state.product_service = ProductService(cosmos_client, media_client, config.query)
        logger.info("Product service ready")
        yield

    logger.info("Product service clients closed")


def create_app(product_service: Optional[ProductService] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        product_service: Pre-built service to use instead of connecting the
            configured clients on startup.
    """
    app = FastAPI(
        title="Product Catalog API",
        description="CRUD API for products with image uploads",
        version="1.0.0",
        lifespan=None if product_service is not None else _connect_clients,
    )
    if product_service is not None:
        app.state.product_service = product_service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production: specify frontend origin
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(product_router)

    @app.get("/health")
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()
