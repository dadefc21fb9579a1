"""Client modules for external services."""

from src.clients.blob_storage_client import BlobStorageClient, MediaUploadError, UploadResult
from src.clients.cosmos_transaction import CosmosTransaction
from src.clients.cosmosdb_client import CosmosDBClient

__all__ = [
    "BlobStorageClient",
    "CosmosDBClient",
    "CosmosTransaction",
    "MediaUploadError",
    "UploadResult",
]
