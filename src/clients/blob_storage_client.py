"""Azure Blob Storage client for product image uploads."""

import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import ContentSettings
from azure.storage.blob.aio import BlobServiceClient, ContainerClient

logger = logging.getLogger(__name__)


class MediaUploadError(Exception):
    """Custom exception for image upload failures."""

    pass


@dataclass(frozen=True)
class UploadResult:
    """Location of an uploaded image."""

    secure_url: str
    blob_name: str


class BlobStorageClient:
    """Async Blob Storage client that stores local image files under generated names.

    Supports async context manager pattern for proper resource cleanup.
    """

    def __init__(self, connection_string: str, container_name: str):
        """Initialize the Blob Storage client.

        Args:
            connection_string: Storage account connection string
            container_name: Container that receives product images
        """
        self._connection_string = connection_string
        self._container_name = container_name

        self._service: Optional[BlobServiceClient] = None
        self._container: Optional[ContainerClient] = None

    async def connect(self) -> None:
        """Open the service client and ensure the image container exists."""
        self._service = BlobServiceClient.from_connection_string(self._connection_string)
        self._container = self._service.get_container_client(self._container_name)
        try:
            await self._container.create_container(public_access="blob")
            logger.info(f"Created blob container: {self._container_name}")
        except ResourceExistsError:
            pass

    async def close(self) -> None:
        """Close the Blob Storage connection."""
        if self._service:
            await self._service.close()
            self._service = None
            self._container = None

    async def __aenter__(self) -> "BlobStorageClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False

    async def upload_image(self, image_name: str, path: str) -> UploadResult:
        """
        Upload a local image file.

        The blob is named after image_name plus the file's extension and
        overwrites any blob with the same name.

        Args:
            image_name: Generated name for the image.
            path: Local path of the file to upload.

        Returns:
            UploadResult with the https URL of the stored image.

        Raises:
            RuntimeError: If client is not connected.
            MediaUploadError: If the file cannot be read or the upload fails.
        """
        if self._container is None:
            raise RuntimeError("BlobStorage client not connected. Call connect() first.")

        blob_name = f"{image_name}{Path(path).suffix.lower()}"
        content_type, _ = mimetypes.guess_type(path)

        try:
            blob_client = self._container.get_blob_client(blob_name)
            with open(path, "rb") as data:
                await blob_client.upload_blob(
                    data,
                    overwrite=True,
                    content_settings=ContentSettings(
                        content_type=content_type or "application/octet-stream"
                    ),
                )
        except (AzureError, OSError) as e:
            raise MediaUploadError(f"Failed to upload image {image_name}: {e}") from e

        logger.info(f"Uploaded image {blob_name}")
        return UploadResult(secure_url=blob_client.url, blob_name=blob_name)
