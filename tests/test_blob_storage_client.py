"""Tests for BlobStorageClient image uploads."""

import pytest
from azure.core.exceptions import ServiceRequestError

from src.clients import BlobStorageClient, MediaUploadError


class FakeBlobClient:
    def __init__(self, container, name):
        self._container = container
        self.name = name
        self.url = f"https://account.blob.core.windows.net/product-images/{name}"

    async def upload_blob(self, data, overwrite=False, content_settings=None):
        if self._container.fail_with is not None:
            raise self._container.fail_with
        self._container.blobs[self.name] = (data.read(), content_settings.content_type, overwrite)


class FakeContainerClient:
    def __init__(self):
        self.blobs = {}
        self.fail_with = None

    def get_blob_client(self, name):
        return FakeBlobClient(self, name)


@pytest.fixture
def fake_blob_container():
    return FakeContainerClient()


@pytest.fixture
def blob_client(fake_blob_container):
    client = BlobStorageClient(connection_string="UseDevelopmentStorage=true", container_name="product-images")
    client._container = fake_blob_container
    return client


class TestBlobStorageClient:
    """Test upload_image naming, content type and error wrapping."""

    @pytest.mark.asyncio
    async def test_upload_image(self, blob_client, fake_blob_container, tmp_path):
        path = tmp_path / "photo.JPG"
        path.write_bytes(b"jpeg-bytes")

        result = await blob_client.upload_image("Desk Lamp-1700000000000", str(path))

        assert result.blob_name == "Desk Lamp-1700000000000.jpg"
        assert result.secure_url.startswith("https://")
        assert result.secure_url.endswith(result.blob_name)
        assert fake_blob_container.blobs[result.blob_name] == (b"jpeg-bytes", "image/jpeg", True)

    @pytest.mark.asyncio
    async def test_unknown_extension_uses_octet_stream(self, blob_client, fake_blob_container, tmp_path):
        path = tmp_path / "photo"
        path.write_bytes(b"raw")

        result = await blob_client.upload_image("Desk-1", str(path))

        assert fake_blob_container.blobs[result.blob_name][1] == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_azure_error_is_wrapped(self, blob_client, fake_blob_container, tmp_path):
        path = tmp_path / "photo.png"
        path.write_bytes(b"png")
        fake_blob_container.fail_with = ServiceRequestError("connection refused")

        with pytest.raises(MediaUploadError) as exc_info:
            await blob_client.upload_image("Desk-1", str(path))

        assert isinstance(exc_info.value.__cause__, ServiceRequestError)

    @pytest.mark.asyncio
    async def test_missing_file_is_wrapped(self, blob_client, tmp_path):
        with pytest.raises(MediaUploadError):
            await blob_client.upload_image("Desk-1", str(tmp_path / "missing.png"))

    @pytest.mark.asyncio
    async def test_upload_requires_connection(self, tmp_path):
        client = BlobStorageClient(connection_string="UseDevelopmentStorage=true", container_name="images")

        with pytest.raises(RuntimeError, match="not connected"):
            await client.upload_image("Desk-1", str(tmp_path / "photo.png"))
