"""Shared fixtures: an in-memory Cosmos container and a recording media client.

The real CosmosDBClient and CosmosTransaction run against FakeContainer, so
the unit of work, etag checks and not-found handling are exercised as in
production. FakeContainer interprets only the equality conditions of a
query; search and range conditions are ignored. Page queries are sliced by
@offset/@limit and count queries return the number of matching items.
"""

import copy
import re
import uuid
from typing import Any, Optional

import pytest
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosBatchOperationError,
    CosmosResourceNotFoundError,
)

from src.clients import CosmosDBClient, MediaUploadError, UploadResult
from src.config import QueryConfig
from src.models import UploadedFile
from src.services import ProductService


_EQUALITY_CONDITION = re.compile(r'c((?:\["\w+"\])+) = (@\w+)')


def _matches_equalities(item: dict[str, Any], query: str, values: dict[str, Any]) -> bool:
    """Apply the `c["a"]["b"] = @p` conditions of a query to one document."""
    for path, param in _EQUALITY_CONDITION.findall(query):
        current: Any = item
        for part in re.findall(r'"(\w+)"', path):
            current = current.get(part) if isinstance(current, dict) else None
        if current != values.get(param):
            return False
    return True


class FakeContainer:
    """Minimal stand-in for azure.cosmos.aio ContainerProxy."""

    def __init__(self):
        self.items: dict[str, dict[str, Any]] = {}
        self.queries: list[tuple[str, list[dict[str, Any]]]] = []
        self.batches: list[list[tuple]] = []
        self.return_empty_batch = False

    def _store(self, body: dict[str, Any]) -> dict[str, Any]:
        document = copy.deepcopy(body)
        document["_etag"] = uuid.uuid4().hex
        document["_rid"] = "rid"
        document["_ts"] = 1700000000
        self.items[document["id"]] = document
        return copy.deepcopy(document)

    async def read_item(self, item, partition_key):
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message=f"{item} not found")
        return copy.deepcopy(self.items[item])

    async def replace_item(self, item, body, etag=None, match_condition=None):
        if item not in self.items:
            raise CosmosResourceNotFoundError(status_code=404, message=f"{item} not found")
        if etag is not None and self.items[item]["_etag"] != etag:
            raise CosmosAccessConditionFailedError(status_code=412, message="etag mismatch")
        return self._store(body)

    def query_items(self, query, parameters=None, **kwargs):
        self.queries.append((query, parameters or []))
        values = {p["name"]: p["value"] for p in parameters or []}

        matching = [item for item in self.items.values() if _matches_equalities(item, query, values)]
        if query.startswith("SELECT VALUE COUNT(1)"):
            results: list[Any] = [len(matching)]
        else:
            results = [copy.deepcopy(item) for item in matching]
            if "@offset" in values:
                start = values["@offset"]
                results = results[start:start + values["@limit"]]

        async def iterate():
            for result in results:
                yield result

        return iterate()

    async def execute_item_batch(self, batch_operations, partition_key):
        self.batches.append(list(batch_operations))
        if self.return_empty_batch:
            return []

        staged = copy.deepcopy(self.items)
        responses: list[dict[str, Any]] = []
        for index, operation in enumerate(batch_operations):
            kind, args = operation[0], operation[1]
            options = operation[2] if len(operation) > 2 else {}
            status = 201 if kind == "create" else 200

            if kind == "create" and args[0]["id"] in staged:
                status = 409
            elif kind == "replace":
                current = staged.get(args[0])
                if current is None:
                    status = 404
                elif options.get("if_match_etag") not in (None, current["_etag"]):
                    status = 412

            if status >= 400:
                responses.append({"statusCode": status})
                raise CosmosBatchOperationError(
                    error_index=index,
                    headers={},
                    status_code=status,
                    message="batch failed",
                    operation_responses=responses,
                )

            body = args[0] if kind == "create" else args[1]
            staged[body["id"]] = body
            responses.append({"statusCode": status, "body": body})

        results = []
        for response in responses:
            results.append({"statusCode": response["statusCode"], "resourceBody": self._store(response["body"])})
        return results


class FakeMediaClient:
    """Records uploads; fails on the configured call number."""

    def __init__(self, fail_on_call: Optional[int] = None):
        self.uploads: list[tuple[str, str]] = []
        self.fail_on_call = fail_on_call

    async def upload_image(self, image_name: str, path: str) -> UploadResult:
        if self.fail_on_call is not None and len(self.uploads) + 1 == self.fail_on_call:
            raise MediaUploadError(f"Failed to upload image {image_name}: boom")
        self.uploads.append((image_name, path))
        blob_name = f"{image_name}.png"
        return UploadResult(secure_url=f"https://media.test/{blob_name}", blob_name=blob_name)


@pytest.fixture
def fake_container():
    return FakeContainer()


@pytest.fixture
def cosmos_client(fake_container):
    """A CosmosDBClient wired to the in-memory container."""
    client = CosmosDBClient(
        endpoint="https://test.documents.azure.com:443/",
        key="test-key",
        database_name="catalog",
        container_name="products",
    )
    client._container = fake_container
    return client


@pytest.fixture
def media_client():
    return FakeMediaClient()


@pytest.fixture
def product_service(cosmos_client, media_client):
    return ProductService(cosmos_client, media_client, QueryConfig(default_limit=10, max_limit=50))


@pytest.fixture
def image_files(tmp_path):
    """Three small image files on disk."""
    files = []
    for index in range(3):
        path = tmp_path / f"image_{index}.png"
        path.write_bytes(b"\x89PNG" + bytes([index]))
        files.append(UploadedFile(path=str(path), filename=path.name, content_type="image/png"))
    return files


def make_product_document(**overrides) -> dict[str, Any]:
    """A stored product document with sensible defaults."""
    document = {
        "id": str(uuid.uuid4()),
        "name": {"first": "Desk", "last": "Lamp"},
        "imageUrl": [],
        "isDeleted": False,
        "price": 25.0,
        "category": "lighting",
        "createdAt": "2024-01-01T00:00:00+00:00",
        "updatedAt": "2024-01-01T00:00:00+00:00",
    }
    document.update(overrides)
    return document


@pytest.fixture
def product_factory(fake_container):
    """Store products in the container; returns the stored documents."""

    def create(**overrides) -> dict[str, Any]:
        return fake_container._store(make_product_document(**overrides))

    return create


@pytest.fixture
def stored_product(product_factory):
    """One stored, non-deleted product."""
    return product_factory()
