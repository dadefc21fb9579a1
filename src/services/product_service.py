"""Product service: create, list, fetch, update and soft-delete products.

Writes that must be atomic (create, soft-delete) run inside a Cosmos DB
unit of work scoped to the product's partition. Image uploads happen
before the batch is committed and are not rolled back when it aborts.
"""

import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence

from azure.cosmos.exceptions import CosmosAccessConditionFailedError, CosmosResourceNotFoundError
from pydantic import ValidationError

from src.builder import QueryBuilder
from src.clients import BlobStorageClient, CosmosDBClient
from src.config.configuration import QueryConfig
from src.errors import (
    AlreadyDeletedError,
    BadRequestError,
    NotFoundError,
    TransactionConflictError,
    format_validation_errors,
)
from src.models import (
    PRODUCT_FIELD_TYPES,
    PRODUCT_SEARCHABLE_FIELDS,
    Product,
    ProductCreate,
    ProductListResult,
    ProductUpdate,
    UploadedFile,
    strip_system_properties,
)

logger = logging.getLogger(__name__)

PRODUCT_NOT_FOUND = "Product not found!"


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def flatten_product_update(payload: ProductUpdate) -> dict[str, Any]:
    """Turn a partial payload into dotted update paths.

    Sub-fields of `name` become `name.<key>` so only those are overwritten;
    every other field replaces the stored value as a whole.
    """
    data = payload.model_dump(mode="json", by_alias=True, exclude_unset=True)
    name = data.pop("name", None)

    flattened: dict[str, Any] = dict(data)
    if name:
        for key, value in name.items():
            flattened[f"name.{key}"] = value
    return flattened


def apply_update(document: dict[str, Any], updates: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of document with each dotted path set to its new value."""
    updated = dict(document)
    for path, value in updates.items():
        parts = path.split(".")
        target = updated
        for part in parts[:-1]:
            nested = target.get(part)
            nested = dict(nested) if isinstance(nested, dict) else {}
            target[part] = nested
            target = nested
        target[parts[-1]] = value
    return updated


class ProductService:
    """Service orchestrating the product container and the image store."""

    def __init__(
        self,
        cosmos_client: CosmosDBClient,
        media_client: BlobStorageClient,
        query_config: Optional[QueryConfig] = None,
    ):
        """Initialize the product service.

        Args:
            cosmos_client: Connected client for the products container.
            media_client: Connected client for product images.
            query_config: Pagination defaults for list queries.
        """
        self._cosmos = cosmos_client
        self._media = media_client
        self._query_config = query_config or QueryConfig(default_limit=10, max_limit=100)
        self._last_image_timestamp = 0

    def _image_timestamp(self) -> int:
        # Strictly increasing so images uploaded in the same millisecond keep distinct names
        timestamp = max(int(time.time() * 1000), self._last_image_timestamp + 1)
        self._last_image_timestamp = timestamp
        return timestamp

    async def create_product(
        self,
        files: Sequence[UploadedFile],
        payload: ProductCreate,
    ) -> list[Product]:
        """
        Upload the product images and insert the product atomically.

        Args:
            files: Spooled image files, uploaded one at a time in order.
            payload: Product data; existing imageUrl entries are kept first.

        Returns:
            A single-element list holding the created product.

        Raises:
            BadRequestError: If the store created no record.
            MediaUploadError: If an image upload fails.
        """
        product_id = str(uuid.uuid4())
        uploaded_urls: list[str] = []

        async with self._cosmos.transaction(partition_key=product_id) as transaction:
            try:
                for file in files:
                    image_name = f"{payload.name.full_name}-{self._image_timestamp()}"
                    upload = await self._media.upload_image(image_name, file.path)
                    uploaded_urls.append(upload.secure_url)

                now = _utcnow()
                document = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
                document.update(
                    id=product_id,
                    imageUrl=list(payload.image_url) + uploaded_urls,
                    isDeleted=False,
                    createdAt=now,
                    updatedAt=now,
                )

                transaction.create_item(document)
                created = await transaction.commit()

                if not created:
                    raise BadRequestError("Failed to create Product")
            except Exception:
                transaction.abort()
                if uploaded_urls:
                    logger.warning(
                        f"Product creation aborted, {len(uploaded_urls)} uploaded image(s) orphaned: "
                        f"{uploaded_urls}"
                    )
                raise

        logger.info(f"Created product {product_id} with {len(uploaded_urls)} new image(s)")
        return [Product.from_document(document) for document in created]

    async def list_products(self, query: Mapping[str, Any]) -> ProductListResult:
        """
        List products matching the query parameters.

        Args:
            query: Request query parameters (searchTerm, filters, sort, page, limit, fields).

        Returns:
            ProductListResult with pagination metadata and the current page.

        Raises:
            BadRequestError: If a field name or pagination value is invalid.
        """
        builder = (
            QueryBuilder(
                query,
                default_limit=self._query_config.default_limit,
                max_limit=self._query_config.max_limit,
                field_types=PRODUCT_FIELD_TYPES,
            )
            .search(PRODUCT_SEARCHABLE_FIELDS)
            .filter()
            .sort()
            .paginate()
            .fields()
        )

        page_query, page_parameters = builder.build()
        items = await self._cosmos.query_items(query=page_query, parameters=page_parameters)

        count_query, count_parameters = builder.count_query()
        counts = await self._cosmos.query_items(query=count_query, parameters=count_parameters)
        total = int(sum(counts))

        return ProductListResult(meta=builder.meta(total), result=builder.project(items))

    async def get_product(self, product_id: str) -> Product:
        """
        Fetch a product by id. Soft-deleted products are returned as well.

        Raises:
            NotFoundError: If no product has this id.
        """
        document = await self._cosmos.find_item(product_id, partition_key=product_id)
        if document is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        return Product.from_document(document)

    async def update_product(self, product_id: str, payload: ProductUpdate) -> Product:
        """
        Merge a partial payload into a product.

        Sub-fields of name are merged key by key, other fields are replaced.
        The merged document is validated before it is written back.

        Raises:
            NotFoundError: If no product has this id.
            BadRequestError: If the merged product is invalid.
            TransactionConflictError: If the product changed since it was read.
        """
        existing = await self._cosmos.find_item(product_id, partition_key=product_id)
        if existing is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)

        updates = flatten_product_update(payload)
        document = apply_update(strip_system_properties(existing), updates)
        document["updatedAt"] = _utcnow()

        try:
            product = Product.from_document(document)
        except ValidationError as e:
            details = "; ".join(
                f"{error['path']}: {error['message']}" for error in format_validation_errors(e.errors())
            )
            raise BadRequestError(f"Invalid product update: {details}") from e

        try:
            result = await self._cosmos.replace_item(
                product_id,
                product.to_document(),
                etag=existing.get("_etag"),
            )
        except CosmosAccessConditionFailedError as e:
            raise TransactionConflictError(f"Product {product_id} was modified concurrently") from e
        except CosmosResourceNotFoundError as e:
            raise NotFoundError(PRODUCT_NOT_FOUND) from e

        logger.info(f"Updated product {product_id}: {sorted(updates)}")
        return Product.from_document(result)

    async def delete_product(self, product_id: Optional[str]) -> Product:
        """
        Soft-delete a product by setting isDeleted.

        Raises:
            NotFoundError: If no product has this id.
            AlreadyDeletedError: If the product is already deleted.
            BadRequestError: If the store updated no record.
            TransactionConflictError: If the product changed since it was read.
        """
        if not product_id:
            raise NotFoundError(PRODUCT_NOT_FOUND)

        async with self._cosmos.transaction(partition_key=product_id) as transaction:
            existing = await self._cosmos.find_item(product_id, partition_key=product_id)
            if existing is None:
                raise NotFoundError(PRODUCT_NOT_FOUND)
            if existing.get("isDeleted"):
                raise AlreadyDeletedError("Product is Already Deleted!")

            document = strip_system_properties(existing)
            document.update(isDeleted=True, updatedAt=_utcnow())

            transaction.replace_item(product_id, document, etag=existing.get("_etag"))
            deleted = await transaction.commit()

            if not deleted:
                raise BadRequestError("Failed to delete Product")

        logger.info(f"Soft-deleted product {product_id}")
        return Product.from_document(deleted[0])
