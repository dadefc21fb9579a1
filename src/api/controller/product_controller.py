"""REST controller for the product resource."""

import logging
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

from src.models import ProductCreate, ProductUpdate, UploadedFile
from src.services import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/products", tags=["products"])


class ApiResponse(BaseModel):
    """Envelope for successful responses."""

    success: bool = True
    statusCode: int
    message: str
    meta: Optional[dict] = None
    data: Any = None


def get_product_service(request: Request) -> ProductService:
    """Product service created during application startup."""
    return request.app.state.product_service


@contextmanager
def _spool_uploads(files: List[UploadFile]) -> Generator[List[UploadedFile], None, None]:
    """Copy uploaded files to temporary files, removed when the block exits."""
    spooled: List[UploadedFile] = []
    try:
        for upload in files:
            if not upload.filename:
                continue
            suffix = Path(upload.filename).suffix
            with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp:
                shutil.copyfileobj(upload.file, tmp)
            spooled.append(
                UploadedFile(path=tmp.name, filename=upload.filename, content_type=upload.content_type)
            )
        yield spooled
    finally:
        for file in spooled:
            try:
                os.remove(file.path)
            except OSError as e:
                logger.warning(f"Could not remove spooled upload {file.path}: {e}")


@router.post("/", status_code=201, response_model_exclude_none=True)
async def create_product(
    data: str = Form(...),
    files: Optional[List[UploadFile]] = File(default=None),
    service: ProductService = Depends(get_product_service),
) -> ApiResponse:
    """
    Create a product from a multipart request.

    The `data` form field holds the product JSON; `files` holds zero or
    more images.
    """
    try:
        payload = ProductCreate.model_validate_json(data)
    except ValidationError as e:
        raise RequestValidationError(e.errors()) from e

    with _spool_uploads(files or []) as uploads:
        created = await service.create_product(uploads, payload)

    return ApiResponse(
        statusCode=201,
        message="Product is created successfully",
        data=[product.to_document() for product in created],
    )


@router.get("/", response_model_exclude_none=True)
async def list_products(
    request: Request,
    service: ProductService = Depends(get_product_service),
) -> ApiResponse:
    """List products. Repeated query parameters become membership filters."""
    params = request.query_params
    query: dict[str, Any] = {}
    for key in params.keys():
        values = params.getlist(key)
        query[key] = values if len(values) > 1 else values[0]

    result = await service.list_products(query)
    return ApiResponse(
        statusCode=200,
        message="Products are retrieved successfully",
        meta=result.meta.to_dict(),
        data=result.result,
    )


@router.get("/{product_id}", response_model_exclude_none=True)
async def get_product(
    product_id: str,
    service: ProductService = Depends(get_product_service),
) -> ApiResponse:
    """Get a product by ID."""
    product = await service.get_product(product_id)
    return ApiResponse(
        statusCode=200,
        message="Product is retrieved successfully",
        data=product.to_document(),
    )


@router.patch("/{product_id}", response_model_exclude_none=True)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    service: ProductService = Depends(get_product_service),
) -> ApiResponse:
    """Partially update a product."""
    product = await service.update_product(product_id, payload)
    return ApiResponse(
        statusCode=200,
        message="Product is updated successfully",
        data=product.to_document(),
    )


@router.delete("/{product_id}", response_model_exclude_none=True)
async def delete_product(
    product_id: str,
    service: ProductService = Depends(get_product_service),
) -> ApiResponse:
    """Soft-delete a product."""
    product = await service.delete_product(product_id)
    return ApiResponse(
        statusCode=200,
        message="Product is deleted successfully",
        data=product.to_document(),
    )
