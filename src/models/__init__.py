"""Data models module."""

from src.models.pagination import PaginationMeta, ProductListResult
from src.models.product import (
    PRODUCT_FIELD_TYPES,
    PRODUCT_SEARCHABLE_FIELDS,
    Product,
    ProductCreate,
    ProductName,
    ProductNameUpdate,
    ProductUpdate,
    strip_system_properties,
)
from src.models.uploaded_file import UploadedFile

__all__ = [
    "PRODUCT_FIELD_TYPES",
    "PRODUCT_SEARCHABLE_FIELDS",
    "PaginationMeta",
    "Product",
    "ProductCreate",
    "ProductListResult",
    "ProductName",
    "ProductNameUpdate",
    "ProductUpdate",
    "UploadedFile",
    "strip_system_properties",
]
