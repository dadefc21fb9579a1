"""Product models for document representation and request payloads."""

from datetime import datetime
from typing import Any, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Fields matched by the free-text search of list queries
PRODUCT_SEARCHABLE_FIELDS = [
    "name.first",
    "name.last",
    "description",
    "category",
    "brand",
]

# Fields only the service may write
RESERVED_FIELDS = {"id", "isDeleted", "is_deleted", "createdAt", "created_at", "updatedAt", "updated_at"}


def _reject_reserved_fields(data: Any) -> Any:
    if isinstance(data, dict):
        reserved = sorted(RESERVED_FIELDS.intersection(data))
        if reserved:
            raise ValueError(f"Fields cannot be set by clients: {', '.join(reserved)}")
    return data


class ProductName(BaseModel):
    """Structured product name. Extra string sub-fields are kept as-is."""

    model_config = ConfigDict(extra="allow")

    first: str = Field(min_length=1)
    last: Optional[str] = None

    @property
    def full_name(self) -> str:
        """All string parts of the name joined by spaces."""
        parts = [self.first, self.last]
        parts.extend((self.model_extra or {}).values())
        return " ".join(str(part) for part in parts if isinstance(part, str) and part)


class ProductNameUpdate(BaseModel):
    """Partial product name: only the sub-fields present are overwritten."""

    model_config = ConfigDict(extra="allow")

    first: Optional[str] = Field(default=None, min_length=1)
    last: Optional[str] = None


class _ProductFields(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)


class ProductCreate(_ProductFields):
    """Payload accepted when creating a product."""

    name: ProductName
    image_url: Optional[list[str]] = Field(default_factory=list, alias="imageUrl")

    @model_validator(mode="before")
    @classmethod
    def _check_reserved(cls, data: Any) -> Any:
        return _reject_reserved_fields(data)

    @field_validator("image_url", mode="before")
    @classmethod
    def _null_image_url_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ProductUpdate(_ProductFields):
    """Partial payload for updates. Every field is optional."""

    name: Optional[ProductNameUpdate] = None
    image_url: Optional[list[str]] = Field(default=None, alias="imageUrl")

    @model_validator(mode="before")
    @classmethod
    def _check_reserved(cls, data: Any) -> Any:
        return _reject_reserved_fields(data)


class Product(_ProductFields):
    """A product document as stored in the products container."""

    id: str
    name: ProductName
    image_url: list[str] = Field(default_factory=list, alias="imageUrl")
    is_deleted: bool = Field(default=False, alias="isDeleted")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "Product":
        """Build a Product from a raw document, dropping Cosmos system properties."""
        return cls.model_validate(strip_system_properties(document))

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON document shape stored in Cosmos DB."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def strip_system_properties(document: dict[str, Any]) -> dict[str, Any]:
    """Remove Cosmos DB system properties (_rid, _self, _etag, _attachments, _ts)."""
    return {key: value for key, value in document.items() if not key.startswith("_")}


def scalar_field_types(model: type[BaseModel]) -> dict[str, type]:
    """Top-level bool, int and float fields of a model, keyed by their alias."""
    types: dict[str, type] = {}
    for name, field in model.model_fields.items():
        candidates = [arg for arg in get_args(field.annotation) if arg is not type(None)] or [field.annotation]
        if len(candidates) == 1 and candidates[0] in (bool, int, float):
            types[field.alias or name] = candidates[0]
    return types


# Filter values for these fields are cast before querying; all others stay strings
PRODUCT_FIELD_TYPES = scalar_field_types(Product)
