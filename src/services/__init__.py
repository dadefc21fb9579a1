"""Service layer."""

from src.services.product_service import ProductService, apply_update, flatten_product_update

__all__ = ["ProductService", "apply_update", "flatten_product_update"]
