"""Catalog module resolving SKU ids to product details."""

from .manager import SkuCatalog
from .models import Sku, first_thumb

__all__ = ["SkuCatalog", "Sku", "first_thumb"]
