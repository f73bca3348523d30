"""Exceptions raised by the product collect core.

Every error carries an HTTP-like ``code`` so a presentation layer can map it
to a response without inspecting the message.
"""

from typing import Optional


class ProductCollectError(Exception):
    """Base exception for product collect errors."""

    code: int = 400

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class SkuNotFound(ProductCollectError):
    """Raised when a referenced SKU does not exist in the catalog."""

    code = 404

    def __init__(self, sku_id: str):
        super().__init__(f"SKU [{sku_id}] does not exist")
        self.sku_id = sku_id


class AlreadyCollected(ProductCollectError):
    """Raised when adding a SKU the user has already actively collected."""

    code = 409

    def __init__(self, user_id: Optional[str] = None, sku_id: Optional[str] = None):
        super().__init__("This product is already in the collection")
        self.user_id = user_id
        self.sku_id = sku_id


class NotCollected(ProductCollectError):
    """Raised when a (user, SKU) pair has no collect record."""

    code = 404

    def __init__(self, user_id: Optional[str] = None, sku_id: Optional[str] = None):
        super().__init__("This product is not in the collection")
        self.user_id = user_id
        self.sku_id = sku_id


class CollectionLimitExceeded(ProductCollectError):
    """Raised when a user would exceed the configured collection quota."""

    code = 429

    def __init__(self, limit: int):
        super().__init__(f"Collection count exceeds the limit [{limit}]")
        self.limit = limit


class InvalidStatus(ProductCollectError):
    """Raised when a status value is not one of the known statuses."""

    code = 400

    def __init__(self, status: object):
        super().__init__(f"Invalid collect status [{status}]")
        self.status = status


class CollectNotFound(ProductCollectError):
    """Raised when a collect record id does not exist."""

    code = 404

    def __init__(self, collect_id: Optional[str] = None):
        if collect_id is None:
            message = "Collect record does not exist"
        else:
            message = f"Collect record [{collect_id}] does not exist"
        super().__init__(message)
        self.collect_id = collect_id


class ConstraintViolation(ProductCollectError):
    """Raised when the store rejects a write on a uniqueness constraint."""

    code = 409

    def __init__(self, message: str = "Duplicate collect record for user and SKU"):
        super().__init__(message)
