"""Pydantic schemas and the status enum for product collects."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ..exceptions import InvalidStatus


class CollectStatus(str, Enum):
    """Status of a collect record."""

    ACTIVE = "active"
    CANCELLED = "cancelled"
    HIDDEN = "hidden"

    @property
    def label(self) -> str:
        """Human readable label."""
        return _STATUS_LABELS[self]

    @property
    def badge_class(self) -> str:
        """Badge style used by the admin listing."""
        return _STATUS_BADGES[self]

    @property
    def is_active(self) -> bool:
        return self is CollectStatus.ACTIVE

    @property
    def is_cancelled(self) -> bool:
        return self is CollectStatus.CANCELLED

    @property
    def is_hidden(self) -> bool:
        return self is CollectStatus.HIDDEN

    @classmethod
    def parse(cls, value: "CollectStatus | str") -> "CollectStatus":
        """Coerce a raw value from an external source into a status.

        Args:
            value: A status member or its (case-insensitive) string value

        Returns:
            The matching status

        Raises:
            InvalidStatus: If the value is not a known status
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidStatus(value)

    @classmethod
    def choices(cls) -> list[tuple[str, str]]:
        """(value, label) pairs for select widgets."""
        return [(status.value, status.label) for status in cls]


_STATUS_LABELS = {
    CollectStatus.ACTIVE: "Collected",
    CollectStatus.CANCELLED: "Cancelled",
    CollectStatus.HIDDEN: "Hidden",
}

_STATUS_BADGES = {
    CollectStatus.ACTIVE: "success",
    CollectStatus.CANCELLED: "secondary",
    CollectStatus.HIDDEN: "warning",
}


# ============================================================================
# Input Schemas
# ============================================================================


class CollectCreate(BaseModel):
    """Schema for collecting a SKU."""

    user_id: str = Field(..., min_length=1, max_length=32)
    sku_id: str = Field(..., min_length=1, max_length=64)
    collect_group: Optional[str] = Field(None, max_length=50)
    note: Optional[str] = Field(None, max_length=5000)

    @field_validator("user_id", "sku_id")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


class CollectUpdate(BaseModel):
    """Schema for editing a collect record's attributes."""

    status: Optional[CollectStatus] = None
    collect_group: Optional[str] = Field(None, max_length=50)
    note: Optional[str] = Field(None, max_length=5000)
    sort_number: Optional[int] = Field(None, ge=0)
    is_top: Optional[bool] = None
    metadata: Optional[dict[str, Any]] = None


# ============================================================================
# Response Schemas
# ============================================================================


class CollectResponse(BaseModel):
    """Schema for collect record responses."""

    id: str
    user_id: str
    sku_id: str
    status: CollectStatus
    collect_group: Optional[str] = None
    note: Optional[str] = None
    sort_number: int = 0
    is_top: bool = False
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="extra_metadata")
    create_time: datetime
    update_time: datetime

    model_config = {"from_attributes": True, "populate_by_name": True}


class CollectGroupCount(BaseModel):
    """A user's collect group and how many active records it holds."""

    name: str
    count: int


class PopularSku(BaseModel):
    """A SKU and its number of active collects."""

    sku_id: str
    collect_count: int


class CollectStatistics(BaseModel):
    """Per-user counts by status."""

    total: int = 0
    active: int = 0
    cancelled: int = 0
    hidden: int = 0


class GlobalCollectStatistics(BaseModel):
    """Counts across all users."""

    total_collections: int = 0
    active_collections: int = 0
    cancelled_collections: int = 0
    unique_users: int = 0
    unique_skus: int = 0
    avg_collections_per_user: float = 0.0
