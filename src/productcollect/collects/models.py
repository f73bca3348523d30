"""SQLAlchemy model for product collects.

Tables:
- product_collects: One row per (user, SKU) a user has collected
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from ..db.models import Base
from .schemas import CollectStatus


class ProductCollect(Base):
    """A user's collect record for one SKU."""

    __tablename__ = "product_collects"

    # Assigned by the store on first save
    id: Mapped[str] = mapped_column(String(20), primary_key=True)

    user_id: Mapped[str] = mapped_column(String(32), nullable=False)
    # Reference into the external catalog, never repointed
    sku_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CollectStatus.ACTIVE.value
    )
    collect_group: Mapped[Optional[str]] = mapped_column(String(50), index=True)
    note: Mapped[Optional[str]] = mapped_column(Text)

    sort_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_top: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # "metadata" is reserved on declarative classes
    extra_metadata: Mapped[Optional[dict[str, Any]]] = mapped_column("metadata", JSON)

    create_time: Mapped[Optional[datetime]] = mapped_column(DateTime)
    update_time: Mapped[Optional[datetime]] = mapped_column(DateTime, index=True)

    __table_args__ = (
        UniqueConstraint("user_id", "sku_id", name="uniq_user_sku"),
        Index("product_collects_idx_user_status", "user_id", "status"),
        Index("product_collects_idx_sort_top", "is_top", "sort_number"),
        CheckConstraint("sort_number >= 0", name="ck_sort_number_non_negative"),
    )

    def __init__(self, **kwargs: Any):
        kwargs.setdefault("status", CollectStatus.ACTIVE.value)
        kwargs.setdefault("sort_number", 0)
        kwargs.setdefault("is_top", False)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<ProductCollect(id={self.id}, user_id='{self.user_id}', sku_id='{self.sku_id}', status={self.status})>"

    def __str__(self) -> str:
        return f"ProductCollect[{self.id}] User:{self.user_id} SKU:{self.sku_id}"

    @validates("sku_id")
    def _validate_sku_id(self, key: str, value: str) -> str:
        current = self.__dict__.get("sku_id")
        if current is not None and self.id is not None and value != current:
            raise ValueError("sku_id cannot be changed once the collect is saved")
        return value

    @validates("status")
    def _validate_status(self, key: str, value: "CollectStatus | str") -> str:
        return CollectStatus.parse(value).value

    @validates("sort_number")
    def _validate_sort_number(self, key: str, value: int) -> int:
        if value < 0:
            raise ValueError("sort_number must be greater than or equal to 0")
        return value

    @property
    def status_enum(self) -> CollectStatus:
        """Get status as enum."""
        return CollectStatus(self.status)

    @property
    def is_active(self) -> bool:
        return self.status_enum.is_active

    @property
    def is_cancelled(self) -> bool:
        return self.status_enum.is_cancelled

    @property
    def is_hidden(self) -> bool:
        return self.status_enum.is_hidden

    def activate(self) -> None:
        self.status = CollectStatus.ACTIVE.value

    def cancel(self) -> None:
        self.status = CollectStatus.CANCELLED.value

    def hide(self) -> None:
        self.status = CollectStatus.HIDDEN.value

    def set_top(self, is_top: bool = True) -> None:
        self.is_top = is_top
