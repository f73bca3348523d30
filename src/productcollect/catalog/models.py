"""SQLAlchemy model for catalog SKUs.

Tables:
- skus: Product variants that users can collect
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.identity import utcnow
from ..db.models import Base


class Sku(Base):
    """A sellable product variant."""

    __tablename__ = "skus"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    gtin: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    unit: Mapped[Optional[str]] = mapped_column(String(20))

    # List of urls or {"url": ...} dicts
    thumbs: Mapped[Optional[list[Any]]] = mapped_column(JSON)

    valid: Mapped[bool] = mapped_column(Boolean, default=True)

    create_time: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    def __repr__(self) -> str:
        return f"<Sku(id={self.id}, title='{self.title}')>"

    @property
    def thumb(self) -> Optional[str]:
        """URL of the first thumbnail, if any."""
        return first_thumb(self.thumbs)


def first_thumb(thumbs: Optional[list[Any]]) -> Optional[str]:
    """Resolve the display thumbnail from a SKU's thumbs list.

    The first entry wins; a dict contributes its ``url`` key, a string is
    used as-is, anything else yields None.
    """
    if not thumbs:
        return None

    first = thumbs[0]
    if isinstance(first, dict):
        url = first.get("url")
        return url if isinstance(url, str) else None
    if isinstance(first, str):
        return first
    return None
