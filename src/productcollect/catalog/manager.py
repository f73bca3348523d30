"""SKU catalog lookups.

The catalog stands in for the product system that owns SKUs. Collect
records only hold a ``sku_id``; titles and thumbnails are resolved here at
display time.
"""

import logging
from typing import Any, Iterable, Optional

from sqlalchemy import select

from ..db.sqlite import Database
from ..exceptions import SkuNotFound
from .models import Sku

logger = logging.getLogger(__name__)


class SkuCatalog:
    """Read and register catalog SKUs."""

    def __init__(self, db: Database):
        """Initialize the catalog.

        Args:
            db: Database instance
        """
        self.db = db

    def add_sku(
        self,
        sku_id: str,
        title: str,
        thumbs: Optional[list[Any]] = None,
        gtin: Optional[str] = None,
        unit: Optional[str] = None,
        valid: bool = True,
    ) -> Sku:
        """Register a SKU, or update the title/thumbs of an existing one."""
        with self.db.get_session() as session:
            sku = session.get(Sku, sku_id)
            if sku is None:
                sku = Sku(id=sku_id, title=title)
                session.add(sku)
            else:
                sku.title = title

            sku.thumbs = thumbs
            sku.gtin = gtin
            sku.unit = unit
            sku.valid = valid
            session.flush()
            session.expunge(sku)

        logger.debug("Registered sku %s", sku_id)
        return sku

    def get_sku(self, sku_id: str) -> Optional[Sku]:
        """Get a SKU by id."""
        with self.db.get_session() as session:
            sku = session.get(Sku, sku_id)
            if sku:
                session.expunge(sku)
            return sku

    def require_sku(self, sku_id: str) -> Sku:
        """Get a SKU by id.

        Raises:
            SkuNotFound: If the SKU does not exist
        """
        sku = self.get_sku(sku_id)
        if sku is None:
            raise SkuNotFound(sku_id)
        return sku

    def list_skus(self, limit: int = 100) -> list[Sku]:
        """List SKUs ordered by title."""
        with self.db.get_session() as session:
            stmt = select(Sku).order_by(Sku.title, Sku.id).limit(limit)
            skus = list(session.execute(stmt).scalars().all())
            for sku in skus:
                session.expunge(sku)
            return skus

    def describe(self, sku_id: str) -> tuple[Optional[str], Optional[str]]:
        """Return (title, thumbnail url) for display; (None, None) if unknown."""
        sku = self.get_sku(sku_id)
        if sku is None:
            return None, None
        return sku.title, sku.thumb

    def describe_many(self, sku_ids: Iterable[str]) -> dict[str, tuple[str, Optional[str]]]:
        """Resolve several SKUs at once; unknown ids are left out."""
        ids = list(dict.fromkeys(sku_ids))
        if not ids:
            return {}

        with self.db.get_session() as session:
            stmt = select(Sku).where(Sku.id.in_(ids))
            return {sku.id: (sku.title, sku.thumb) for sku in session.execute(stmt).scalars()}
