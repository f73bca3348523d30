"""Persistence and retrieval of collect records.

The repository applies no business rules. It stamps ids and timestamps on
save, maps uniqueness failures to :class:`ConstraintViolation`, and answers
lookups and aggregate queries. Every read returns detached records in a
deterministic order; "not found" is ``None`` or an empty list.
"""

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.identity import generate_id, stamp, utcnow
from ..db.sqlite import Database
from ..exceptions import ConstraintViolation
from .models import ProductCollect
from .schemas import CollectGroupCount, CollectStatus, PopularSku

logger = logging.getLogger(__name__)

# Pinned first, then ascending sort weight, newest first
DEFAULT_ORDER = (
    ProductCollect.is_top.desc(),
    ProductCollect.sort_number.asc(),
    ProductCollect.create_time.desc(),
    ProductCollect.id.desc(),
)


def _status_value(status: "CollectStatus | str") -> str:
    return CollectStatus.parse(status).value


class CollectRepository:
    """Store for :class:`ProductCollect` records."""

    def __init__(
        self,
        db: Database,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = generate_id,
    ):
        """Initialize the repository.

        Args:
            db: Database instance
            clock: Source of "now" for timestamps
            id_factory: Source of new record ids
        """
        self.db = db
        self.clock = clock
        self.id_factory = id_factory

    # ========================================================================
    # Writes
    # ========================================================================

    def save(self, record: ProductCollect) -> ProductCollect:
        """Insert or update a record.

        A record without an id is inserted and gets an id and ``create_time``;
        ``update_time`` is refreshed either way.

        Raises:
            ConstraintViolation: If another record already exists for the
                same user and SKU
        """
        return self.save_all([record])[0]

    def save_all(self, records: list[ProductCollect]) -> list[ProductCollect]:
        """Persist several records in a single commit.

        Either all records are stored or none are.

        Raises:
            ConstraintViolation: If any record violates a constraint
        """
        if not records:
            return []

        now = self.clock()
        previous = [(r.id, r.create_time, r.update_time) for r in records]
        new_flags = [stamp(r, now, self.id_factory) for r in records]

        try:
            with self.db.get_session() as s:
                for record, is_new in zip(records, new_flags):
                    if is_new:
                        s.add(record)
                    else:
                        s.merge(record)
                s.flush()
                for record, is_new in zip(records, new_flags):
                    if is_new:
                        s.expunge(record)
        except IntegrityError as e:
            self._unstamp(records, previous)
            detail = str(e.orig)
            logger.warning("Collect write rejected: %s", detail)
            if "unique" in detail.lower():
                raise ConstraintViolation() from e
            raise ConstraintViolation(detail) from e
        except Exception:
            self._unstamp(records, previous)
            raise

        logger.debug("Saved %d collect record(s)", len(records))
        return records

    def remove(self, record: ProductCollect) -> bool:
        """Permanently delete a record.

        Returns:
            True if a row was deleted
        """
        if record.id is None:
            return False

        with self.db.get_session() as s:
            stored = s.get(ProductCollect, record.id)
            if stored is None:
                return False
            s.delete(stored)

        logger.debug("Removed collect %s", record.id)
        return True

    def purge_cancelled_older_than(self, cutoff: datetime) -> int:
        """Delete cancelled records last updated strictly before ``cutoff``.

        Returns:
            Number of deleted records
        """
        with self.db.get_session() as s:
            stmt = delete(ProductCollect).where(
                ProductCollect.status == CollectStatus.CANCELLED.value,
                ProductCollect.update_time < cutoff,
            )
            result = s.execute(stmt)
            deleted = result.rowcount or 0

        logger.debug("Purged %d cancelled collect(s) older than %s", deleted, cutoff)
        return deleted

    # ========================================================================
    # Lookups
    # ========================================================================

    def get(self, collect_id: str) -> Optional[ProductCollect]:
        """Get a record by id."""
        with self.db.get_session() as s:
            record = s.get(ProductCollect, collect_id)
            if record:
                s.expunge(record)
            return record

    def find_by_ids(self, collect_ids: Iterable[str]) -> list[ProductCollect]:
        """Get the records matching the given ids, in listing order."""
        ids = list(dict.fromkeys(collect_ids))
        if not ids:
            return []

        stmt = select(ProductCollect).where(ProductCollect.id.in_(ids)).order_by(*DEFAULT_ORDER)
        return self._fetch(stmt)

    def find_by_user_and_sku(self, user_id: str, sku_id: str) -> Optional[ProductCollect]:
        """Get the record for a (user, SKU) pair."""
        with self.db.get_session() as s:
            stmt = select(ProductCollect).where(
                ProductCollect.user_id == user_id,
                ProductCollect.sku_id == sku_id,
            )
            record = s.execute(stmt).scalar_one_or_none()
            if record:
                s.expunge(record)
            return record

    def find_by_user(
        self, user_id: str, status: Optional[CollectStatus] = None
    ) -> list[ProductCollect]:
        """List a user's records in default listing order."""
        stmt = select(ProductCollect).where(ProductCollect.user_id == user_id)
        if status is not None:
            stmt = stmt.where(ProductCollect.status == _status_value(status))
        return self._fetch(stmt.order_by(*DEFAULT_ORDER))

    def find_by_user_and_group(
        self,
        user_id: str,
        collect_group: Optional[str] = None,
        status: Optional[CollectStatus] = None,
    ) -> list[ProductCollect]:
        """List a user's records in one group.

        A ``None`` group matches only ungrouped records.
        """
        stmt = select(ProductCollect).where(ProductCollect.user_id == user_id)
        if collect_group is None:
            stmt = stmt.where(ProductCollect.collect_group.is_(None))
        else:
            stmt = stmt.where(ProductCollect.collect_group == collect_group)
        if status is not None:
            stmt = stmt.where(ProductCollect.status == _status_value(status))
        return self._fetch(stmt.order_by(*DEFAULT_ORDER))

    def find_top_by_user(self, user_id: str, limit: int = 10) -> list[ProductCollect]:
        """List a user's pinned active records."""
        stmt = (
            select(ProductCollect)
            .where(
                ProductCollect.user_id == user_id,
                ProductCollect.status == CollectStatus.ACTIVE.value,
                ProductCollect.is_top.is_(True),
            )
            .order_by(
                ProductCollect.sort_number.asc(),
                ProductCollect.create_time.desc(),
                ProductCollect.id.desc(),
            )
            .limit(limit)
        )
        return self._fetch(stmt)

    def find_recent_by_user(self, user_id: str, limit: int = 20) -> list[ProductCollect]:
        """List a user's most recently created active records."""
        stmt = (
            select(ProductCollect)
            .where(
                ProductCollect.user_id == user_id,
                ProductCollect.status == CollectStatus.ACTIVE.value,
            )
            .order_by(ProductCollect.create_time.desc(), ProductCollect.id.desc())
            .limit(limit)
        )
        return self._fetch(stmt)

    def find_by_sku(
        self, sku_id: str, status: Optional[CollectStatus] = None
    ) -> list[ProductCollect]:
        """List the records pointing at a SKU, newest first."""
        stmt = select(ProductCollect).where(ProductCollect.sku_id == sku_id)
        if status is not None:
            stmt = stmt.where(ProductCollect.status == _status_value(status))
        stmt = stmt.order_by(ProductCollect.create_time.desc(), ProductCollect.id.desc())
        return self._fetch(stmt)

    # ========================================================================
    # Counts and aggregates
    # ========================================================================

    def count_by_user(self, user_id: str, status: Optional[CollectStatus] = None) -> int:
        """Count a user's records, optionally by status."""
        stmt = select(func.count(ProductCollect.id)).where(ProductCollect.user_id == user_id)
        if status is not None:
            stmt = stmt.where(ProductCollect.status == _status_value(status))
        return self._scalar(stmt)

    def count_by_sku(self, sku_id: str, status: Optional[CollectStatus] = None) -> int:
        """Count the records pointing at a SKU, optionally by status."""
        stmt = select(func.count(ProductCollect.id)).where(ProductCollect.sku_id == sku_id)
        if status is not None:
            stmt = stmt.where(ProductCollect.status == _status_value(status))
        return self._scalar(stmt)

    def count_all(self, status: Optional[CollectStatus] = None) -> int:
        """Count all records, optionally by status."""
        stmt = select(func.count(ProductCollect.id))
        if status is not None:
            stmt = stmt.where(ProductCollect.status == _status_value(status))
        return self._scalar(stmt)

    def count_distinct_users(self) -> int:
        """Count users having at least one record of any status."""
        return self._scalar(select(func.count(func.distinct(ProductCollect.user_id))))

    def count_distinct_skus(self) -> int:
        """Count SKUs having at least one record of any status."""
        return self._scalar(select(func.count(func.distinct(ProductCollect.sku_id))))

    def groups_by_user(self, user_id: str) -> list[CollectGroupCount]:
        """Active record counts per named group for a user.

        Ungrouped and non-active records are left out. Ordered by count
        descending, then group name.
        """
        collect_count = func.count(ProductCollect.id).label("collect_count")
        stmt = (
            select(ProductCollect.collect_group, collect_count)
            .where(
                ProductCollect.user_id == user_id,
                ProductCollect.status == CollectStatus.ACTIVE.value,
                ProductCollect.collect_group.is_not(None),
            )
            .group_by(ProductCollect.collect_group)
            .order_by(collect_count.desc(), ProductCollect.collect_group.asc())
        )
        with self.db.get_session() as s:
            rows = s.execute(stmt).all()
        return [CollectGroupCount(name=name, count=count) for name, count in rows]

    def popular_skus(self, limit: int = 100) -> list[PopularSku]:
        """SKUs ranked by number of active records."""
        collect_count = func.count(ProductCollect.id).label("collect_count")
        stmt = (
            select(ProductCollect.sku_id, collect_count)
            .where(ProductCollect.status == CollectStatus.ACTIVE.value)
            .group_by(ProductCollect.sku_id)
            .order_by(collect_count.desc(), ProductCollect.sku_id.asc())
            .limit(limit)
        )
        with self.db.get_session() as s:
            rows = s.execute(stmt).all()
        return [PopularSku(sku_id=sku_id, collect_count=count) for sku_id, count in rows]

    # ========================================================================
    # Helpers
    # ========================================================================

    def _fetch(self, stmt) -> list[ProductCollect]:
        with self.db.get_session() as s:
            records = list(s.execute(stmt).scalars().all())
            self._detach(s, records)
            return records

    def _scalar(self, stmt) -> int:
        with self.db.get_session() as s:
            return int(s.execute(stmt).scalar_one() or 0)

    @staticmethod
    def _unstamp(records: list[ProductCollect], previous: list[tuple]) -> None:
        for record, (id_, created, updated) in zip(records, previous):
            record.id, record.create_time, record.update_time = id_, created, updated

    @staticmethod
    def _detach(session: Session, records: list[ProductCollect]) -> None:
        for record in records:
            session.expunge(record)
