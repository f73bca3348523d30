"""Manager for product collect operations.

The manager is the only place collect business rules live:

* one record per (user, SKU); re-collecting reactivates a cancelled or
  hidden record instead of inserting a second one
* toggle flips ACTIVE <-> CANCELLED, creating the record on first use
* batch add skips SKUs the user already has a record for
* optional per-user quota on active records

Reads are passed through to :class:`CollectRepository`. Each operation is a
lookup followed by a write with no lock around the pair; racing inserts for
the same pair are settled by the store's unique constraint, and the loser
sees :class:`ConstraintViolation`.
"""

import logging
from datetime import timedelta
from typing import Iterable, Optional

from ..config import DEFAULT_CLEANUP_DAYS, Config
from ..db.sqlite import Database
from ..exceptions import (
    AlreadyCollected,
    CollectionLimitExceeded,
    CollectNotFound,
    NotCollected,
)
from .models import ProductCollect
from .repository import CollectRepository
from .schemas import (
    CollectGroupCount,
    CollectStatistics,
    CollectStatus,
    CollectUpdate,
    GlobalCollectStatistics,
    PopularSku,
)

logger = logging.getLogger(__name__)


class CollectManager:
    """Manager for collecting SKUs and organising collected SKUs."""

    def __init__(
        self,
        db: Database,
        repository: Optional[CollectRepository] = None,
        collection_limit: Optional[int] = None,
        cleanup_days: int = DEFAULT_CLEANUP_DAYS,
    ):
        """Initialize the collect manager.

        Args:
            db: Database instance
            repository: Store to use; built from ``db`` when omitted
            collection_limit: Max active collects per user, None for no limit
            cleanup_days: Default age for purging cancelled collects
        """
        self.db = db
        self.repository = repository or CollectRepository(db)
        self.collection_limit = collection_limit
        self.cleanup_days = cleanup_days

    @classmethod
    def from_config(cls, db: Database, config: Config) -> "CollectManager":
        """Build a manager using limits from configuration."""
        return cls(
            db,
            collection_limit=config.collection_limit,
            cleanup_days=config.cleanup_days,
        )

    # ========================================================================
    # Collect / uncollect
    # ========================================================================

    def add_to_collection(
        self,
        user_id: str,
        sku_id: str,
        collect_group: Optional[str] = None,
        note: Optional[str] = None,
    ) -> ProductCollect:
        """Collect a SKU for a user.

        A cancelled or hidden record is reactivated; group and note are only
        overwritten when given.

        Raises:
            AlreadyCollected: If the SKU is already actively collected
            CollectionLimitExceeded: If the user's quota is reached
            ConstraintViolation: If a concurrent insert won the race
        """
        existing = self.repository.find_by_user_and_sku(user_id, sku_id)
        if existing is not None:
            if existing.is_cancelled or existing.is_hidden:
                self._ensure_capacity(user_id)
                existing.activate()
                if collect_group is not None:
                    existing.collect_group = collect_group
                if note is not None:
                    existing.note = note
                self.repository.save(existing)
                logger.info("Reactivated collect %s for user %s sku %s", existing.id, user_id, sku_id)
                return existing

            raise AlreadyCollected(user_id, sku_id)

        self._ensure_capacity(user_id)
        collect = ProductCollect(
            user_id=user_id,
            sku_id=sku_id,
            collect_group=collect_group,
            note=note,
        )
        self.repository.save(collect)
        logger.info("Created collect %s for user %s sku %s", collect.id, user_id, sku_id)
        return collect

    def remove_from_collection(self, user_id: str, sku_id: str) -> None:
        """Permanently delete a user's collect record for a SKU.

        Raises:
            NotCollected: If there is no record
        """
        collect = self._require(user_id, sku_id)
        self.repository.remove(collect)
        logger.info("Removed collect %s for user %s sku %s", collect.id, user_id, sku_id)

    def cancel_collection(self, user_id: str, sku_id: str) -> None:
        """Mark a user's collect record as cancelled.

        Raises:
            NotCollected: If there is no record
        """
        collect = self._require(user_id, sku_id)
        collect.cancel()
        self.repository.save(collect)
        logger.info("Cancelled collect %s", collect.id)

    def restore_collection(self, user_id: str, sku_id: str) -> None:
        """Mark a user's collect record as active again.

        Raises:
            NotCollected: If there is no record
            CollectionLimitExceeded: If the user's quota is reached
        """
        collect = self._require(user_id, sku_id)
        if not collect.is_active:
            self._ensure_capacity(user_id)
        collect.activate()
        self.repository.save(collect)
        logger.info("Restored collect %s", collect.id)

    def hide_collection(self, user_id: str, sku_id: str) -> None:
        """Mark a user's collect record as hidden.

        Raises:
            NotCollected: If there is no record
        """
        collect = self._require(user_id, sku_id)
        collect.hide()
        self.repository.save(collect)
        logger.info("Hid collect %s", collect.id)

    def toggle_collection(
        self,
        user_id: str,
        sku_id: str,
        collect_group: Optional[str] = None,
        note: Optional[str] = None,
    ) -> ProductCollect:
        """Flip a SKU between collected and cancelled.

        Without a record this is :meth:`add_to_collection`; group and note
        are only used on that path. An active record is cancelled, a
        cancelled or hidden one is activated.
        """
        collect = self.repository.find_by_user_and_sku(user_id, sku_id)
        if collect is None:
            return self.add_to_collection(user_id, sku_id, collect_group, note)

        if collect.is_active:
            collect.cancel()
        else:
            self._ensure_capacity(user_id)
            collect.activate()

        self.repository.save(collect)
        logger.info("Toggled collect %s to %s", collect.id, collect.status)
        return collect

    def is_collected(self, user_id: str, sku_id: str) -> bool:
        """Check whether a user actively collects a SKU."""
        collect = self.repository.find_by_user_and_sku(user_id, sku_id)
        return collect is not None and collect.is_active

    # ========================================================================
    # Queries
    # ========================================================================

    def get_collection(self, collect_id: str) -> Optional[ProductCollect]:
        return self.repository.get(collect_id)

    def get_user_collections(
        self, user_id: str, status: Optional[CollectStatus] = None
    ) -> list[ProductCollect]:
        return self.repository.find_by_user(user_id, status)

    def get_user_active_collections(self, user_id: str) -> list[ProductCollect]:
        return self.repository.find_by_user(user_id, CollectStatus.ACTIVE)

    def get_user_collections_by_group(
        self,
        user_id: str,
        collect_group: Optional[str] = None,
        status: Optional[CollectStatus] = None,
    ) -> list[ProductCollect]:
        return self.repository.find_by_user_and_group(user_id, collect_group, status)

    def get_user_collection_groups(self, user_id: str) -> list[CollectGroupCount]:
        return self.repository.groups_by_user(user_id)

    def get_user_collection_count(
        self, user_id: str, status: Optional[CollectStatus] = None
    ) -> int:
        return self.repository.count_by_user(user_id, status)

    def get_user_active_collection_count(self, user_id: str) -> int:
        return self.repository.count_by_user(user_id, CollectStatus.ACTIVE)

    def get_top_collections(self, user_id: str, limit: int = 10) -> list[ProductCollect]:
        return self.repository.find_top_by_user(user_id, limit)

    def get_recent_collections(self, user_id: str, limit: int = 20) -> list[ProductCollect]:
        return self.repository.find_recent_by_user(user_id, limit)

    def get_sku_collection_count(
        self, sku_id: str, status: Optional[CollectStatus] = None
    ) -> int:
        return self.repository.count_by_sku(sku_id, status)

    def get_sku_active_collection_count(self, sku_id: str) -> int:
        return self.repository.count_by_sku(sku_id, CollectStatus.ACTIVE)

    def get_sku_collections(
        self, sku_id: str, status: Optional[CollectStatus] = None
    ) -> list[ProductCollect]:
        return self.repository.find_by_sku(sku_id, status)

    def get_popular_skus(self, limit: int = 100) -> list[PopularSku]:
        return self.repository.popular_skus(limit)

    # ========================================================================
    # Attribute updates
    # ========================================================================

    def update_collection_group(self, collect_id: str, collect_group: Optional[str]) -> None:
        """Move a collect record into a group (None to ungroup).

        Raises:
            CollectNotFound: If no record has this id
        """
        collect = self._require_id(collect_id)
        collect.collect_group = collect_group
        self.repository.save(collect)

    def update_collection_note(self, user_id: str, sku_id: str, note: Optional[str]) -> bool:
        """Set the note on a user's collect record.

        Returns:
            False if the user has no record for the SKU
        """
        collect = self.repository.find_by_user_and_sku(user_id, sku_id)
        if collect is None:
            return False

        collect.note = note
        self.repository.save(collect)
        return True

    def update_collection_top(self, user_id: str, sku_id: str, is_top: bool = True) -> bool:
        """Pin or unpin a user's collect record.

        Returns:
            False if the user has no record for the SKU
        """
        collect = self.repository.find_by_user_and_sku(user_id, sku_id)
        if collect is None:
            return False

        collect.set_top(is_top)
        self.repository.save(collect)
        return True

    def update_collection_sort(self, user_id: str, sku_id: str, sort_number: int) -> bool:
        """Set the sort weight of a user's collect record.

        Returns:
            False if the user has no record for the SKU

        Raises:
            ValueError: If ``sort_number`` is negative
        """
        if sort_number < 0:
            raise ValueError("sort_number must be greater than or equal to 0")

        collect = self.repository.find_by_user_and_sku(user_id, sku_id)
        if collect is None:
            return False

        collect.sort_number = sort_number
        self.repository.save(collect)
        return True

    def update_collection(self, collect_id: str, updates: CollectUpdate) -> ProductCollect:
        """Apply an admin edit to a collect record.

        Only fields explicitly set on ``updates`` are changed.

        Raises:
            CollectNotFound: If no record has this id
        """
        collect = self._require_id(collect_id)

        update_data = updates.model_dump(exclude_unset=True)
        for field, value in update_data.items():
            if field in ("status", "sort_number", "is_top") and value is None:
                continue
            if field == "status":
                collect.status = CollectStatus.parse(value).value
            elif field == "metadata":
                collect.extra_metadata = value
            else:
                setattr(collect, field, value)

        self.repository.save(collect)
        return collect

    def toggle_top(self, collect_id: str) -> ProductCollect:
        """Flip the pinned flag of a collect record.

        Raises:
            CollectNotFound: If no record has this id
        """
        collect = self._require_id(collect_id)
        collect.set_top(not collect.is_top)
        self.repository.save(collect)
        logger.info("Collect %s %s", collect.id, "pinned" if collect.is_top else "unpinned")
        return collect

    # ========================================================================
    # Batch operations
    # ========================================================================

    def batch_add_to_collection(
        self,
        user_id: str,
        sku_ids: Iterable[str],
        collect_group: Optional[str] = None,
    ) -> list[ProductCollect]:
        """Collect several SKUs at once.

        SKUs the user already has a record for (in any status) are skipped
        without reactivation. New records are committed together.

        Returns:
            Only the newly created records
        """
        created: list[ProductCollect] = []
        seen: set[str] = set()

        for sku_id in sku_ids:
            if sku_id in seen:
                continue
            seen.add(sku_id)

            if self.repository.find_by_user_and_sku(user_id, sku_id) is not None:
                continue

            created.append(
                ProductCollect(user_id=user_id, sku_id=sku_id, collect_group=collect_group)
            )

        if not created:
            return []

        self._ensure_capacity(user_id, adding=len(created))
        self.repository.save_all(created)
        logger.info("Batch collected %d sku(s) for user %s", len(created), user_id)
        return created

    def batch_update_status(
        self, collect_ids: Iterable[str], status: "CollectStatus | str"
    ) -> int:
        """Set the status of several collect records at once.

        Unknown ids are ignored.

        Returns:
            Number of records updated

        Raises:
            InvalidStatus: If ``status`` is not a known status
        """
        target = CollectStatus.parse(status)
        collects = self.repository.find_by_ids(collect_ids)
        for collect in collects:
            collect.status = target.value

        self.repository.save_all(collects)
        logger.info("Set %d collect(s) to %s", len(collects), target.value)
        return len(collects)

    # ========================================================================
    # Maintenance and statistics
    # ========================================================================

    def cleanup_cancelled_collections(self, days_old: Optional[int] = None) -> int:
        """Purge cancelled collects not updated for ``days_old`` days.

        Returns:
            Number of deleted records
        """
        if days_old is None:
            days_old = self.cleanup_days
        cutoff = self.repository.clock() - timedelta(days=days_old)
        deleted = self.repository.purge_cancelled_older_than(cutoff)
        logger.info("Cleaned up %d cancelled collect(s) older than %d days", deleted, days_old)
        return deleted

    def get_collection_statistics(self, user_id: str) -> CollectStatistics:
        """Count a user's collects by status."""
        return CollectStatistics(
            total=self.repository.count_by_user(user_id),
            active=self.repository.count_by_user(user_id, CollectStatus.ACTIVE),
            cancelled=self.repository.count_by_user(user_id, CollectStatus.CANCELLED),
            hidden=self.repository.count_by_user(user_id, CollectStatus.HIDDEN),
        )

    def get_global_collection_statistics(self) -> GlobalCollectStatistics:
        """Count collects across all users."""
        active = self.repository.count_all(CollectStatus.ACTIVE)
        unique_users = self.repository.count_distinct_users()

        return GlobalCollectStatistics(
            total_collections=self.repository.count_all(),
            active_collections=active,
            cancelled_collections=self.repository.count_all(CollectStatus.CANCELLED),
            unique_users=unique_users,
            unique_skus=self.repository.count_distinct_skus(),
            avg_collections_per_user=round(active / unique_users, 2) if unique_users > 0 else 0.0,
        )

    # ========================================================================
    # Helpers
    # ========================================================================

    def _require(self, user_id: str, sku_id: str) -> ProductCollect:
        collect = self.repository.find_by_user_and_sku(user_id, sku_id)
        if collect is None:
            raise NotCollected(user_id, sku_id)
        return collect

    def _require_id(self, collect_id: str) -> ProductCollect:
        collect = self.repository.get(collect_id)
        if collect is None:
            raise CollectNotFound(collect_id)
        return collect

    def _ensure_capacity(self, user_id: str, adding: int = 1) -> None:
        if self.collection_limit is None:
            return

        active = self.repository.count_by_user(user_id, CollectStatus.ACTIVE)
        if active + adding > self.collection_limit:
            logger.warning(
                "User %s at %d active collects, refusing %d more (limit %d)",
                user_id,
                active,
                adding,
                self.collection_limit,
            )
            raise CollectionLimitExceeded(self.collection_limit)
