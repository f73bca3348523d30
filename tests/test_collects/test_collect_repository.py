"""Tests for CollectRepository."""

import pytest
from sqlalchemy.exc import OperationalError

from productcollect.collects import CollectRepository, CollectStatus, ProductCollect
from productcollect.exceptions import ConstraintViolation


def make(repository, user_id="user_001", sku_id="SKU-001", **kwargs):
    return repository.save(ProductCollect(user_id=user_id, sku_id=sku_id, **kwargs))


class TestSave:
    """Tests for stamping and persisting records."""

    def test_insert_assigns_id_and_times(self, repository, clock):
        """Test a new record gets an id and both timestamps."""
        collect = make(repository)

        assert collect.id is not None
        assert collect.create_time == clock.now
        assert collect.update_time == clock.now

    def test_update_keeps_create_time(self, repository, clock):
        """Test re-saving refreshes only update_time."""
        collect = make(repository)
        created = collect.create_time
        original_id = collect.id

        clock.advance(hours=1)
        collect.note = "for the office"
        repository.save(collect)

        stored = repository.get(original_id)
        assert stored.id == original_id
        assert stored.create_time == created
        assert stored.update_time == clock.now
        assert stored.note == "for the office"

    def test_duplicate_pair_rejected(self, repository):
        """Test a second record for the same user and SKU is refused."""
        make(repository)
        duplicate = ProductCollect(user_id="user_001", sku_id="SKU-001")

        with pytest.raises(ConstraintViolation) as exc_info:
            repository.save(duplicate)

        assert exc_info.value.code == 409
        assert duplicate.id is None
        assert duplicate.create_time is None
        assert repository.count_all() == 1

    def test_same_sku_other_user_allowed(self, repository):
        """Test uniqueness is per user."""
        make(repository, user_id="user_001")
        make(repository, user_id="user_002")

        assert repository.count_by_sku("SKU-001") == 2

    def test_save_all_is_atomic(self, repository):
        """Test a failing batch stores nothing."""
        make(repository, sku_id="SKU-001")
        batch = [
            ProductCollect(user_id="user_001", sku_id="SKU-002"),
            ProductCollect(user_id="user_001", sku_id="SKU-001"),
        ]

        with pytest.raises(ConstraintViolation):
            repository.save_all(batch)

        assert repository.count_by_user("user_001") == 1
        assert repository.find_by_user_and_sku("user_001", "SKU-002") is None

    def test_failed_write_leaves_record_unsaved(self, db, repository):
        """Test a store error other than a constraint keeps the record new."""
        db.drop_tables()
        collect = ProductCollect(user_id="user_001", sku_id="SKU-001")

        with pytest.raises(OperationalError):
            repository.save(collect)

        assert collect.id is None
        assert collect.create_time is None
        assert collect.update_time is None

    def test_save_all_empty(self, repository):
        """Test an empty batch is a no-op."""
        assert repository.save_all([]) == []

    def test_custom_id_factory(self, db, clock):
        """Test ids come from the injected factory."""
        ids = iter(["100", "101"])
        repository = CollectRepository(db, clock=clock, id_factory=lambda: next(ids))

        first = make(repository, sku_id="SKU-001")
        second = make(repository, sku_id="SKU-002")

        assert (first.id, second.id) == ("100", "101")


class TestRemove:
    """Tests for deleting records."""

    def test_remove(self, repository):
        """Test removing a stored record."""
        collect = make(repository)

        assert repository.remove(collect) is True
        assert repository.get(collect.id) is None

    def test_remove_unsaved(self, repository):
        """Test removing a record that was never saved."""
        assert repository.remove(ProductCollect(user_id="u", sku_id="s")) is False

    def test_remove_twice(self, repository):
        """Test removing an already removed record."""
        collect = make(repository)
        repository.remove(collect)

        assert repository.remove(collect) is False


class TestPurge:
    """Tests for purging old cancelled records."""

    def test_cutoff_is_strict(self, repository, clock):
        """Test only records updated strictly before the cutoff go."""
        old = make(repository, sku_id="SKU-001", status=CollectStatus.CANCELLED)
        clock.advance(days=1)
        boundary = make(repository, sku_id="SKU-002", status=CollectStatus.CANCELLED)

        deleted = repository.purge_cancelled_older_than(boundary.update_time)

        assert deleted == 1
        assert repository.get(old.id) is None
        assert repository.get(boundary.id) is not None

    def test_only_cancelled(self, repository, clock):
        """Test active and hidden records are never purged."""
        make(repository, sku_id="SKU-001")
        make(repository, sku_id="SKU-002", status=CollectStatus.HIDDEN)
        clock.advance(days=100)

        assert repository.purge_cancelled_older_than(clock.now) == 0
        assert repository.count_all() == 2


class TestLookups:
    """Tests for finders and their ordering."""

    def test_default_ordering(self, repository, clock):
        """Test pinned first, then sort weight, then newest."""
        r1 = make(repository, sku_id="SKU-001", is_top=True, sort_number=1)
        clock.advance(minutes=1)
        r2 = make(repository, sku_id="SKU-002")
        clock.advance(minutes=1)
        r3 = make(repository, sku_id="SKU-003", is_top=True, sort_number=0)

        ids = [c.id for c in repository.find_by_user("user_001")]

        assert ids == [r3.id, r1.id, r2.id]

    def test_same_instant_newest_id_first(self, repository):
        """Test records created in the same instant are still ordered."""
        first = make(repository, sku_id="SKU-001")
        second = make(repository, sku_id="SKU-002")

        ids = [c.id for c in repository.find_by_user("user_001")]

        assert ids == [second.id, first.id]

    def test_find_by_user_status(self, repository):
        """Test filtering a user's records by status."""
        make(repository, sku_id="SKU-001")
        make(repository, sku_id="SKU-002", status=CollectStatus.CANCELLED)
        make(repository, user_id="user_002", sku_id="SKU-003")

        active = repository.find_by_user("user_001", CollectStatus.ACTIVE)
        cancelled = repository.find_by_user("user_001", "cancelled")

        assert [c.sku_id for c in active] == ["SKU-001"]
        assert [c.sku_id for c in cancelled] == ["SKU-002"]
        assert len(repository.find_by_user("user_001")) == 2

    def test_find_by_user_unknown(self, repository):
        """Test an unknown user has no records."""
        assert repository.find_by_user("nobody") == []

    def test_find_by_group(self, repository):
        """Test named and ungrouped lookups are kept apart."""
        make(repository, sku_id="SKU-001", collect_group="Kitchen")
        make(repository, sku_id="SKU-002")

        kitchen = repository.find_by_user_and_group("user_001", "Kitchen")
        ungrouped = repository.find_by_user_and_group("user_001", None)

        assert [c.sku_id for c in kitchen] == ["SKU-001"]
        assert [c.sku_id for c in ungrouped] == ["SKU-002"]

    def test_find_by_user_and_sku(self, repository):
        """Test looking up a pair."""
        collect = make(repository)

        found = repository.find_by_user_and_sku("user_001", "SKU-001")

        assert found.id == collect.id
        assert repository.find_by_user_and_sku("user_001", "SKU-999") is None

    def test_find_by_ids(self, repository):
        """Test fetching several records by id."""
        a = make(repository, sku_id="SKU-001")
        b = make(repository, sku_id="SKU-002")

        found = repository.find_by_ids([a.id, b.id, "missing", a.id])

        assert {c.id for c in found} == {a.id, b.id}
        assert repository.find_by_ids([]) == []

    def test_find_top(self, repository, clock):
        """Test only pinned active records, by sort weight."""
        a = make(repository, sku_id="SKU-001", is_top=True, sort_number=5)
        b = make(repository, sku_id="SKU-002", is_top=True, sort_number=1)
        make(repository, sku_id="SKU-003")
        make(repository, sku_id="SKU-004", is_top=True, status=CollectStatus.CANCELLED)

        top = repository.find_top_by_user("user_001")

        assert [c.id for c in top] == [b.id, a.id]
        assert len(repository.find_top_by_user("user_001", limit=1)) == 1

    def test_find_recent(self, repository, clock):
        """Test recent active records, newest first."""
        a = make(repository, sku_id="SKU-001")
        clock.advance(minutes=5)
        b = make(repository, sku_id="SKU-002", is_top=True)
        clock.advance(minutes=5)
        make(repository, sku_id="SKU-003", status=CollectStatus.HIDDEN)

        recent = repository.find_recent_by_user("user_001")

        assert [c.id for c in recent] == [b.id, a.id]

    def test_find_by_sku(self, repository, clock):
        """Test listing a SKU's collectors."""
        make(repository, user_id="user_001")
        clock.advance(seconds=1)
        make(repository, user_id="user_002", status=CollectStatus.CANCELLED)

        assert [c.user_id for c in repository.find_by_sku("SKU-001")] == ["user_002", "user_001"]
        assert len(repository.find_by_sku("SKU-001", CollectStatus.ACTIVE)) == 1

    def test_records_are_detached(self, repository):
        """Test returned records can be used after their session closed."""
        make(repository, note="still readable")

        collect = repository.find_by_user("user_001")[0]

        assert collect.note == "still readable"
        assert collect.update_time is not None


class TestAggregates:
    """Tests for counts and grouped queries."""

    def test_counts(self, repository):
        """Test counting by user, SKU and overall."""
        make(repository, user_id="user_001", sku_id="SKU-001")
        make(repository, user_id="user_001", sku_id="SKU-002", status=CollectStatus.CANCELLED)
        make(repository, user_id="user_002", sku_id="SKU-001")

        assert repository.count_by_user("user_001") == 2
        assert repository.count_by_user("user_001", CollectStatus.ACTIVE) == 1
        assert repository.count_by_sku("SKU-001") == 2
        assert repository.count_by_sku("SKU-002", CollectStatus.ACTIVE) == 0
        assert repository.count_all() == 3
        assert repository.count_all(CollectStatus.CANCELLED) == 1
        assert repository.count_distinct_users() == 2
        assert repository.count_distinct_skus() == 2

    def test_counts_empty(self, repository):
        """Test counting an empty store."""
        assert repository.count_all() == 0
        assert repository.count_distinct_users() == 0

    def test_groups(self, repository):
        """Test group counts skip ungrouped and non-active records."""
        make(repository, sku_id="SKU-001", collect_group="Kitchen")
        make(repository, sku_id="SKU-002", collect_group="Kitchen")
        make(repository, sku_id="SKU-003", collect_group="Office")
        make(repository, sku_id="SKU-004", collect_group="Garden", status=CollectStatus.CANCELLED)
        make(repository, sku_id="SKU-005")

        groups = repository.groups_by_user("user_001")

        assert [(g.name, g.count) for g in groups] == [("Kitchen", 2), ("Office", 1)]

    def test_popular_skus(self, repository):
        """Test SKUs ranked by active collects."""
        for user in ("u1", "u2", "u3"):
            make(repository, user_id=user, sku_id="SKU-A")
        for user in ("u1", "u2"):
            make(repository, user_id=user, sku_id="SKU-B")
        make(repository, user_id="u3", sku_id="SKU-B", status=CollectStatus.CANCELLED)

        popular = repository.popular_skus()

        assert [(p.sku_id, p.collect_count) for p in popular] == [("SKU-A", 3), ("SKU-B", 2)]
        assert len(repository.popular_skus(limit=1)) == 1

    def test_popular_skus_ties_by_id(self, repository):
        """Test equal counts are ordered by SKU id."""
        make(repository, sku_id="SKU-B")
        make(repository, sku_id="SKU-A")

        assert [p.sku_id for p in repository.popular_skus()] == ["SKU-A", "SKU-B"]
