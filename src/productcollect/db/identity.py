"""Id and timestamp helpers applied to every stored record.

A record gets its id and ``create_time`` exactly once, the first time it is
saved; ``update_time`` is refreshed on every save.
"""

import threading
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

# 2020-01-01T00:00:00Z in milliseconds
SNOWFLAKE_EPOCH_MS = 1577836800000

WORKER_BITS = 10
SEQUENCE_BITS = 12
MAX_WORKER_ID = (1 << WORKER_BITS) - 1
MAX_SEQUENCE = (1 << SEQUENCE_BITS) - 1

# Width of the decimal form; 63-bit values never need more digits.
ID_WIDTH = 19


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the form SQLite round-trips)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SnowflakeGenerator:
    """Thread-safe generator of time-ordered 63-bit ids.

    Layout: 41 bits of milliseconds since ``SNOWFLAKE_EPOCH_MS``, 10 bits of
    worker id, 12 bits of per-millisecond sequence. Ids are rendered as
    zero-padded decimal strings, so string order matches generation order.
    """

    def __init__(self, worker_id: int = 0, time_ms: Optional[Callable[[], int]] = None):
        if not 0 <= worker_id <= MAX_WORKER_ID:
            raise ValueError(f"worker_id must be between 0 and {MAX_WORKER_ID}")
        self.worker_id = worker_id
        self._time_ms = time_ms or (lambda: time.time_ns() // 1_000_000)
        self._lock = threading.Lock()
        self._last_ms = -1
        self._sequence = 0

    def next_int(self) -> int:
        with self._lock:
            now_ms = max(self._time_ms(), self._last_ms)
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & MAX_SEQUENCE
                if self._sequence == 0:
                    # Sequence exhausted for this millisecond
                    while now_ms <= self._last_ms:
                        now_ms = max(self._time_ms(), self._last_ms + 1)
            else:
                self._sequence = 0
            self._last_ms = now_ms

            return (
                ((now_ms - SNOWFLAKE_EPOCH_MS) << (WORKER_BITS + SEQUENCE_BITS))
                | (self.worker_id << SEQUENCE_BITS)
                | self._sequence
            )

    def next_id(self) -> str:
        """Return the next id as a fixed-width decimal string."""
        return str(self.next_int()).zfill(ID_WIDTH)


_generator = SnowflakeGenerator()


def generate_id() -> str:
    """Generate a sortable string id for primary keys."""
    return _generator.next_id()


class Stampable(Protocol):
    id: Optional[str]
    create_time: Optional[datetime]
    update_time: Optional[datetime]


def stamp(
    record: Stampable,
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = generate_id,
) -> bool:
    """Apply id and timestamps to a record about to be saved.

    Args:
        record: Any object with ``id``, ``create_time`` and ``update_time``
        now: Timestamp to use; defaults to :func:`utcnow`
        id_factory: Source of new ids

    Returns:
        True if the record was new (id assigned by this call)
    """
    now = now or utcnow()
    is_new = record.id is None
    if is_new:
        record.id = id_factory()
    if record.create_time is None:
        record.create_time = now
    record.update_time = now
    return is_new
