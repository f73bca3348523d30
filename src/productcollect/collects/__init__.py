"""Collects module: users collecting product SKUs.

Provides functionality for:
- Collecting, cancelling, hiding and restoring SKUs per user
- Grouping, pinning and sorting collected SKUs
- Batch operations, retention cleanup and statistics
"""

from .manager import CollectManager
from .models import ProductCollect
from .repository import CollectRepository
from .schemas import (
    CollectCreate,
    CollectGroupCount,
    CollectResponse,
    CollectStatistics,
    CollectStatus,
    CollectUpdate,
    GlobalCollectStatistics,
    PopularSku,
)

__all__ = [
    "CollectManager",
    "CollectRepository",
    "ProductCollect",
    "CollectCreate",
    "CollectGroupCount",
    "CollectResponse",
    "CollectStatistics",
    "CollectStatus",
    "CollectUpdate",
    "GlobalCollectStatistics",
    "PopularSku",
]
