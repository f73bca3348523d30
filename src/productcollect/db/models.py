"""SQLAlchemy declarative base shared by all ORM models.

Tables:
- skus: Product catalog entries referenced by collects (see ``catalog``)
- product_collects: User collect records (see ``collects``)
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass
