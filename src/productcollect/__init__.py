"""Product collects: users collecting SKUs into groups, pinned and sorted."""

__version__ = "0.1.0"
