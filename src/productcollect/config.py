"""Configuration management for productcollect.

Loads configuration from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()

DEFAULT_CLEANUP_DAYS = 30


def _optional_int(value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    return int(value)


@dataclass
class Config:
    """Application configuration."""

    # Database
    db_path: Path

    # Retention
    cleanup_days: int  # days a cancelled collect is kept before purge

    # Quota; None disables the check
    collection_limit: Optional[int]

    # Logging
    log_level: str
    log_file: Optional[str]

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        db_path_str = os.environ.get(
            "PRODUCTCOLLECT_DB_PATH",
            str(Path.home() / ".productcollect" / "collects.db"),
        )
        db_path = Path(db_path_str).expanduser()

        return cls(
            db_path=db_path,
            cleanup_days=int(
                os.environ.get("PRODUCTCOLLECT_CLEANUP_DAYS", str(DEFAULT_CLEANUP_DAYS))
            ),
            collection_limit=_optional_int(os.environ.get("PRODUCTCOLLECT_COLLECTION_LIMIT")),
            log_level=os.environ.get("PRODUCTCOLLECT_LOG_LEVEL", "INFO"),
            log_file=os.environ.get("PRODUCTCOLLECT_LOG_FILE") or None,
        )

    def validate(self) -> list[str]:
        """Validate configuration, return list of errors."""
        errors = []

        # Check database directory is writable
        if str(self.db_path) != ":memory:" and not self.db_path.parent.exists():
            try:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
            except PermissionError:
                errors.append(f"Cannot create database directory: {self.db_path.parent}")

        if self.cleanup_days <= 0:
            errors.append(f"Cleanup days must be positive, got {self.cleanup_days}")

        if self.collection_limit is not None and self.collection_limit <= 0:
            errors.append(f"Collection limit must be positive, got {self.collection_limit}")

        return errors


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def reset_config() -> None:
    """Reset the global config instance. Used for testing."""
    global _config
    _config = None
