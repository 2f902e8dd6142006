"""Custom SQLAlchemy types for cross-database compatibility.

This module provides custom column types that work across different
database backends (PostgreSQL, SQLite) used in production and testing.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import DateTime, TypeDecorator


class UTCDateTime(TypeDecorator):
    """
    A timezone-aware datetime type that always round-trips as UTC.

    - On PostgreSQL: Uses TIMESTAMP WITH TIME ZONE
    - On SQLite: Stores naive UTC text and re-attaches UTC on load

    SQLite drops tzinfo on the way out, which breaks comparisons against
    ``utc_now()`` in Python. Normalizing on bind keeps the stored text
    ordered identically on both backends, so ``expires_at > now`` filters
    behave the same in tests and production.

    Usage:
        expires_at = Column(UTCDateTime(), nullable=False)
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Any:
        """Convert aware datetimes to UTC before storing."""
        if value is None:
            return None

        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)

        if dialect.name == "sqlite":
            # SQLite: store naive UTC so string ordering matches time ordering
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value: Any, dialect) -> Optional[datetime]:
        """Convert database value to an aware UTC datetime."""
        if value is None:
            return None

        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
