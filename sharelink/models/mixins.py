"""
Database model mixins for common functionality.
"""
from sqlalchemy import Column, DateTime
from sharelink.core.clock import utcnow


class TimestampMixin:
    """
    Mixin adding created/updated timestamps.

    Values are set on the Python side so SQLite and PostgreSQL behave the same.
    """
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
