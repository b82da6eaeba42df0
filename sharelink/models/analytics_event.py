from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum, JSON
import enum
from sharelink.core.clock import utcnow
from sharelink.database import Base


class AnalyticsEventType(str, enum.Enum):
    """Analytics event type enumeration."""
    LINK_CREATED = "link_created"
    VIEW = "view"
    DOWNLOAD = "download"


class AnalyticsEvent(Base):
    """Analytics event model - fire-and-forget record of link activity."""

    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, index=True)
    event_type = Column(SQLEnum(AnalyticsEventType), nullable=False, index=True)
    document_id = Column(String(64), nullable=False, index=True)
    link_id = Column(String(64), nullable=True, index=True)
    visitor_id = Column(Integer, nullable=True)
    event_metadata = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
