from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sharelink.core.clock import utcnow
from sharelink.database import Base


class LinkVisitor(Base):
    """Link visitor model - one successful pass through the gate of a non-public link."""

    __tablename__ = "link_visitors"

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(String(64), ForeignKey("document_links.link_id"), nullable=False, index=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    email = Column(String, nullable=True, index=True)
    visitor_metadata = Column(JSON, nullable=True)  # Extra visitor inputs (company, phone, ...)
    visited_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
