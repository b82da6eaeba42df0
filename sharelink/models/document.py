from sqlalchemy import Column, Integer, String, DateTime
from sharelink.core.clock import utcnow
from sharelink.database import Base


class Document(Base):
    """Document model - stores metadata of files kept in the object store."""

    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    document_id = Column(String(64), unique=True, nullable=False, index=True)  # Public document reference
    owner_id = Column(String, nullable=False, index=True)  # Authenticated owner (JWT subject)
    file_path = Column(String, nullable=False)  # Object store path
    file_name = Column(String, nullable=False)
    size = Column(Integer, nullable=False)  # Size in bytes
    file_type = Column(String, nullable=False)  # MIME type
    uploaded_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
