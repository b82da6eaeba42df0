from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sharelink.database import Base
from sharelink.models.mixins import TimestampMixin


class DocumentLink(TimestampMixin, Base):
    """Document link model - a bearer capability granting gated access to one document."""

    __tablename__ = "document_links"
    __table_args__ = (
        UniqueConstraint("document_id", "alias", name="uq_document_links_document_alias"),
    )

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(String(64), unique=True, nullable=False, index=True)  # Unguessable public token
    document_id = Column(String(64), ForeignKey("documents.document_id"), nullable=False, index=True)
    created_by_user_id = Column(String, nullable=False, index=True)
    alias = Column(String(255), nullable=True)
    is_public = Column(Boolean, default=False, nullable=False)
    password_hash = Column(String, nullable=True)  # None = no password gate
    expiration_time = Column(DateTime(timezone=True), nullable=False)
    visitor_fields = Column(JSON, default=list, nullable=False)  # Ordered visitor field keys

    # Relationships
    document = relationship("Document", lazy="joined")

    @property
    def is_password_protected(self) -> bool:
        return self.password_hash is not None

    @property
    def is_fully_public(self) -> bool:
        """Public, no visitor fields and no password: no gate at all."""
        return bool(self.is_public) and not self.visitor_fields and self.password_hash is None
