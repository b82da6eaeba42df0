"""Database models."""
from sharelink.models.document import Document
from sharelink.models.document_link import DocumentLink
from sharelink.models.link_visitor import LinkVisitor
from sharelink.models.analytics_event import AnalyticsEvent, AnalyticsEventType

__all__ = [
    "Document",
    "DocumentLink",
    "LinkVisitor",
    "AnalyticsEvent",
    "AnalyticsEventType",
]
