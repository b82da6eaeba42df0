"""Pydantic schemas for request/response contracts."""
from sharelink.schemas.link import (
    LinkCreateRequest,
    LinkResponse,
    LinkMetaResponse,
    LinkAccessRequest,
    SignedFileResponse,
    AnalyticsEventRequest,
    AnalyticsEventResponse,
    VisitorResponse,
    ContactResponse,
)
from sharelink.schemas.document import (
    DocumentResponse,
)

__all__ = [
    "LinkCreateRequest",
    "LinkResponse",
    "LinkMetaResponse",
    "LinkAccessRequest",
    "SignedFileResponse",
    "AnalyticsEventRequest",
    "AnalyticsEventResponse",
    "VisitorResponse",
    "ContactResponse",
    "DocumentResponse",
]
