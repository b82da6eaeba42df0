from typing import Any, Dict, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

VisitorFieldKey = Literal["name", "email", "address", "company", "phone", "jobTitle"]


class CamelModel(BaseModel):
    """Base schema: snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkCreateRequest(CamelModel):
    """Request schema for creating a share link."""
    document_id: str = Field(..., min_length=1, max_length=64)
    alias: Optional[str] = Field(default=None, max_length=255)
    is_public: bool = False
    password: Optional[str] = Field(default=None, max_length=128)
    expiration_time: Optional[datetime] = None
    visitor_fields: List[VisitorFieldKey] = Field(default_factory=list)


class LinkResponse(CamelModel):
    """Response schema for a link as seen by its owner."""
    link_id: str
    link_url: str
    document_id: str
    alias: Optional[str] = None
    is_public: bool
    is_password_protected: bool
    expiration_time: datetime
    visitor_fields: List[str]
    created_at: Optional[datetime] = None


class LinkMetaResponse(CamelModel):
    """
    Response schema for link metadata.

    File fields are only present for links without any gate.
    """
    is_password_protected: bool
    visitor_fields: List[str]
    signed_url: Optional[str] = None
    file_name: Optional[str] = None
    size: Optional[int] = None
    file_type: Optional[str] = None
    document_id: Optional[str] = None


class LinkAccessRequest(CamelModel):
    """
    Request schema for passing the gate of a link.

    Visitor fields other than name and email (address, company, phone,
    jobTitle) are accepted as extra keys and kept as visitor metadata.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    password: Optional[str] = None
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("email", mode="before")
    @classmethod
    def blank_email_is_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def split_name(self) -> tuple:
        """First/last name, falling back to splitting ``name`` on its first space."""
        if self.first_name or self.last_name:
            return self.first_name, self.last_name
        if not self.name or not self.name.strip():
            return None, None
        first, _, last = self.name.strip().partition(" ")
        return first, last.strip() or None

    def visitor_metadata(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class SignedFileResponse(CamelModel):
    """Response schema for a granted access: short-lived file URL plus metadata."""
    signed_url: str
    file_name: str
    size: int
    file_type: str
    document_id: str
    visitor_id: Optional[int] = None


class AnalyticsEventRequest(CamelModel):
    """Request schema for a visitor-side analytics event."""
    event_type: Literal["view", "download"]
    visitor_id: Optional[int] = None
    meta: Dict[str, Any] = Field(default_factory=dict)


class AnalyticsEventResponse(CamelModel):
    success: bool = True


class VisitorResponse(CamelModel):
    """Response schema for one visitor log entry."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    link_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    visitor_metadata: Optional[Dict[str, Any]] = None
    visited_at: datetime


class ContactResponse(CamelModel):
    """Response schema for one contact built from visitor logs."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    name: str
    email: str
    last_viewed_link: str
    last_activity: datetime
    total_visits: int
