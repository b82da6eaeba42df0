from datetime import datetime
from pydantic import ConfigDict
from pydantic.alias_generators import to_camel
from sharelink.schemas.link import CamelModel


class DocumentResponse(CamelModel):
    """Response schema for document."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    document_id: str
    file_name: str
    size: int
    file_type: str
    uploaded_at: datetime
