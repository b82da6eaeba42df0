from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sharelink.database import get_db
from sharelink.api.deps import get_current_owner_id, get_link_service
from sharelink.schemas.link import ContactResponse
from sharelink.services.link_service import LinkService

router = APIRouter()


@router.get("", response_model=List[ContactResponse])
async def list_contacts(
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    link_service: LinkService = Depends(get_link_service)
):
    """
    Contacts gathered from the visitor logs of all the owner's links.
    Requires owner JWT authentication.
    """
    contacts = await link_service.list_contacts(db, owner_id)
    return [ContactResponse.model_validate(contact) for contact in contacts]
