from typing import List
from fastapi import APIRouter, Depends, status, File, UploadFile, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sharelink.database import get_db
from sharelink.api.deps import get_current_owner_id, get_document_service, get_link_service, get_request_id
from sharelink.api.v1.endpoints.links import to_link_response
from sharelink.schemas.document import DocumentResponse
from sharelink.schemas.link import LinkResponse
from sharelink.services.document_service import DocumentService
from sharelink.services.link_service import LinkService

router = APIRouter()


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    document_service: DocumentService = Depends(get_document_service),
    request_id: str = Depends(get_request_id)
):
    """
    Upload a document to share.
    Requires owner JWT authentication. Allowed types are set by ALLOWED_FILE_TYPES.
    """
    document = await document_service.upload_document(db, owner_id, file, request_id=request_id)
    return DocumentResponse.model_validate(document)


@router.get("/{document_id}/links", response_model=List[LinkResponse])
async def list_document_links(
    document_id: str,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    link_service: LinkService = Depends(get_link_service)
):
    """Links of one of the owner's documents, newest first."""
    links = await link_service.list_document_links(db, owner_id, document_id)
    return [to_link_response(link) for link in links]


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: str,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    document_service: DocumentService = Depends(get_document_service),
    request_id: str = Depends(get_request_id)
):
    """Delete a document, all of its links and their visitor logs, and the stored file."""
    await document_service.delete_document(db, owner_id, document_id, request_id=request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
