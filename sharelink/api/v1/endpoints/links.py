from typing import List
from fastapi import APIRouter, Depends, status, BackgroundTasks, Response
from sqlalchemy.ext.asyncio import AsyncSession
from sharelink.database import get_db
from sharelink.api.deps import get_current_owner_id, get_link_service, get_request_id
from sharelink.schemas.link import (
    LinkCreateRequest,
    LinkResponse,
    LinkMetaResponse,
    LinkAccessRequest,
    SignedFileResponse,
    AnalyticsEventRequest,
    AnalyticsEventResponse,
    VisitorResponse,
)
from sharelink.services.link_service import LinkService, VisitorSubmission, build_link_url
from sharelink.services.analytics_service import AnalyticsService
from sharelink.models.analytics_event import AnalyticsEventType
from sharelink.models.document_link import DocumentLink
from sharelink.core.clock import as_utc

router = APIRouter()


def to_link_response(link: DocumentLink) -> LinkResponse:
    return LinkResponse(
        link_id=link.link_id,
        link_url=build_link_url(link.link_id),
        document_id=link.document_id,
        alias=link.alias,
        is_public=link.is_public,
        is_password_protected=link.is_password_protected,
        expiration_time=as_utc(link.expiration_time),
        visitor_fields=list(link.visitor_fields or []),
        created_at=as_utc(link.created_at) if link.created_at else None,
    )


@router.post("", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_data: LinkCreateRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    link_service: LinkService = Depends(get_link_service),
    request_id: str = Depends(get_request_id)
):
    """
    Create a share link for one of the owner's documents.
    Requires owner JWT authentication.
    """
    link, _ = await link_service.create_link(
        db,
        owner_id=owner_id,
        document_id=link_data.document_id,
        alias=link_data.alias,
        is_public=link_data.is_public,
        password=link_data.password,
        expiration_time=link_data.expiration_time,
        visitor_fields=list(link_data.visitor_fields),
        request_id=request_id
    )

    AnalyticsService.record_event_background(
        background_tasks=background_tasks,
        db=db,
        event_type=AnalyticsEventType.LINK_CREATED,
        document_id=link.document_id,
        link_id=link.link_id,
        metadata={"isPublic": link.is_public, "visitorFields": list(link.visitor_fields or [])},
        request_id=request_id
    )

    return to_link_response(link)


@router.get("/{link_id}", response_model=LinkMetaResponse, response_model_exclude_none=True)
async def get_link_meta(
    link_id: str,
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service)
):
    """
    Describe what a visitor must supply to open the link.
    Links without any gate carry the signed file inline.
    """
    meta = await link_service.get_link_meta(db, link_id)

    response = LinkMetaResponse(
        is_password_protected=meta.is_password_protected,
        visitor_fields=meta.visitor_fields,
    )
    if meta.file:
        response.signed_url = meta.file.signed_url
        response.file_name = meta.file.file_name
        response.size = meta.file.size
        response.file_type = meta.file.file_type
        response.document_id = meta.file.document_id
    return response


@router.post("/{link_id}/access", response_model=SignedFileResponse, response_model_exclude_none=True)
async def access_link(
    link_id: str,
    access_data: LinkAccessRequest,
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
    request_id: str = Depends(get_request_id)
):
    """
    Pass the gate of a link with a password and/or visitor details.
    Returns a short-lived signed URL for the document.
    """
    first_name, last_name = access_data.split_name()
    visitor = VisitorSubmission(
        first_name=first_name,
        last_name=last_name,
        email=access_data.email,
        metadata=access_data.visitor_metadata(),
    )

    signed_file, visitor_record = await link_service.access_link(
        db,
        link_id,
        password=access_data.password,
        visitor=visitor,
        request_id=request_id
    )

    return SignedFileResponse(
        signed_url=signed_file.signed_url,
        file_name=signed_file.file_name,
        size=signed_file.size,
        file_type=signed_file.file_type,
        document_id=signed_file.document_id,
        visitor_id=visitor_record.id if visitor_record else None,
    )


@router.post("/{link_id}/analytics", response_model=AnalyticsEventResponse)
async def report_link_event(
    link_id: str,
    event_data: AnalyticsEventRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    link_service: LinkService = Depends(get_link_service),
    request_id: str = Depends(get_request_id)
):
    """
    Record a view or download of a link's document.
    The link must exist and be unexpired; the password is not asked again.
    """
    link = await link_service.validate_link_access(db, link_id, skip_password_check=True)

    AnalyticsService.record_event_background(
        background_tasks=background_tasks,
        db=db,
        event_type=AnalyticsEventType(event_data.event_type),
        document_id=link.document_id,
        link_id=link.link_id,
        visitor_id=event_data.visitor_id,
        metadata=event_data.meta,
        request_id=request_id
    )

    return AnalyticsEventResponse(success=True)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    link_id: str,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    link_service: LinkService = Depends(get_link_service),
    request_id: str = Depends(get_request_id)
):
    """Delete a link and its visitor log. Requires owner JWT authentication."""
    await link_service.delete_link(db, owner_id, link_id, request_id=request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{link_id}/visitors", response_model=List[VisitorResponse])
async def list_link_visitors(
    link_id: str,
    db: AsyncSession = Depends(get_db),
    owner_id: str = Depends(get_current_owner_id),
    link_service: LinkService = Depends(get_link_service)
):
    """Visitor log of a link, newest first. Requires owner JWT authentication."""
    visitors = await link_service.list_link_visitors(db, owner_id, link_id)
    return [VisitorResponse.model_validate(visitor) for visitor in visitors]
