import logging
from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from sqlalchemy.exc import SQLAlchemyError
from fastapi import BackgroundTasks
from sharelink.models.analytics_event import AnalyticsEvent, AnalyticsEventType
from sharelink.core.logging_utils import sanitize_log_message

logger = logging.getLogger(__name__)


class AnalyticsService:
    """Fire-and-forget analytics events written from background tasks."""

    @staticmethod
    async def record_event(
        db: AsyncSession,
        event_type: AnalyticsEventType,
        document_id: str,
        link_id: Optional[str] = None,
        visitor_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> Optional[AnalyticsEvent]:
        """
        Write one analytics event.

        Failures are logged and swallowed: analytics never affects the
        request that produced the event.

        Args:
            db: Database session
            event_type: Type of event
            document_id: Document the event concerns
            link_id: Link the event came through, if any
            visitor_id: Visitor record, if the visitor passed a gate
            metadata: Free-form event details (JSON)
            request_id: Request ID (UUID) for request tracing

        Returns:
            Created AnalyticsEvent, or None if the write failed
        """
        event = AnalyticsEvent(
            event_type=event_type,
            document_id=document_id,
            link_id=link_id,
            visitor_id=visitor_id,
            event_metadata=metadata or {},
        )

        try:
            db.add(event)
            await db.commit()
            await db.refresh(event)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                sanitize_log_message(
                    "Failed to record analytics event",
                    RequestID=request_id,
                    EventType=event_type.value,
                    DocumentID=document_id,
                    LinkID=link_id,
                    ErrorType=type(e).__name__,
                    ErrorMessage=str(e)
                ),
                exc_info=True
            )
            return None

        logger.debug(
            sanitize_log_message(
                f"Analytics event: {event_type.value}",
                RequestID=request_id,
                DocumentID=document_id,
                LinkID=link_id,
                VisitorID=visitor_id
            )
        )
        return event

    @staticmethod
    def record_event_background(
        background_tasks: BackgroundTasks,
        db: AsyncSession,
        event_type: AnalyticsEventType,
        document_id: str,
        link_id: Optional[str] = None,
        visitor_id: Optional[int] = None,
        metadata: Optional[Dict[str, Any]] = None,
        request_id: Optional[str] = None
    ) -> None:
        """Schedule ``record_event`` to run after the response is sent."""
        background_tasks.add_task(
            AnalyticsService.record_event,
            db=db,
            event_type=event_type,
            document_id=document_id,
            link_id=link_id,
            visitor_id=visitor_id,
            metadata=metadata,
            request_id=request_id
        )

    @staticmethod
    async def get_events(
        db: AsyncSession,
        document_id: Optional[str] = None,
        link_id: Optional[str] = None,
        event_type: Optional[AnalyticsEventType] = None,
        limit: int = 100
    ) -> List[AnalyticsEvent]:
        """Query analytics events, newest first."""
        conditions = []
        if document_id:
            conditions.append(AnalyticsEvent.document_id == document_id)
        if link_id:
            conditions.append(AnalyticsEvent.link_id == link_id)
        if event_type:
            conditions.append(AnalyticsEvent.event_type == event_type)

        query = select(AnalyticsEvent)
        if conditions:
            query = query.where(and_(*conditions))
        query = query.order_by(AnalyticsEvent.created_at.desc(), AnalyticsEvent.id.desc()).limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())
