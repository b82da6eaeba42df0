from typing import List, Optional, Tuple
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sharelink.models.document import Document
from sharelink.models.document_link import DocumentLink
from sharelink.models.link_visitor import LinkVisitor
from sharelink.core.exceptions import AliasConflictException


# PostgreSQL names the constraint; SQLite lists its columns
ALIAS_CONSTRAINT_MARKERS = ("uq_document_links_document_alias", "document_links.document_id, document_links.alias")


class LinkStore:
    """Persistence boundary for documents, links and their visitor logs."""

    @staticmethod
    async def get_owned_document(
        db: AsyncSession,
        owner_id: str,
        document_id: str
    ) -> Optional[Document]:
        """
        Get a document only if ``owner_id`` owns it.

        Args:
            db: Database session
            owner_id: Authenticated owner
            document_id: Public document reference

        Returns:
            Document record or None (missing and not-owned look the same)
        """
        result = await db.execute(
            select(Document).where(
                Document.document_id == document_id,
                Document.owner_id == owner_id
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_link(db: AsyncSession, link_id: str) -> Optional[DocumentLink]:
        """Resolve a link token (the owning document is eagerly loaded)."""
        result = await db.execute(
            select(DocumentLink).where(DocumentLink.link_id == link_id)
        )
        return result.unique().scalar_one_or_none()

    @staticmethod
    async def get_owned_link(
        db: AsyncSession,
        owner_id: str,
        link_id: str
    ) -> Optional[DocumentLink]:
        result = await db.execute(
            select(DocumentLink).where(
                DocumentLink.link_id == link_id,
                DocumentLink.created_by_user_id == owner_id
            )
        )
        return result.unique().scalar_one_or_none()

    @staticmethod
    async def list_document_links(db: AsyncSession, document_id: str) -> List[DocumentLink]:
        result = await db.execute(
            select(DocumentLink)
            .where(DocumentLink.document_id == document_id)
            .order_by(DocumentLink.created_at.desc())
        )
        return list(result.unique().scalars().all())

    @staticmethod
    async def add_link(db: AsyncSession, link: DocumentLink) -> DocumentLink:
        """
        Persist a new link.

        Raises:
            AliasConflictException if the (document_id, alias) constraint fires
            IntegrityError for any other constraint violation
        """
        has_alias = bool(link.alias)
        db.add(link)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            if has_alias and any(marker in str(e.orig) for marker in ALIAS_CONSTRAINT_MARKERS):
                raise AliasConflictException()
            raise
        await db.refresh(link)
        return link

    @staticmethod
    async def add_visitor(db: AsyncSession, visitor: LinkVisitor) -> LinkVisitor:
        db.add(visitor)
        await db.commit()
        await db.refresh(visitor)
        return visitor

    @staticmethod
    async def list_link_visitors(db: AsyncSession, link_id: str) -> List[LinkVisitor]:
        """Visitor log of one link, most recent first."""
        result = await db.execute(
            select(LinkVisitor)
            .where(LinkVisitor.link_id == link_id)
            .order_by(LinkVisitor.visited_at.desc(), LinkVisitor.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def delete_links(db: AsyncSession, link_ids: List[str]) -> None:
        """
        Delete links and their visitor logs: visitors first, then links.

        Does not commit; the caller decides the transaction boundary.
        """
        if not link_ids:
            return
        await db.execute(delete(LinkVisitor).where(LinkVisitor.link_id.in_(link_ids)))
        await db.execute(delete(DocumentLink).where(DocumentLink.link_id.in_(link_ids)))

    @staticmethod
    async def list_owner_visitors(db: AsyncSession, owner_id: str) -> List[Tuple[LinkVisitor, DocumentLink]]:
        """Visitors with an email across every link the owner created, most recent first."""
        result = await db.execute(
            select(LinkVisitor, DocumentLink)
            .join(DocumentLink, LinkVisitor.link_id == DocumentLink.link_id)
            .where(
                DocumentLink.created_by_user_id == owner_id,
                LinkVisitor.email.is_not(None)
            )
            .order_by(LinkVisitor.updated_at.desc(), LinkVisitor.id.desc())
        )
        return [(visitor, link) for visitor, link in result.all()]
