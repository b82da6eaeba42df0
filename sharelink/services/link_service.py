import secrets
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sharelink.config import settings
from sharelink.core.clock import as_utc, utcnow
from sharelink.core.exceptions import (
    DocumentNotFoundException,
    InvalidExpirationException,
    InvalidPasswordException,
    LinkExpiredException,
    LinkNotFoundException,
    VisitorValidationException,
)
from sharelink.core.logging_utils import sanitize_log_message
from sharelink.core.security import SecretVerifier
from sharelink.external.object_store import ObjectStore, build_object_store
from sharelink.models.document_link import DocumentLink
from sharelink.models.link_visitor import LinkVisitor
from sharelink.services.link_store import LinkStore

logger = logging.getLogger(__name__)

VISITOR_FIELD_KEYS = ("name", "email", "address", "company", "phone", "jobTitle")


def build_link_url(link_id: str) -> str:
    """Fully-qualified shareable URL for a link token."""
    return f"{settings.LINK_BASE_URL.rstrip('/')}/documentAccess/{link_id}"


@dataclass
class SignedFile:
    """Short-lived descriptor of the file behind a link."""
    signed_url: str
    file_name: str
    size: int
    file_type: str
    document_id: str


@dataclass
class LinkMeta:
    """What a visitor must supply before access; ``file`` is set only for fully public links."""
    is_password_protected: bool
    visitor_fields: List[str]
    file: Optional[SignedFile] = None


@dataclass
class VisitorSubmission:
    """Visitor details submitted through a gate."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def has_value(self, key: str) -> bool:
        if key == "name":
            return bool((self.first_name or "").strip() or (self.last_name or "").strip())
        if key == "email":
            return bool((self.email or "").strip())
        value = self.metadata.get(key)
        if isinstance(value, str):
            return bool(value.strip())
        return value is not None


@dataclass
class Contact:
    """One visitor email seen across an owner's links."""
    id: int  # Most recent named visitor record
    name: str
    email: str
    last_viewed_link: str  # Alias, or the link URL when unaliased
    last_activity: datetime
    total_visits: int


class LinkService:
    """Service for link creation, gating decisions, visitor logging and signed-URL issuance."""

    def __init__(
        self,
        object_store: Optional[ObjectStore] = None,
        secret_verifier: Optional[SecretVerifier] = None
    ):
        self.object_store = object_store or build_object_store()
        self.secret_verifier = secret_verifier or SecretVerifier()

    @staticmethod
    def _generate_link_id() -> str:
        """
        Generate an unguessable link token.

        Returns:
            URL-safe token with 128 bits of randomness
        """
        return secrets.token_urlsafe(16)

    @staticmethod
    def _normalize_visitor_fields(visitor_fields: Optional[List[str]]) -> List[str]:
        """Drop duplicates while keeping order; reject unknown keys."""
        normalized: List[str] = []
        for key in visitor_fields or []:
            if key not in VISITOR_FIELD_KEYS:
                raise VisitorValidationException(detail=f"Unknown visitor field: {key}")
            if key not in normalized:
                normalized.append(key)
        return normalized

    @staticmethod
    def _ensure_not_expired(link: DocumentLink) -> None:
        if as_utc(link.expiration_time) <= utcnow():
            raise LinkExpiredException()

    async def create_link(
        self,
        db: AsyncSession,
        owner_id: str,
        document_id: str,
        alias: Optional[str] = None,
        is_public: bool = False,
        password: Optional[str] = None,
        expiration_time: Optional[datetime] = None,
        visitor_fields: Optional[List[str]] = None,
        request_id: Optional[str] = None
    ) -> Tuple[DocumentLink, str]:
        """
        Create a share link for a document the owner holds.

        Args:
            db: Database session
            owner_id: Authenticated owner
            document_id: Document to share
            alias: Optional label, unique per document
            is_public: Public flag (a gate still applies if a password or visitor fields are set)
            password: Optional plaintext password, stored hashed
            expiration_time: Optional expiry; defaults to now + DEFAULT_LINK_TTL_SECONDS
            visitor_fields: Visitor field keys required before access
            request_id: Request ID (UUID) for request tracing

        Returns:
            Tuple of (DocumentLink, link_url)

        Raises:
            DocumentNotFoundException if the document is missing or not owned
            InvalidExpirationException if expiration_time is in the past
            AliasConflictException if the alias is taken for this document
        """
        document = await LinkStore.get_owned_document(db, owner_id, document_id)
        if not document:
            raise DocumentNotFoundException()

        now = utcnow()
        if expiration_time is not None:
            final_expiration = as_utc(expiration_time)
            if final_expiration < now:
                raise InvalidExpirationException()
        else:
            final_expiration = now + timedelta(seconds=settings.DEFAULT_LINK_TTL_SECONDS)

        fields = self._normalize_visitor_fields(visitor_fields)
        password_hash = await self.secret_verifier.hash_async(password) if password else None

        link = DocumentLink(
            link_id=self._generate_link_id(),
            document_id=document.document_id,
            created_by_user_id=owner_id,
            alias=(alias or "").strip() or None,
            is_public=bool(is_public),
            password_hash=password_hash,
            expiration_time=final_expiration,
            visitor_fields=fields,
            created_at=now,
            updated_at=now,
        )
        link = await LinkStore.add_link(db, link)

        logger.info(
            sanitize_log_message(
                "Link created",
                RequestID=request_id,
                LinkID=link.link_id,
                DocumentID=document.document_id,
                IsPublic=link.is_public,
                Gate="password" if password_hash is not None else "none",
                VisitorFields=fields,
                ExpiresAt=final_expiration.isoformat()
            )
        )

        return link, build_link_url(link.link_id)

    async def get_link_meta(self, db: AsyncSession, link_id: str) -> LinkMeta:
        """
        Describe the gate of a link without side effects.

        Fully public links (public, no password, no visitor fields) get the signed file
        inline so the visitor needs no second round trip.

        Raises:
            LinkNotFoundException if the token does not resolve
            LinkExpiredException if the link has expired
        """
        link = await LinkStore.get_link(db, link_id)
        if not link:
            raise LinkNotFoundException()
        self._ensure_not_expired(link)

        meta = LinkMeta(
            is_password_protected=link.is_password_protected,
            visitor_fields=list(link.visitor_fields or []),
        )
        if link.is_fully_public:
            meta.file = await self.get_signed_file_from_link(db, link_id)
        return meta

    async def validate_link_access(
        self,
        db: AsyncSession,
        link_id: str,
        password: Optional[str] = None,
        skip_password_check: bool = False
    ) -> DocumentLink:
        """
        The access gate: existence, expiry and (unless skipped) password.

        No object-store calls and no visitor logging happen here.

        Raises:
            LinkNotFoundException, LinkExpiredException, InvalidPasswordException
        """
        link = await LinkStore.get_link(db, link_id)
        if not link:
            raise LinkNotFoundException()
        self._ensure_not_expired(link)

        if not skip_password_check and link.password_hash is not None:
            if not await self.secret_verifier.verify_async(password, link.password_hash):
                raise InvalidPasswordException()

        return link

    @staticmethod
    def validate_visitor_submission(link: DocumentLink, visitor: VisitorSubmission) -> None:
        """
        Check that every visitor field the link requires was supplied.

        Raises:
            VisitorValidationException listing the missing fields
        """
        missing = [key for key in (link.visitor_fields or []) if not visitor.has_value(key)]
        if missing:
            raise VisitorValidationException(
                detail=f"Missing required visitor fields: {', '.join(missing)}"
            )

    async def get_signed_file_from_link(self, db: AsyncSession, link_id: str) -> SignedFile:
        """
        Issue a signed URL for the document behind a link.

        The URL lifetime is capped by both DEFAULT_SIGNED_URL_TTL_SECONDS and
        the time left before the link expires.

        Raises:
            LinkNotFoundException if the link or its document is missing
            LinkExpiredException if no lifetime is left
            StorageException if the object store fails
        """
        link = await LinkStore.get_link(db, link_id)
        if not link or not link.document:
            raise LinkNotFoundException()

        expires_in = settings.DEFAULT_SIGNED_URL_TTL_SECONDS
        if link.expiration_time is not None:
            seconds_until_expiry = int((as_utc(link.expiration_time) - utcnow()).total_seconds())
            if seconds_until_expiry <= 0:
                raise LinkExpiredException()
            expires_in = min(expires_in, seconds_until_expiry)

        document = link.document
        signed_url = await self.object_store.generate_signed_url(document.file_path, expires_in)

        return SignedFile(
            signed_url=signed_url,
            file_name=document.file_name,
            size=document.size,
            file_type=document.file_type,
            document_id=document.document_id,
        )

    async def log_visitor(
        self,
        db: AsyncSession,
        link_id: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        email: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Optional[LinkVisitor]:
        """
        Record a visitor of a gated link.

        Returns:
            Created LinkVisitor, or None for fully public (or unknown) links
        """
        link = await LinkStore.get_link(db, link_id)
        if not link or link.is_fully_public:
            return None

        visitor = LinkVisitor(
            link_id=link_id,
            first_name=(first_name or "").strip() or None,
            last_name=(last_name or "").strip() or None,
            email=(email or "").strip() or None,
            visitor_metadata=metadata or {},
        )
        return await LinkStore.add_visitor(db, visitor)

    async def access_link(
        self,
        db: AsyncSession,
        link_id: str,
        password: Optional[str] = None,
        visitor: Optional[VisitorSubmission] = None,
        request_id: Optional[str] = None
    ) -> Tuple[SignedFile, Optional[LinkVisitor]]:
        """
        Pass the gate of a link and obtain its file.

        Runs the password gate, checks the visitor fields, logs the visitor
        and issues the signed URL. A failed visitor log is reported but does
        not block access.

        Returns:
            Tuple of (SignedFile, LinkVisitor or None)
        """
        visitor = visitor or VisitorSubmission()
        link = await self.validate_link_access(db, link_id, password)
        self.validate_visitor_submission(link, visitor)

        visitor_record = None
        try:
            visitor_record = await self.log_visitor(
                db,
                link_id,
                first_name=visitor.first_name,
                last_name=visitor.last_name,
                email=visitor.email,
                metadata=visitor.metadata,
            )
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(
                sanitize_log_message(
                    "Failed to log link visitor",
                    RequestID=request_id,
                    LinkID=link_id,
                    ErrorType=type(e).__name__,
                    ErrorMessage=str(e)
                ),
                exc_info=True
            )

        signed_file = await self.get_signed_file_from_link(db, link_id)

        logger.info(
            sanitize_log_message(
                "Link access granted",
                RequestID=request_id,
                LinkID=link_id,
                DocumentID=signed_file.document_id,
                VisitorLogged=visitor_record is not None
            )
        )

        return signed_file, visitor_record

    async def list_document_links(
        self,
        db: AsyncSession,
        owner_id: str,
        document_id: str
    ) -> List[DocumentLink]:
        """
        Links of a document the owner holds, newest first.

        Raises:
            DocumentNotFoundException if the document is missing or not owned
        """
        document = await LinkStore.get_owned_document(db, owner_id, document_id)
        if not document:
            raise DocumentNotFoundException()
        return await LinkStore.list_document_links(db, document_id)

    async def list_link_visitors(
        self,
        db: AsyncSession,
        owner_id: str,
        link_id: str
    ) -> List[LinkVisitor]:
        """
        Visitor log of a link the owner created.

        Raises:
            LinkNotFoundException if the link is missing or not owned
        """
        link = await LinkStore.get_owned_link(db, owner_id, link_id)
        if not link:
            raise LinkNotFoundException()
        return await LinkStore.list_link_visitors(db, link_id)

    async def list_contacts(self, db: AsyncSession, owner_id: str) -> List[Contact]:
        """
        Contacts of an owner: unique visitor emails across all their links.

        Each contact carries the most recent name given with that email, the
        link it was given on, the latest activity and the visit count.
        Emails never given with a name are left out.

        Returns:
            Contacts, most recently active first
        """
        rows = await LinkStore.list_owner_visitors(db, owner_id)

        visits: Dict[str, int] = {}
        last_activity: Dict[str, datetime] = {}
        latest_named: Dict[str, Tuple[LinkVisitor, DocumentLink]] = {}
        for visitor, link in rows:
            email = visitor.email
            visits[email] = visits.get(email, 0) + 1
            last_activity.setdefault(email, as_utc(visitor.updated_at))
            has_name = (visitor.first_name or "").strip() or (visitor.last_name or "").strip()
            if has_name and email not in latest_named:
                latest_named[email] = (visitor, link)

        contacts = []
        for email, (visitor, link) in latest_named.items():
            name = f"{(visitor.first_name or '').strip()} {(visitor.last_name or '').strip()}".strip()
            contacts.append(
                Contact(
                    id=visitor.id,
                    name=name,
                    email=email,
                    last_viewed_link=link.alias or build_link_url(link.link_id),
                    last_activity=last_activity[email],
                    total_visits=visits[email],
                )
            )
        contacts.sort(key=lambda contact: contact.last_activity, reverse=True)
        return contacts

    async def delete_link(
        self,
        db: AsyncSession,
        owner_id: str,
        link_id: str,
        request_id: Optional[str] = None
    ) -> None:
        """
        Delete a link the owner created, visitor log first.

        Raises:
            LinkNotFoundException if the link is missing or not owned
        """
        link = await LinkStore.get_owned_link(db, owner_id, link_id)
        if not link:
            raise LinkNotFoundException()

        await LinkStore.delete_links(db, [link_id])
        await db.commit()

        logger.info(
            sanitize_log_message(
                "Link deleted",
                RequestID=request_id,
                LinkID=link_id,
                DocumentID=link.document_id
            )
        )
