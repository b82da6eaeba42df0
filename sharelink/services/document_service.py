import os
import logging
import uuid
import re
from typing import Optional, Tuple
from pathlib import Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from fastapi import UploadFile
from sharelink.models.document import Document
from sharelink.config import settings
from sharelink.core.exceptions import DocumentNotFoundException, DocumentUploadException
from sharelink.core.logging_utils import sanitize_log_message
from sharelink.external.object_store import FileMetadata, ObjectStore, build_object_store
from sharelink.services.link_store import LinkStore

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {'.pdf', '.jpg', '.jpeg', '.png'}


class DocumentService:
    """Service for document upload, validation and removal through the object store."""

    def __init__(self, object_store: Optional[ObjectStore] = None):
        self.object_store = object_store or build_object_store()
        self.allowed_types = settings.ALLOWED_FILE_TYPES
        self.max_file_size = settings.MAX_FILE_SIZE

    def _sanitize_filename(self, original_filename: Optional[str]) -> Tuple[str, str]:
        """
        Sanitize filename for secure storage.

        Generates a UUID-based filename for storage while preserving
        the original filename for display purposes.

        Args:
            original_filename: Original filename from upload

        Returns:
            Tuple of (safe_storage_name, sanitized_display_name)
        """
        if original_filename:
            # Keep only the last path component, whichever separator was used
            clean_name = os.path.basename(original_filename.replace("\\", "/"))
            clean_name = re.sub(r'\.\.[\\/]', '', clean_name)
            clean_name = clean_name.replace("\x00", "")
            ext = Path(clean_name).suffix.lower()
            if ext not in ALLOWED_EXTENSIONS:
                ext = ''
        else:
            clean_name = ''
            ext = ''

        clean_name = clean_name or 'unnamed'
        safe_storage_name = f"{uuid.uuid4().hex}{ext}"

        # Display name: no control characters, limited length
        display_name = re.sub(r'[<>:"/\\|?*\x00-\x1f]', '_', clean_name)
        display_name = display_name[:255]

        return safe_storage_name, display_name

    def _validate_file_type(self, mime_type: Optional[str]) -> bool:
        """
        Validate if file type is allowed.

        Args:
            mime_type: MIME type of the file

        Returns:
            True if allowed, False otherwise
        """
        return mime_type in self.allowed_types

    async def upload_document(
        self,
        db: AsyncSession,
        owner_id: str,
        file: UploadFile,
        request_id: Optional[str] = None
    ) -> Document:
        """
        Upload a document to the object store and record it.

        Args:
            db: Database session
            owner_id: Authenticated owner
            file: Uploaded file
            request_id: Request ID (UUID) for request tracing

        Returns:
            Created Document record

        Raises:
            DocumentUploadException if the file is rejected or cannot be recorded
            StorageException if the object store fails
        """
        if not self._validate_file_type(file.content_type):
            raise DocumentUploadException(
                detail=f"File type {file.content_type} is not allowed. Allowed types: {self.allowed_types}"
            )

        # Read content first to validate size before storing
        content = await file.read()
        file_size = len(content)

        if file_size > self.max_file_size:
            raise DocumentUploadException(
                detail=f"File size ({file_size} bytes) exceeds maximum allowed size ({self.max_file_size} bytes)"
            )

        if file_size == 0:
            raise DocumentUploadException(detail="File is empty")

        storage_filename, display_filename = self._sanitize_filename(file.filename)

        path = await self.object_store.upload(
            content,
            FileMetadata(file_name=storage_filename, owner_id=owner_id, file_type=file.content_type)
        )

        document = Document(
            document_id=uuid.uuid4().hex,
            owner_id=owner_id,
            file_path=path,
            file_name=display_filename,
            size=file_size,
            file_type=file.content_type,
        )

        try:
            db.add(document)
            await db.commit()
            await db.refresh(document)
        except SQLAlchemyError as e:
            await db.rollback()
            # Remove the orphaned object
            await self.object_store.delete(path)
            raise DocumentUploadException(detail=f"Failed to upload document: {str(e)}")

        logger.info(
            sanitize_log_message(
                "Document uploaded successfully",
                RequestID=request_id,
                DocumentID=document.document_id,
                StoragePath=path,
                DisplayFilename=display_filename,
                FileSize=file_size
            )
        )

        return document

    async def get_document(
        self,
        db: AsyncSession,
        owner_id: str,
        document_id: str
    ) -> Document:
        """
        Get a document the owner holds.

        Raises:
            DocumentNotFoundException if missing or not owned
        """
        document = await LinkStore.get_owned_document(db, owner_id, document_id)
        if not document:
            raise DocumentNotFoundException()
        return document

    async def delete_document(
        self,
        db: AsyncSession,
        owner_id: str,
        document_id: str,
        request_id: Optional[str] = None
    ) -> None:
        """
        Delete a document with its links, their visitor logs and the stored object.

        The stored object goes first; if the object store fails nothing is
        removed from the database.

        Raises:
            DocumentNotFoundException if missing or not owned
            StorageException if the object store fails
        """
        document = await self.get_document(db, owner_id, document_id)
        links = await LinkStore.list_document_links(db, document_id)

        await self.object_store.delete(document.file_path)

        await LinkStore.delete_links(db, [link.link_id for link in links])
        await db.delete(document)
        await db.commit()

        logger.info(
            sanitize_log_message(
                "Document deleted",
                RequestID=request_id,
                DocumentID=document_id,
                LinkCount=len(links)
            )
        )
