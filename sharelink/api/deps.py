import uuid
from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sharelink.core.exceptions import UnauthorizedException
from sharelink.core.security import SecretVerifier, decode_access_token
from sharelink.external.object_store import ObjectStore, build_object_store
from sharelink.services.document_service import DocumentService
from sharelink.services.link_service import LinkService


# HTTP Bearer scheme for owner JWT authentication; missing credentials are
# reported as UNAUTHORIZED by get_current_owner_id
bearer_scheme = HTTPBearer(auto_error=False)

_secret_verifier: Optional[SecretVerifier] = None


async def get_current_owner_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Get the document owner ID (JWT subject) without database lookup.

    Raises:
        UnauthorizedException: 401 if token is missing/invalid
    """
    if not credentials:
        raise UnauthorizedException(detail="Not authenticated")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise UnauthorizedException()

    owner_id = payload.get("sub")
    if not owner_id or not isinstance(owner_id, str):
        raise UnauthorizedException(detail="Invalid token payload")

    return owner_id


def get_request_id(request: Request) -> str:
    """Request ID assigned by LoggingMiddleware, generated if absent."""
    if not hasattr(request.state, "request_id"):
        request.state.request_id = str(uuid.uuid4())
    return request.state.request_id


def get_object_store(request: Request) -> ObjectStore:
    """Application-wide object store, created on first use."""
    store = getattr(request.app.state, "object_store", None)
    if store is None:
        store = build_object_store()
        request.app.state.object_store = store
    return store


def get_secret_verifier() -> SecretVerifier:
    global _secret_verifier
    if _secret_verifier is None:
        _secret_verifier = SecretVerifier()
    return _secret_verifier


# Service Dependencies for Dependency Injection
def get_link_service(
    object_store: ObjectStore = Depends(get_object_store),
    secret_verifier: SecretVerifier = Depends(get_secret_verifier)
) -> LinkService:
    """Get LinkService instance."""
    return LinkService(object_store=object_store, secret_verifier=secret_verifier)


def get_document_service(
    object_store: ObjectStore = Depends(get_object_store)
) -> DocumentService:
    """Get DocumentService instance."""
    return DocumentService(object_store=object_store)
