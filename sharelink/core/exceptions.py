from fastapi import HTTPException, status


class LinkAccessException(HTTPException):
    """
    Base class for typed service failures.

    Each subclass carries a fixed HTTP status and a stable machine-readable
    code that the API returns next to the human-readable detail.
    """

    code: str = "ERROR"
    status_code_default: int = status.HTTP_400_BAD_REQUEST
    detail_default: str = "Request failed"

    def __init__(self, detail: str = None):
        super().__init__(
            status_code=self.status_code_default,
            detail=detail or self.detail_default
        )


class LinkNotFoundException(LinkAccessException):
    """Link does not resolve, or does not belong to the requesting owner."""
    code = "NOT_FOUND"
    status_code_default = status.HTTP_404_NOT_FOUND
    detail_default = "Link not found"


class DocumentNotFoundException(LinkAccessException):
    """Document does not resolve, or does not belong to the requesting owner."""
    code = "NOT_FOUND"
    status_code_default = status.HTTP_404_NOT_FOUND
    detail_default = "Document not found"


class LinkExpiredException(LinkAccessException):
    """Current time is past the link expiration time."""
    code = "EXPIRED"
    status_code_default = status.HTTP_410_GONE
    detail_default = "Link has expired"


class InvalidExpirationException(LinkAccessException):
    """Expiration time given at creation is in the past."""
    code = "INVALID_EXPIRATION"
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Expiration time cannot be in the past"


class AliasConflictException(LinkAccessException):
    """Another link of the same document already uses the alias."""
    code = "ALIAS_CONFLICT"
    status_code_default = status.HTTP_409_CONFLICT
    detail_default = "This alias is already in use. Please choose a different link alias."


class InvalidPasswordException(LinkAccessException):
    """Password required and missing or incorrect."""
    code = "INVALID_PASSWORD"
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Invalid password"


class VisitorValidationException(LinkAccessException):
    """Gate submission is malformed (e.g. a required visitor field is missing)."""
    code = "VALIDATION_ERROR"
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Invalid visitor details"


class UnauthorizedException(LinkAccessException):
    """Owner authentication failed."""
    code = "UNAUTHORIZED"
    status_code_default = status.HTTP_401_UNAUTHORIZED
    detail_default = "Invalid or expired token"

    def __init__(self, detail: str = None):
        super().__init__(detail)
        self.headers = {"WWW-Authenticate": "Bearer"}


class InvalidSignatureException(LinkAccessException):
    """Signed file URL is tampered with or expired."""
    code = "INVALID_SIGNATURE"
    status_code_default = status.HTTP_403_FORBIDDEN
    detail_default = "Invalid or expired file signature"


class DocumentUploadException(LinkAccessException):
    """Exception raised when document upload fails."""
    code = "UPLOAD_FAILED"
    status_code_default = status.HTTP_400_BAD_REQUEST
    detail_default = "Document upload failed"


class StorageException(LinkAccessException):
    """Exception raised when the object store call fails."""
    code = "STORAGE_ERROR"
    status_code_default = status.HTTP_502_BAD_GATEWAY
    detail_default = "Object store call failed"
