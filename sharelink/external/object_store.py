"""
Object store clients.

The rest of the service only needs three calls from storage: upload bytes,
delete a path, and mint a time-bounded URL for a path. ``LocalObjectStore``
keeps files on disk and signs URLs served by this API; ``HttpObjectStore``
talks to a storage REST API authenticated with a cached management token.
"""
import asyncio
import base64
import hashlib
import hmac
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

import aiofiles
import aiofiles.os
import httpx

from sharelink.config import settings
from sharelink.core.circuit_breaker import CircuitBreaker
from sharelink.core.exceptions import StorageException
from sharelink.core.logging_utils import sanitize_log_message

logger = logging.getLogger(__name__)

# Timeout for local file operations (seconds)
FILE_OPERATION_TIMEOUT = 30


@dataclass
class FileMetadata:
    """Metadata for a file upload."""
    file_name: str  # Storage name, already sanitized
    owner_id: str
    file_type: str


class ObjectStore(ABC):
    """Narrow object store interface."""

    @abstractmethod
    async def upload(self, content: bytes, metadata: FileMetadata) -> str:
        """Store ``content`` and return its object path."""

    @abstractmethod
    async def delete(self, path: str) -> None:
        """Remove the object at ``path``."""

    @abstractmethod
    async def generate_signed_url(self, path: str, ttl_seconds: int) -> str:
        """Return a URL granting read access to ``path`` for ``ttl_seconds``."""

    async def aclose(self) -> None:
        """Release any held connections."""


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


class LocalObjectStore(ObjectStore):
    """Filesystem-backed store whose signed URLs point at the /files endpoint."""

    def __init__(
        self,
        root: Optional[str] = None,
        base_url: Optional[str] = None,
        secret: Optional[str] = None
    ):
        self.root = Path(root or settings.UPLOAD_DIR)
        self.base_url = (base_url or f"{settings.API_BASE_URL.rstrip('/')}{settings.API_V1_STR}").rstrip("/")
        self._secret = (secret or settings.SECRET_KEY).encode()

    def resolve_path(self, path: str) -> Path:
        """
        Map an object path to a file under the store root.

        Raises:
            StorageException if the path escapes the root
        """
        root = self.root.resolve()
        full_path = (root / path).resolve()
        if not full_path.is_relative_to(root):
            raise StorageException(detail="Object path escapes storage root")
        return full_path

    def _sign(self, path: str, expires: int) -> str:
        digest = hmac.new(self._secret, f"{path}|{expires}".encode(), hashlib.sha256).digest()
        return _b64url(digest)

    def verify_signature(self, path: str, expires: int, signature: str) -> bool:
        """Check a signature minted by ``generate_signed_url`` and its expiry."""
        if time.time() > expires:
            return False
        return hmac.compare_digest(self._sign(path, expires), signature or "")

    async def upload(self, content: bytes, metadata: FileMetadata) -> str:
        path = f"{metadata.owner_id}/{metadata.file_name}"
        full_path = self.resolve_path(path)
        full_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            async with aiofiles.open(full_path, "wb") as f:
                await asyncio.wait_for(f.write(content), timeout=FILE_OPERATION_TIMEOUT)
        except asyncio.TimeoutError:
            raise StorageException(
                detail=f"File write operation timed out after {FILE_OPERATION_TIMEOUT} seconds"
            )

        logger.debug(sanitize_log_message("Local object stored", Path=path, Size=len(content)))
        return path

    async def delete(self, path: str) -> None:
        full_path = self.resolve_path(path)
        if full_path.exists():
            await aiofiles.os.remove(full_path)

    async def generate_signed_url(self, path: str, ttl_seconds: int) -> str:
        expires = int(time.time()) + int(ttl_seconds)
        query = urlencode({"expires": expires, "signature": self._sign(path, expires)})
        return f"{self.base_url}/files/{quote(path)}?{query}"


@dataclass
class CredentialCache:
    """
    Cached management credential with a refresh-before-expiry margin.

    Owned by the store instance that fills it.
    """
    value: Optional[str] = None
    expires_at: float = 0.0
    refresh_margin: int = 60

    def get(self, now: Optional[float] = None) -> Optional[str]:
        """Return the cached value unless it is missing or inside the refresh margin."""
        now = time.time() if now is None else now
        if self.value and now < self.expires_at - self.refresh_margin:
            return self.value
        return None

    def store(self, value: str, ttl_seconds: float, now: Optional[float] = None) -> None:
        now = time.time() if now is None else now
        self.value = value
        self.expires_at = now + ttl_seconds

    def clear(self) -> None:
        self.value = None
        self.expires_at = 0.0


class HttpObjectStore(ObjectStore):
    """
    Client for a storage REST API.

    Management calls carry a bearer token obtained with client credentials;
    the token is cached and refreshed shortly before it expires. A 401 clears
    the cache and the call is retried once with a fresh token.
    """

    DEFAULT_TOKEN_TTL = 3600

    def __init__(
        self,
        base_url: Optional[str] = None,
        bucket: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None
    ):
        self.base_url = (base_url or settings.STORAGE_API_URL).rstrip("/")
        self.bucket = bucket or settings.STORAGE_BUCKET
        self.client_id = client_id or settings.STORAGE_CLIENT_ID
        self.client_secret = client_secret or settings.STORAGE_CLIENT_SECRET
        self.timeout = timeout or settings.STORAGE_API_TIMEOUT
        self.credentials = CredentialCache(refresh_margin=settings.STORAGE_TOKEN_REFRESH_MARGIN_SECONDS)
        self.circuit_breaker = circuit_breaker or CircuitBreaker(name="object_store")
        self._client = http_client or httpx.AsyncClient(timeout=self.timeout)

    def _is_configured(self) -> bool:
        return bool(self.base_url and self.client_id and self.client_secret)

    async def _login(self) -> str:
        """
        Exchange client credentials for a management token and cache it.

        Raises:
            StorageException if the store rejects the credentials or is unreachable
        """
        if not self._is_configured():
            raise StorageException(
                detail="Object store is not configured. Set STORAGE_API_URL, STORAGE_CLIENT_ID and STORAGE_CLIENT_SECRET."
            )

        logger.info("Object store: requesting management token")
        try:
            response = await self._client.post(
                f"{self.base_url}/auth/token",
                json={"client_id": self.client_id, "client_secret": self.client_secret},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Object store authentication failed: {e.response.status_code}")
            raise StorageException(detail=f"Object store authentication failed: {e.response.status_code}")
        except httpx.RequestError as e:
            logger.error(f"Object store connection error: {e}")
            raise StorageException(detail=f"Object store connection error: {e}")

        try:
            data = response.json()
            token = data["access_token"]
            ttl = float(data.get("expires_in", self.DEFAULT_TOKEN_TTL))
        except (ValueError, TypeError, KeyError, AttributeError):
            logger.error("Object store returned a malformed token response")
            raise StorageException(detail="Object store returned a malformed token response")
        if not token or not isinstance(token, str):
            raise StorageException(detail="Object store returned a malformed token response")

        self.credentials.store(token, ttl)
        return token

    async def _get_token(self) -> str:
        return self.credentials.get() or await self._login()

    async def _send(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        """Single authenticated request; 5xx responses count as breaker failures."""
        token = await self._get_token()
        headers = {"Authorization": f"Bearer {token}", **kwargs.pop("headers", {})}
        try:
            response = await self._client.request(method, f"{self.base_url}{endpoint}", headers=headers, **kwargs)
        except httpx.RequestError as e:
            raise StorageException(detail=f"Object store request error: {e}")
        if response.status_code >= 500:
            raise StorageException(detail=f"Object store error: {response.status_code}")
        return response

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        response = await self.circuit_breaker.call(self._send, method, endpoint, **dict(kwargs))
        if response.status_code == 401:
            logger.info("Object store: token rejected, refreshing")
            self.credentials.clear()
            response = await self.circuit_breaker.call(self._send, method, endpoint, **dict(kwargs))

        if response.status_code >= 400:
            logger.error(
                sanitize_log_message(
                    "Object store request failed",
                    Method=method,
                    Endpoint=endpoint,
                    StatusCode=response.status_code,
                    ResponseText=response.text[:500]
                )
            )
            raise StorageException(detail=f"Object store error: {response.status_code}")
        return response

    async def upload(self, content: bytes, metadata: FileMetadata) -> str:
        path = f"{metadata.owner_id}/{metadata.file_name}"
        await self._request(
            "POST",
            f"/object/{self.bucket}/{quote(path)}",
            content=content,
            headers={"Content-Type": metadata.file_type, "x-upsert": "true"},
        )
        return path

    async def delete(self, path: str) -> None:
        await self._request("DELETE", f"/object/{self.bucket}", json={"prefixes": [path]})

    async def generate_signed_url(self, path: str, ttl_seconds: int) -> str:
        response = await self._request(
            "POST",
            f"/object/sign/{self.bucket}/{quote(path)}",
            json={"expiresIn": int(ttl_seconds)},
        )
        data: Dict[str, Any] = response.json()
        signed_url = data.get("signedURL") or data.get("signedUrl")
        if not signed_url:
            raise StorageException(detail="Object store returned no signed URL")
        if signed_url.startswith("/"):
            signed_url = f"{self.base_url}{signed_url}"
        return signed_url

    async def aclose(self) -> None:
        await self._client.aclose()


def build_object_store() -> ObjectStore:
    """Select the object store from STORAGE_PROVIDER."""
    provider = settings.STORAGE_PROVIDER.lower()
    if provider == "http":
        return HttpObjectStore()
    if provider != "local":
        logger.warning(f"Unknown STORAGE_PROVIDER '{provider}', falling back to local")
    return LocalObjectStore()
