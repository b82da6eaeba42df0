import logging
from typing import Any, Dict, Optional
import httpx
from sharelink.config import settings
from sharelink.core.logging_utils import sanitize_log_message

logger = logging.getLogger(__name__)


class LinkClientError(Exception):
    """Non-2xx answer (or no answer) from the link API."""

    def __init__(self, status_code: int, code: Optional[str] = None, detail: Optional[str] = None):
        self.status_code = status_code
        self.code = code or "ERROR"
        self.detail = detail or f"Link API error: {status_code}"
        super().__init__(self.detail)


class LinkAccessClient:
    """Visitor-side client for the share link API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: int = 30
    ):
        self.base_url = (base_url or f"{settings.API_BASE_URL.rstrip('/')}{settings.API_V1_STR}").rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, method: str, endpoint: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send one request and return the decoded JSON body.

        Raises:
            LinkClientError carrying the API error code, or NETWORK_ERROR
        """
        try:
            response = await self._client.request(method, f"{self.base_url}{endpoint}", json=json)
        except httpx.RequestError as e:
            logger.warning(sanitize_log_message("Link API unreachable", Endpoint=endpoint, Error=str(e)))
            raise LinkClientError(status_code=0, code="NETWORK_ERROR", detail=str(e))

        if response.is_success:
            try:
                return response.json()
            except ValueError:
                logger.warning(sanitize_log_message("Link API returned a non-JSON body", Endpoint=endpoint))
                raise LinkClientError(
                    status_code=response.status_code,
                    code="INVALID_RESPONSE",
                    detail="Link API returned an invalid response"
                )

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        raise LinkClientError(
            status_code=response.status_code,
            code=body.get("code"),
            detail=body.get("detail") if isinstance(body.get("detail"), str) else None,
        )

    async def get_link_meta(self, link_id: str) -> Dict[str, Any]:
        """GET /links/{link_id}: gate description, plus the signed file for ungated links."""
        return await self._request("GET", f"/links/{link_id}")

    async def request_access(
        self,
        link_id: str,
        password: Optional[str] = None,
        **visitor_info: Any
    ) -> Dict[str, Any]:
        """POST /links/{link_id}/access with a password and/or camelCase visitor fields."""
        body: Dict[str, Any] = {key: value for key, value in visitor_info.items() if value is not None}
        if password is not None:
            body["password"] = password
        return await self._request("POST", f"/links/{link_id}/access", json=body)

    async def report_event(
        self,
        link_id: str,
        event_type: str,
        visitor_id: Optional[int] = None,
        meta: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """POST /links/{link_id}/analytics for a view or download."""
        body: Dict[str, Any] = {"eventType": event_type, "meta": meta or {}}
        if visitor_id is not None:
            body["visitorId"] = visitor_id
        return await self._request("POST", f"/links/{link_id}/analytics", json=body)

    async def aclose(self) -> None:
        await self._client.aclose()
