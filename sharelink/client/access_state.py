"""
Visitor-side access flow for a share link.

``reduce`` is a pure transition function over immutable states; every event
carries the attempt it belongs to, and events from an attempt abandoned by
``Retry`` are dropped. ``AccessStateMachine`` drives the reducer with a
``LinkAccessClient``.

    loading -> file | gate | error
    gate    -> file | error
    any     -> loading (retry)
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

from sharelink.client.link_client import LinkAccessClient, LinkClientError

logger = logging.getLogger(__name__)

MISSING_SIGNED_URL = "MISSING_SIGNED_URL"


class AccessStatus(str, Enum):
    LOADING = "loading"
    FILE = "file"
    GATE = "gate"
    ERROR = "error"


@dataclass(frozen=True)
class FileDescriptor:
    signed_url: str
    file_name: Optional[str] = None
    size: Optional[int] = None
    file_type: Optional[str] = None
    document_id: Optional[str] = None
    visitor_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> Optional["FileDescriptor"]:
        """Build from a camelCase API payload; None when it carries no signed URL."""
        signed_url = payload.get("signedUrl")
        if not signed_url:
            return None
        return cls(
            signed_url=signed_url,
            file_name=payload.get("fileName"),
            size=payload.get("size"),
            file_type=payload.get("fileType"),
            document_id=payload.get("documentId"),
            visitor_id=payload.get("visitorId"),
        )


@dataclass(frozen=True)
class AccessState:
    status: AccessStatus = AccessStatus.LOADING
    attempt: int = 0
    is_password_protected: bool = False
    visitor_fields: Tuple[str, ...] = ()
    file: Optional[FileDescriptor] = None
    error_code: Optional[str] = None
    error_detail: Optional[str] = None
    # Set when the gate of this attempt has been opened; cleared only by Retry
    gate_opened: bool = False


@dataclass(frozen=True)
class MetaLoaded:
    attempt: int
    is_password_protected: bool
    visitor_fields: Tuple[str, ...] = ()
    file: Optional[FileDescriptor] = None


@dataclass(frozen=True)
class MetaFailed:
    attempt: int
    code: Optional[str] = None
    detail: Optional[str] = None


@dataclass(frozen=True)
class GateSubmitted:
    attempt: int
    file: Optional[FileDescriptor] = None


@dataclass(frozen=True)
class GateFailed:
    attempt: int
    code: Optional[str] = None
    detail: Optional[str] = None


@dataclass(frozen=True)
class Retry:
    attempt: int


AccessEvent = Union[MetaLoaded, MetaFailed, GateSubmitted, GateFailed, Retry]


def _fail(state: AccessState, code: Optional[str], detail: Optional[str]) -> AccessState:
    return replace(state, status=AccessStatus.ERROR, file=None, error_code=code, error_detail=detail)


def reduce(state: AccessState, event: AccessEvent) -> AccessState:
    """Return the state that follows ``state`` after ``event``."""
    if event.attempt != state.attempt:
        return state

    if isinstance(event, Retry):
        return AccessState(status=AccessStatus.LOADING, attempt=state.attempt + 1)

    if isinstance(event, MetaLoaded):
        if state.status in (AccessStatus.FILE, AccessStatus.ERROR):
            return state
        refreshed = replace(
            state,
            is_password_protected=event.is_password_protected,
            visitor_fields=tuple(event.visitor_fields),
        )
        if state.gate_opened:
            return refreshed
        if event.is_password_protected or event.visitor_fields:
            return replace(refreshed, status=AccessStatus.GATE, gate_opened=True)
        if event.file is None:
            return _fail(refreshed, MISSING_SIGNED_URL, "Link metadata has no gate and no signed URL")
        return replace(refreshed, status=AccessStatus.FILE, file=event.file)

    if isinstance(event, MetaFailed):
        if state.status == AccessStatus.FILE:
            return state
        return _fail(state, event.code, event.detail)

    if isinstance(event, GateSubmitted):
        if state.status != AccessStatus.GATE:
            return state
        if event.file is None:
            return _fail(state, MISSING_SIGNED_URL, "Access response has no signed URL")
        return replace(state, status=AccessStatus.FILE, file=event.file)

    if isinstance(event, GateFailed):
        if state.status != AccessStatus.GATE:
            return state
        return _fail(state, event.code, event.detail)

    raise TypeError(f"Unknown access event: {type(event).__name__}")


class AccessStateMachine:
    """
    Runs the access flow of one link against the API.

    Failures are terminal until ``retry()``; nothing is retried automatically.
    ``on_gate`` is called once each time a gate opens, with the gated state.
    """

    def __init__(
        self,
        link_id: str,
        client: LinkAccessClient,
        on_gate: Optional[Callable[[AccessState], None]] = None
    ):
        self.link_id = link_id
        self.client = client
        self.on_gate = on_gate
        self.state = AccessState()

    def dispatch(self, event: AccessEvent) -> AccessState:
        previous = self.state
        self.state = reduce(previous, event)
        if self.state.gate_opened and not previous.gate_opened and self.on_gate:
            self.on_gate(self.state)
        return self.state

    async def load(self) -> AccessState:
        """Fetch link metadata for the current attempt."""
        attempt = self.state.attempt
        try:
            meta = await self.client.get_link_meta(self.link_id)
        except LinkClientError as e:
            logger.info(f"Link metadata fetch failed: {e.code} ({e.status_code})")
            return self.dispatch(MetaFailed(attempt=attempt, code=e.code, detail=e.detail))

        return self.dispatch(
            MetaLoaded(
                attempt=attempt,
                is_password_protected=bool(meta.get("isPasswordProtected")),
                visitor_fields=tuple(meta.get("visitorFields") or ()),
                file=FileDescriptor.from_payload(meta),
            )
        )

    async def submit(self, password: Optional[str] = None, **visitor_info: Any) -> AccessState:
        """Submit the gate; ignored unless the machine is gated."""
        if self.state.status != AccessStatus.GATE:
            return self.state

        attempt = self.state.attempt
        try:
            payload = await self.client.request_access(self.link_id, password=password, **visitor_info)
        except LinkClientError as e:
            logger.info(f"Link access refused: {e.code} ({e.status_code})")
            return self.dispatch(GateFailed(attempt=attempt, code=e.code, detail=e.detail))

        return self.dispatch(GateSubmitted(attempt=attempt, file=FileDescriptor.from_payload(payload)))

    async def retry(self) -> AccessState:
        """Abandon the current attempt and start over from loading."""
        self.dispatch(Retry(attempt=self.state.attempt))
        return await self.load()
