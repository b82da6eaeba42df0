"""
Tests for the visitor-side access flow: the pure reducer, the state machine and the API client.
"""
import httpx
import pytest

from sharelink.client.access_state import (
    MISSING_SIGNED_URL,
    AccessState,
    AccessStateMachine,
    AccessStatus,
    FileDescriptor,
    GateFailed,
    GateSubmitted,
    MetaFailed,
    MetaLoaded,
    Retry,
    reduce,
)
from sharelink.client.link_client import LinkAccessClient, LinkClientError

FILE = FileDescriptor(signed_url="https://storage.test/a.pdf", file_name="a.pdf")


class TestReducer:
    """Tests for state transitions."""

    def test_ungated_meta_with_file(self):
        state = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=False, file=FILE))

        assert state.status == AccessStatus.FILE
        assert state.file == FILE

    def test_ungated_meta_without_signed_url_is_error(self):
        state = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=False))

        assert state.status == AccessStatus.ERROR
        assert state.error_code == MISSING_SIGNED_URL
        assert state.file is None

    @pytest.mark.parametrize("protected,fields", [(True, ()), (False, ("email",)), (True, ("name",))])
    def test_gated_meta_opens_gate(self, protected, fields):
        state = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=protected, visitor_fields=fields))

        assert state.status == AccessStatus.GATE
        assert state.gate_opened is True
        assert state.visitor_fields == fields

    def test_gate_not_reopened_by_refetch(self):
        gated = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=True))

        refreshed = reduce(gated, MetaLoaded(attempt=0, is_password_protected=True, visitor_fields=("email",)))

        assert refreshed.status == AccessStatus.GATE
        assert refreshed.visitor_fields == ("email",)

    def test_gate_submitted_shows_file(self):
        gated = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=True))

        state = reduce(gated, GateSubmitted(attempt=0, file=FILE))

        assert state.status == AccessStatus.FILE
        assert state.file == FILE

    def test_gate_submitted_without_signed_url(self):
        gated = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=True))

        state = reduce(gated, GateSubmitted(attempt=0))

        assert state.status == AccessStatus.ERROR
        assert state.error_code == MISSING_SIGNED_URL

    def test_gate_failure_is_terminal(self):
        gated = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=True))

        failed = reduce(gated, GateFailed(attempt=0, code="INVALID_PASSWORD", detail="Invalid password"))
        after = reduce(failed, GateSubmitted(attempt=0, file=FILE))

        assert failed.status == AccessStatus.ERROR
        assert failed.error_code == "INVALID_PASSWORD"
        assert after == failed

    def test_meta_failure(self):
        state = reduce(AccessState(), MetaFailed(attempt=0, code="EXPIRED", detail="Link has expired"))

        assert state.status == AccessStatus.ERROR
        assert state.error_code == "EXPIRED"

    def test_file_state_survives_late_meta(self):
        shown = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=False, file=FILE))

        assert reduce(shown, MetaFailed(attempt=0, code="EXPIRED")) == shown
        assert reduce(shown, MetaLoaded(attempt=0, is_password_protected=True)) == shown

    def test_retry_starts_new_attempt(self):
        failed = reduce(AccessState(), MetaFailed(attempt=0, code="NOT_FOUND"))

        state = reduce(failed, Retry(attempt=0))

        assert state == AccessState(status=AccessStatus.LOADING, attempt=1)

    def test_stale_events_ignored(self):
        gated = reduce(AccessState(), MetaLoaded(attempt=0, is_password_protected=True))
        retried = reduce(gated, Retry(attempt=0))

        assert reduce(retried, GateSubmitted(attempt=0, file=FILE)) == retried
        assert reduce(retried, MetaFailed(attempt=0, code="EXPIRED")) == retried

    def test_file_descriptor_requires_signed_url(self):
        assert FileDescriptor.from_payload({"fileName": "a.pdf"}) is None
        descriptor = FileDescriptor.from_payload({"signedUrl": "u", "fileName": "a.pdf", "visitorId": 3})
        assert descriptor.visitor_id == 3


class FakeLinkClient:
    """Scripted stand-in for LinkAccessClient."""

    def __init__(self, metas, access=None):
        self.metas = list(metas)
        self.access = access
        self.submissions = []

    async def get_link_meta(self, link_id):
        meta = self.metas.pop(0)
        if isinstance(meta, Exception):
            raise meta
        return meta

    async def request_access(self, link_id, password=None, **visitor_info):
        self.submissions.append((password, visitor_info))
        if isinstance(self.access, Exception):
            raise self.access
        return self.access


class TestAccessStateMachine:
    """Tests for the machine driving the reducer."""

    async def test_public_link(self):
        client = FakeLinkClient([{"isPasswordProtected": False, "visitorFields": [], "signedUrl": "u"}])
        machine = AccessStateMachine("link", client)

        state = await machine.load()

        assert state.status == AccessStatus.FILE
        assert state.file.signed_url == "u"

    async def test_gate_callback_fires_once(self):
        gates = []
        client = FakeLinkClient(
            [{"isPasswordProtected": True, "visitorFields": []}] * 2,
            access={"signedUrl": "u", "visitorId": 7},
        )
        machine = AccessStateMachine("link", client, on_gate=gates.append)

        await machine.load()
        await machine.load()
        state = await machine.submit(password="s3cr3t")

        assert len(gates) == 1
        assert state.status == AccessStatus.FILE
        assert state.file.visitor_id == 7
        assert client.submissions == [("s3cr3t", {})]

    async def test_submit_ignored_when_not_gated(self):
        client = FakeLinkClient([{"isPasswordProtected": False, "signedUrl": "u"}])
        machine = AccessStateMachine("link", client)
        await machine.load()

        await machine.submit(password="x")

        assert client.submissions == []

    async def test_failed_submission_then_retry(self):
        gates = []
        client = FakeLinkClient(
            [{"isPasswordProtected": True}, {"isPasswordProtected": True}],
            access=LinkClientError(401, "INVALID_PASSWORD", "Invalid password"),
        )
        machine = AccessStateMachine("link", client, on_gate=gates.append)
        await machine.load()

        failed = await machine.submit(password="wrong")
        retried = await machine.retry()

        assert failed.status == AccessStatus.ERROR
        assert failed.error_code == "INVALID_PASSWORD"
        assert retried.status == AccessStatus.GATE
        assert retried.attempt == 1
        assert len(gates) == 2

    async def test_meta_error(self):
        client = FakeLinkClient([LinkClientError(404, "NOT_FOUND", "Link not found")])
        machine = AccessStateMachine("link", client)

        state = await machine.load()

        assert state.status == AccessStatus.ERROR
        assert state.error_code == "NOT_FOUND"


class TestLinkAccessClient:
    """Tests for the HTTP client against the running API."""

    async def test_non_json_success_body_is_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>maintenance</html>")

        link_client = LinkAccessClient(
            base_url="http://test/api/v1",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )
        machine = AccessStateMachine("link", link_client)

        with pytest.raises(LinkClientError) as exc_info:
            await link_client.get_link_meta("link")
        state = await machine.load()

        assert exc_info.value.code == "INVALID_RESPONSE"
        assert exc_info.value.status_code == 200
        assert state.status == AccessStatus.ERROR
        assert state.error_code == "INVALID_RESPONSE"

    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        link_client = LinkAccessClient(
            base_url="http://test/api/v1",
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        with pytest.raises(LinkClientError) as exc_info:
            await link_client.request_access("link", password="x")

        assert exc_info.value.code == "NETWORK_ERROR"
        assert exc_info.value.status_code == 0

    async def test_full_flow(self, async_client, owner_headers, document):
        created = await async_client.post(
            "/api/v1/links",
            json={"documentId": document.document_id, "password": "s3cr3t", "visitorFields": ["email"]},
            headers=owner_headers
        )
        link_id = created.json()["linkId"]
        link_client = LinkAccessClient(base_url="http://test/api/v1", http_client=async_client)
        machine = AccessStateMachine(link_id, link_client)

        gated = await machine.load()
        state = await machine.submit(password="s3cr3t", email="jane@example.com")

        assert gated.status == AccessStatus.GATE
        assert gated.visitor_fields == ("email",)
        assert state.status == AccessStatus.FILE
        assert state.file.file_name == "report.pdf"
        assert state.file.visitor_id is not None

        result = await link_client.report_event(link_id, "view", visitor_id=state.file.visitor_id)
        assert result == {"success": True}

    async def test_error_code_surfaced(self, async_client):
        link_client = LinkAccessClient(base_url="http://test/api/v1", http_client=async_client)

        with pytest.raises(LinkClientError) as exc_info:
            await link_client.get_link_meta("missing")

        assert exc_info.value.status_code == 404
        assert exc_info.value.code == "NOT_FOUND"
