import json

import httpx
import pytest

from samgov_intel.core.exceptions import NotificationException, ServiceNotConfiguredException
from samgov_intel.sam.models import OpportunityRecord
from samgov_intel.services.notifier import PERMISSION_HINT, GraphNotifier, build_notification

GRAPH_SETTINGS = {
    "graph_tenant_id": "tenant-id",
    "graph_client_id": "client-id",
    "graph_client_secret": "client-secret",
    "graph_sender_mailbox": "noreply@example.com",
}


class FakeGraph:
    """Token endpoint plus a scripted sequence of sendMail responses."""

    def __init__(self, *send_responses: httpx.Response):
        self.send_responses = list(send_responses)
        self.token_requests = 0
        self.send_bodies: list[dict] = []
        self.send_headers: list[httpx.Headers] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if request.url.host == "login.microsoftonline.com":
            self.token_requests += 1
            assert request.url.path == "/tenant-id/oauth2/v2.0/token"
            return httpx.Response(200, json={"access_token": "graph-token", "expires_in": 3600})

        assert request.url.path == "/v1.0/users/noreply@example.com/sendMail"
        self.send_bodies.append(json.loads(request.content))
        self.send_headers.append(request.headers)
        if self.send_responses:
            return self.send_responses.pop(0)
        return httpx.Response(202)


@pytest.fixture
def notifier_for(settings):
    def factory(graph: FakeGraph) -> GraphNotifier:
        return GraphNotifier(
            settings=settings.model_copy(update=GRAPH_SETTINGS),
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(graph)),
        )

    return factory


async def test_send_uses_bearer_token_and_saves_to_sent_items(notifier_for):
    graph = FakeGraph()

    await notifier_for(graph).send("buyer@example.com", "Subject", "<p>Body</p>")

    assert graph.send_headers[0]["authorization"] == "Bearer graph-token"
    body = graph.send_bodies[0]
    assert body["saveToSentItems"] is True
    assert body["message"]["subject"] == "Subject"
    assert body["message"]["body"] == {"contentType": "HTML", "content": "<p>Body</p>"}
    assert body["message"]["toRecipients"] == [{"emailAddress": {"address": "buyer@example.com"}}]


async def test_token_is_reused(notifier_for):
    graph = FakeGraph()
    notifier = notifier_for(graph)

    await notifier.send("buyer@example.com", "One", "<p>1</p>")
    await notifier.send("buyer@example.com", "Two", "<p>2</p>")

    assert graph.token_requests == 1
    assert len(graph.send_bodies) == 2


async def test_retries_once_without_save_to_sent_items(notifier_for):
    rejected = httpx.Response(
        400,
        json={"error": {"code": "ErrorInvalidRequest", "message": "Cannot set saveToSentItems for this mailbox"}},
    )
    graph = FakeGraph(rejected)

    await notifier_for(graph).send("buyer@example.com", "Subject", "<p>Body</p>")

    assert [body["saveToSentItems"] for body in graph.send_bodies] == [True, False]


async def test_forbidden_carries_permission_hint(notifier_for):
    graph = FakeGraph(
        httpx.Response(403, json={"error": {"code": "ErrorAccessDenied", "message": "Access is denied."}})
    )

    with pytest.raises(NotificationException) as exc_info:
        await notifier_for(graph).send("buyer@example.com", "Subject", "<p>Body</p>")

    assert exc_info.value.upstream_status == 403
    assert exc_info.value.details["hint"] == PERMISSION_HINT


async def test_authorization_denied_code_carries_hint(notifier_for):
    graph = FakeGraph(
        httpx.Response(401, json={"error": {"code": "Authorization_RequestDenied", "message": "Denied"}})
    )

    with pytest.raises(NotificationException) as exc_info:
        await notifier_for(graph).send("buyer@example.com", "Subject", "<p>Body</p>")

    assert exc_info.value.details["hint"] == PERMISSION_HINT


async def test_other_errors_raise_without_hint(notifier_for):
    graph = FakeGraph(httpx.Response(500, json={"error": {"code": "InternalServerError", "message": "Boom"}}))

    with pytest.raises(NotificationException) as exc_info:
        await notifier_for(graph).send("buyer@example.com", "Subject", "<p>Body</p>")

    assert "hint" not in exc_info.value.details
    assert "Boom" in exc_info.value.message


def test_requires_graph_settings(settings):
    with pytest.raises(ServiceNotConfiguredException):
        GraphNotifier(settings=settings)


def test_build_notification_escapes_content():
    records = [
        OpportunityRecord(
            solicitation_number="SPE4A7-26-Q-0001",
            title="Acids & <Bases>",
            agency="DLA",
            ui_link="https://sam.gov/opp/a1b2c3/view",
        ),
        OpportunityRecord(solicitation_number="SPE4A7-26-Q-0002", title="Acetone"),
    ]

    subject, body = build_notification(records, "https://intel.example.com/")

    assert subject == "[SAM.gov] 2 New Contract Opportunities Found"
    assert "Acids &amp; &lt;Bases&gt;" in body
    assert "Deadline: Not specified" in body
    assert 'href="https://intel.example.com/settings/sam-gov"' in body


async def test_token_response_without_access_token(settings):
    def token_endpoint(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "unexpected"})

    notifier = GraphNotifier(
        settings=settings.model_copy(update=GRAPH_SETTINGS),
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(token_endpoint)),
    )

    with pytest.raises(NotificationException) as exc_info:
        await notifier.send("buyer@example.com", "Subject", "<p>Body</p>")

    assert exc_info.value.upstream_status == 200
    assert "access token" in exc_info.value.message
