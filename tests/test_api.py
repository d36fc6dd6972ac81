"""Tests for the HTTP layer, with repositories swapped for in-memory fakes."""

from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from helpdesk.config import AuditAction, ConfigKey, TicketStatus
from helpdesk.shared.api.middleware import resolve_correlation_id
from helpdesk.infrastructure.database import get_session
from helpdesk.main import app
from helpdesk.triage.interfaces.dependencies import (
    get_ticket_repository,
    get_article_repository,
    get_config_repository,
    get_suggestion_repository,
    get_audit_repository,
    get_background_triage,
)

from conftest import InMemoryArticleRepository


class FakeSession:
    def __init__(self):
        self.commits = 0

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        pass


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def scheduled():
    return []


@pytest.fixture
def client(ticket_repo, article_repo, config_repo, suggestion_repo, audit_repo, fake_session, scheduled):
    async def override_session():
        yield fake_session

    async def record_triage(ticket_id, trace_id):
        scheduled.append((ticket_id, trace_id))

    app.dependency_overrides.update({
        get_session: override_session,
        get_ticket_repository: lambda: ticket_repo,
        get_article_repository: lambda: article_repo,
        get_config_repository: lambda: config_repo,
        get_suggestion_repository: lambda: suggestion_repo,
        get_audit_repository: lambda: audit_repo,
        get_background_triage: lambda: record_triage,
    })
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def refund_ticket(ticket_repo):
    return ticket_repo.add("Refund needed", "I was charged twice, please refund")


class TestTickets:
    """Tests for /tickets."""

    def test_create_schedules_triage(self, client, audit_repo, fake_session, scheduled):
        """Test that a new ticket is committed, audited and queued for triage."""
        response = client.post(
            "/tickets",
            json={"title": "Refund needed", "description": "I was charged twice"},
            headers={"X-Correlation-ID": "corr-1"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["ticket"]["status"] == "open"
        assert body["ticket"]["category"] == "other"
        assert body["trace_id"] == "corr-1"
        assert body["triage_scheduled"] is True
        assert response.headers["X-Correlation-ID"] == "corr-1"

        assert scheduled == [(body["ticket"]["id"], "corr-1")]
        assert fake_session.commits >= 1
        assert audit_repo.actions() == [AuditAction.TICKET_CREATED]

    def test_create_validates_input(self, client, scheduled):
        """Test that too-short fields and unknown categories are rejected."""
        assert client.post("/tickets", json={"title": "Hi", "description": "Long enough"}).status_code == 422
        assert client.post(
            "/tickets", json={"title": "Hello", "description": "Long enough", "category": "sales"}
        ).status_code == 422
        assert scheduled == []

    def test_get_ticket(self, client, refund_ticket):
        """Test fetching a ticket."""
        response = client.get(f"/tickets/{refund_ticket.id}")
        assert response.status_code == 200
        assert response.json()["title"] == "Refund needed"

    def test_get_missing_ticket(self, client):
        """Test that a missing ticket is a 404 with the correlation id."""
        response = client.get("/tickets/nope", headers={"X-Correlation-ID": "corr-2"})
        assert response.status_code == 404
        assert response.json()["correlation_id"] == "corr-2"

    def test_list_newest_first_and_filter(self, client, ticket_repo):
        """Test listing all tickets and the status filter."""
        now = datetime.now(timezone.utc)
        older = ticket_repo.add("Older", "Filed yesterday", created_at=now - timedelta(days=1))
        waiting = ticket_repo.add(
            "Waiting", "Needs a person", status=TicketStatus.WAITING_HUMAN, created_at=now
        )

        body = client.get("/tickets").json()
        assert body["count"] == 2
        assert [t["id"] for t in body["tickets"]] == [waiting.id, older.id]

        queue = client.get("/tickets", params={"status": "waiting_human"}).json()
        assert [t["id"] for t in queue["tickets"]] == [waiting.id]

        assert client.get("/tickets", params={"status": "pending"}).status_code == 422

    @pytest.mark.parametrize("close,status", [(False, "triaged"), (True, "resolved")])
    def test_reply(self, client, refund_ticket, audit_repo, close, status):
        """Test that a reply sets the status and is audited as the agent."""
        response = client.post(
            f"/tickets/{refund_ticket.id}/reply",
            json={"message": "Your refund is on its way", "close": close},
            headers={"X-Correlation-ID": "corr-4"},
        )

        assert response.status_code == 200
        assert response.json()["status"] == status
        entry = audit_repo.entries[0]
        assert entry.action == AuditAction.REPLY_SENT
        assert entry.actor == "agent"
        assert entry.trace_id == "corr-4"
        assert entry.meta == {"message": "Your refund is on its way", "close": close}

    def test_reply_rejected(self, client, refund_ticket, audit_repo):
        """Test a missing ticket and a too-short message."""
        assert client.post("/tickets/nope/reply", json={"message": "Hello"}).status_code == 404
        assert client.post(f"/tickets/{refund_ticket.id}/reply", json={"message": "x"}).status_code == 422
        assert audit_repo.entries == []

    @pytest.mark.parametrize("header", ["x" * 100, "bad id!"])
    def test_unusable_correlation_id_replaced(self, client, scheduled, header):
        """Test that an oversized or malformed correlation id gets a fresh uuid."""
        response = client.post(
            "/tickets",
            json={"title": "Refund needed", "description": "I was charged twice"},
            headers={"X-Correlation-ID": header},
        )

        assert response.status_code == 201
        trace_id = response.json()["trace_id"]
        assert trace_id != header
        assert str(UUID(trace_id)) == trace_id
        assert response.headers["X-Correlation-ID"] == trace_id
        assert scheduled[0][1] == trace_id


class TestTriage:
    """Tests for /triage."""

    def test_triage_and_read_back(self, client, refund_ticket, config_repo):
        """Test a synchronous run followed by the suggestion and audit reads."""
        client.put(f"/config/{ConfigKey.CONFIDENCE_THRESHOLD}", json={"value": 0.5})

        response = client.post("/triage", json={"ticket_id": refund_ticket.id})

        assert response.status_code == 200
        outcome = response.json()
        assert outcome["category"] == "billing"
        assert outcome["decision"] == "auto_close"
        assert outcome["ticket_status"] == "resolved"

        suggestion = client.get(f"/triage/suggestions/{refund_ticket.id}").json()
        assert suggestion["id"] == outcome["suggestion_id"]
        assert suggestion["citations"] == ["kb-refund"]
        assert suggestion["model_info"]["provider"] == "keyword-heuristic"

        trace = client.get(f"/triage/traces/{outcome['trace_id']}").json()
        assert trace["count"] == 6
        assert trace["entries"][-1]["action"] == AuditAction.AUTO_CLOSED

        ticket_trail = client.get(f"/triage/audit/{refund_ticket.id}").json()
        assert ticket_trail["count"] == 6

    def test_triage_missing_ticket(self, client, audit_repo, suggestion_repo):
        """Test that a missing ticket is a 404 and the failure is audited."""
        response = client.post("/triage", json={"ticket_id": "ghost"})

        assert response.status_code == 404
        assert response.json()["trace_id"] == audit_repo.entries[0].trace_id
        assert audit_repo.actions() == [AuditAction.AGENT_WORKFLOW_FAILED]
        assert suggestion_repo.suggestions == []

    def test_stage_failure_is_500(self, client, refund_ticket, audit_repo):
        """Test that an unexpected stage error yields a generic 500 with the trace id."""

        class BrokenArticles(InMemoryArticleRepository):
            async def find_published(self, category=None):
                raise RuntimeError("connection reset")

        app.dependency_overrides[get_article_repository] = lambda: BrokenArticles()

        response = client.post("/triage", json={"ticket_id": refund_ticket.id})

        assert response.status_code == 500
        body = response.json()
        assert body["detail"] == "Request failed"
        assert "connection reset" not in body["detail"]
        assert body["trace_id"] == audit_repo.entries[-1].trace_id

    def test_ticket_id_too_long(self, client, audit_repo):
        """Test that ticket ids longer than 64 characters are refused up front."""
        assert client.post("/triage", json={"ticket_id": "t" * 65}).status_code == 422
        assert audit_repo.entries == []

    def test_no_suggestion_yet(self, client, refund_ticket):
        """Test that an untriaged ticket has no suggestion."""
        assert client.get(f"/triage/suggestions/{refund_ticket.id}").status_code == 404


class TestKnowledgeBase:
    """Tests for /kb/search."""

    def test_search(self, client):
        """Test ranked results with scores."""
        body = client.get("/kb/search", params={"q": "refund"}).json()
        assert body["count"] == 1
        assert body["results"][0]["id"] == "kb-refund"
        assert body["results"][0]["score"] == 3.5

    def test_search_requires_query(self, client):
        """Test that the query parameter is required."""
        assert client.get("/kb/search").status_code == 422


class TestConfig:
    """Tests for /config."""

    def test_list(self, client):
        """Test that entries carry their type tag."""
        body = client.get("/config").json()
        types = {e["key"]: e["type"] for e in body["entries"]}
        assert types == {ConfigKey.AUTO_CLOSE_ENABLED: "boolean", ConfigKey.CONFIDENCE_THRESHOLD: "number"}

    def test_update(self, client, audit_repo):
        """Test a valid update and its audit entry."""
        response = client.put(
            f"/config/{ConfigKey.CONFIDENCE_THRESHOLD}",
            json={"value": 0.6, "reason": "tuning"},
            headers={"X-Correlation-ID": "corr-3"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["entry"]["value"] == 0.6
        assert body["entry"]["version"] == "1.0.1"
        assert body["old_value"] == 0.78
        assert body["trace_id"] == "corr-3"
        assert audit_repo.actions() == [AuditAction.SYSTEM_CONFIG_UPDATED]

    def test_get_entry(self, client):
        """Test reading one entry and an unknown key."""
        response = client.get(f"/config/{ConfigKey.CONFIDENCE_THRESHOLD}")
        assert response.status_code == 200
        assert response.json()["type"] == "number"
        assert response.json()["value"] == 0.78
        assert client.get("/config/unknownKey").status_code == 404

    def test_update_nan_rejected(self, client, config_repo, audit_repo):
        """Test that a NaN literal in the body is refused and nothing changes."""
        response = client.put(
            f"/config/{ConfigKey.CONFIDENCE_THRESHOLD}",
            content='{"value": NaN}',
            headers={"content-type": "application/json"},
        )

        assert response.status_code == 422
        assert config_repo.entries[ConfigKey.CONFIDENCE_THRESHOLD].value == 0.78
        assert audit_repo.entries == []

    def test_update_toggle(self, client, config_repo):
        """Test switching auto-close off."""
        response = client.put(f"/config/{ConfigKey.AUTO_CLOSE_ENABLED}", json={"value": False})
        assert response.status_code == 200
        assert config_repo.entries[ConfigKey.AUTO_CLOSE_ENABLED].value is False

    @pytest.mark.parametrize("key,value,status", [
        (ConfigKey.CONFIDENCE_THRESHOLD, 1.5, 422),
        (ConfigKey.CONFIDENCE_THRESHOLD, "high", 422),
        (ConfigKey.AUTO_CLOSE_ENABLED, "no", 422),
        ("unknownKey", 1, 404),
    ])
    def test_update_rejected(self, client, audit_repo, key, value, status):
        """Test invalid values and unknown keys."""
        assert client.put(f"/config/{key}", json={"value": value}).status_code == status
        assert audit_repo.entries == []


def test_health(client):
    """Test the liveness endpoint."""
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert "version" in body


class TestCorrelationId:
    """Tests for correlation id sanitizing."""

    @pytest.mark.parametrize("header", ["corr-1", "a" * 64, "svc.api:42_x"])
    def test_usable_header_kept(self, header):
        """Test that ids the audit columns can hold pass through."""
        assert resolve_correlation_id(header) == header

    @pytest.mark.parametrize("header", [None, "", "a" * 65, "has space", "semi;colon"])
    def test_unusable_header_replaced(self, header):
        """Test that missing, oversized and malformed ids become uuids."""
        value = resolve_correlation_id(header)
        assert value != header
        assert str(UUID(value)) == value
