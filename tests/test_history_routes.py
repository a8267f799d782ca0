from __future__ import annotations

import httpx
import pytest
import pytest_asyncio
from uuid import uuid4

from sqlalchemy.ext.asyncio import async_sessionmaker

from helpdesk.core.config import Settings
from helpdesk.interactions import InteractionRepository, InteractionService
from helpdesk.main import create_app
from helpdesk.metrics import MetricsRegistry
from helpdesk.tickets.history import TicketHistoryRepository
from helpdesk.tickets.queries import HistoryQueryService
from helpdesk.tickets.recorder import HistoryRecorder
from helpdesk.tickets.reports import ActivityReportGenerator
from helpdesk.tickets.repository import TicketRepository
from helpdesk.tickets.service import TicketService
from helpdesk.users import UserRepository, UserService

USER_ID = str(uuid4())
AGENT_1 = str(uuid4())
AGENT_2 = str(uuid4())


class RecordingNotifier:
    def __init__(self) -> None:
        self.events = []

    def notify(self, event) -> None:
        self.events.append(event)

    async def close(self) -> None:
        return None


@pytest_asyncio.fixture
async def client(session_factory: async_sessionmaker):
    app = create_app(Settings(app_name="Helpdesk API (test)"))
    registry = MetricsRegistry()
    history_repository = TicketHistoryRepository(session_factory)
    recorder = HistoryRecorder(history_repository, metrics=registry)
    queries = HistoryQueryService(history_repository)
    app.state.ticket_service = TicketService(
        TicketRepository(session_factory), recorder, notifier=RecordingNotifier(), metrics=registry
    )
    app.state.history_recorder = recorder
    app.state.history_queries = queries
    app.state.activity_reports = ActivityReportGenerator(queries)
    app.state.user_service = UserService(UserRepository(session_factory))
    app.state.interaction_service = InteractionService(InteractionRepository(session_factory))

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


async def _create_ticket(client: httpx.AsyncClient, **payload) -> dict:
    body = {"user_id": USER_ID, "message": "Printer broken", **payload}
    response = await client.post("/api/tickets", json=body)
    assert response.status_code == 201
    return response.json()["data"]


@pytest.mark.asyncio
async def test_ticket_lifecycle_scenario(client: httpx.AsyncClient):
    ticket = await _create_ticket(client, status="closed")
    assert ticket["status"] == "open"
    assert ticket["priority"] == "normal"

    recorded = await client.post(
        "/ticket-history",
        json={"ticket_id": ticket["id"], "status": "in_progress", "changed_by": AGENT_1},
    )
    assert recorded.status_code == 201
    assert recorded.json()["data"]["notes"] == "Status alterado para: in_progress"

    count = await client.get(f"/ticket-history/ticket/{ticket['id']}/count")
    latest = await client.get(f"/ticket-history/ticket/{ticket['id']}/latest")
    assert count.json()["data"] == {"count": 1}
    assert latest.json()["data"]["status"] == "in_progress"


@pytest.mark.asyncio
async def test_status_update_is_visible_in_history(client: httpx.AsyncClient):
    ticket = await _create_ticket(client)

    response = await client.patch(
        f"/api/tickets/{ticket['id']}/status", json={"status": "resolved", "changed_by": AGENT_2}
    )
    history = await client.get(f"/ticket-history/ticket/{ticket['id']}")

    assert response.status_code == 200
    entries = history.json()["data"]
    assert [entry["status"] for entry in entries] == ["resolved"]
    assert entries[0]["changed_by"] == AGENT_2


@pytest.mark.asyncio
async def test_activity_report_uses_camel_case(client: httpx.AsyncClient):
    ticket = await _create_ticket(client)
    for status, actor in [("in_progress", AGENT_1), ("resolved", AGENT_2), ("closed", AGENT_1)]:
        await client.patch(f"/api/tickets/{ticket['id']}/status", json={"status": status, "changed_by": actor})

    report = (await client.get(f"/ticket-history/ticket/{ticket['id']}/report")).json()["data"]
    empty = (await client.get("/ticket-history/ticket/no-history/report")).json()["data"]

    assert report["totalChanges"] == 3
    assert report["firstChange"]["status"] == "in_progress"
    assert report["lastChange"]["status"] == "closed"
    assert len(report["statusChanges"]) == 3
    assert report["uniqueUsers"] == [AGENT_1, AGENT_2]
    assert empty == {
        "totalChanges": 0,
        "firstChange": None,
        "lastChange": None,
        "statusChanges": [],
        "uniqueUsers": [],
    }


@pytest.mark.asyncio
async def test_latest_without_history_is_not_found(client: httpx.AsyncClient):
    response = await client.get("/ticket-history/ticket/no-history/latest")

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_batch_reports_partial_progress(client: httpx.AsyncClient):
    ticket = await _create_ticket(client)
    changes = [
        {"ticket_id": ticket["id"], "status": "in_progress", "changed_by": AGENT_1},
        {"ticket_id": ticket["id"], "status": "unknown", "changed_by": AGENT_1},
        {"ticket_id": ticket["id"], "status": "closed", "changed_by": AGENT_1},
    ]

    response = await client.post("/ticket-history/batch", json={"changes": changes})
    count = await client.get(f"/ticket-history/ticket/{ticket['id']}/count")

    assert response.status_code == 207
    data = response.json()["data"]
    assert data["status"] == "partial"
    assert data["failed_index"] == 1
    assert len(data["recorded"]) == 1
    assert count.json()["data"]["count"] == 1


@pytest.mark.asyncio
async def test_batch_fully_recorded(client: httpx.AsyncClient):
    ticket = await _create_ticket(client)
    changes = [
        {"ticket_id": ticket["id"], "status": "in_progress", "changed_by": AGENT_1},
        {"ticket_id": ticket["id"], "status": "resolved", "changed_by": AGENT_1, "notes": "Done"},
    ]

    response = await client.post("/ticket-history/batch", json={"changes": changes})

    assert response.status_code == 201
    assert response.json()["data"]["status"] == "complete"


@pytest.mark.asyncio
async def test_date_range_validation_and_lookup(client: httpx.AsyncClient):
    ticket = await _create_ticket(client)
    await client.post(
        "/ticket-history",
        json={
            "ticket_id": ticket["id"],
            "status": "open",
            "changed_by": AGENT_1,
            "changed_at": "2024-05-01T10:00:00Z",
        },
    )

    found = await client.get(
        "/ticket-history/date-range", params={"startDate": "2024-05-01", "endDate": "2024-05-02"}
    )
    reversed_range = await client.get(
        "/ticket-history/date-range", params={"startDate": "2024-05-02", "endDate": "2024-05-01"}
    )
    missing = await client.get("/ticket-history/date-range", params={"startDate": "2024-05-01"})

    assert found.status_code == 200
    assert len(found.json()["data"]) == 1
    assert reversed_range.status_code == 400
    assert missing.status_code == 400


@pytest.mark.asyncio
async def test_history_lookups_by_id_user_and_status(client: httpx.AsyncClient):
    ticket = await _create_ticket(client)
    entry = (
        await client.post(
            "/ticket-history", json={"ticket_id": ticket["id"], "status": "escalated", "changed_by": AGENT_2}
        )
    ).json()["data"]

    by_id = await client.get(f"/ticket-history/{entry['id']}")
    by_user = await client.get(f"/ticket-history/user/{AGENT_2}")
    by_status = await client.get("/ticket-history/status/escalated")
    bad_status = await client.get("/ticket-history/status/archived")
    missing = await client.get("/ticket-history/does-not-exist")

    assert by_id.json()["data"]["id"] == entry["id"]
    assert [item["id"] for item in by_user.json()["data"]] == [entry["id"]]
    assert [item["id"] for item in by_status.json()["data"]] == [entry["id"]]
    assert bad_status.status_code == 400
    assert missing.status_code == 404
    assert missing.json()["message"] == "History entry not found"


@pytest.mark.asyncio
async def test_user_and_interaction_endpoints(client: httpx.AsyncClient):
    created = await client.post("/api/users", json={"name": "Ana", "email": "ana@example.com"})
    duplicate = await client.post("/api/users", json={"name": "Ana 2", "email": "ana@example.com"})
    invalid_email = await client.post("/api/users", json={"name": "Ana 3", "email": "not-an-email"})

    assert created.status_code == 201
    assert created.json()["data"]["role"] == "colaborador"
    assert duplicate.status_code == 409
    assert invalid_email.status_code == 400

    ticket = await _create_ticket(client)
    interaction = await client.post(
        "/interactions", json={"user_id": USER_ID, "ticket_id": ticket["id"], "message": "Any update?"}
    )
    assert interaction.status_code == 201
    assert interaction.json()["data"]["channel"] == "web"

    count = await client.get(f"/interactions/ticket/{ticket['id']}/count")
    deleted = await client.delete(f"/interactions/{interaction.json()['data']['id']}")
    gone = await client.get(f"/interactions/{interaction.json()['data']['id']}")

    assert count.json()["data"] == {"count": 1}
    assert deleted.status_code == 200
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_healthcheck_and_metrics(client: httpx.AsyncClient):
    health = await client.get("/healthcheck")
    metrics = await client.get("/metrics")

    assert health.json() == {"status": "ok"}
    assert metrics.status_code == 200
    assert "# TYPE helpdesk_tickets_created_total counter" in metrics.text


@pytest.mark.asyncio
async def test_malformed_ids_are_bad_requests(client: httpx.AsyncClient):
    ticket = await _create_ticket(client)

    bad_ticket = await client.post(
        "/ticket-history", json={"ticket_id": "ticket-1", "status": "open", "changed_by": AGENT_1}
    )
    bad_actor = await client.post(
        "/ticket-history", json={"ticket_id": ticket["id"], "status": "open", "changed_by": "agent-1"}
    )
    bad_interaction = await client.post(
        "/interactions", json={"user_id": "user-1", "ticket_id": ticket["id"], "message": "Hi"}
    )
    count = await client.get(f"/ticket-history/ticket/{ticket['id']}/count")

    assert bad_ticket.status_code == 400
    assert bad_actor.status_code == 400
    assert bad_interaction.status_code == 400
    assert count.json()["data"] == {"count": 0}


@pytest.mark.asyncio
@pytest.mark.parametrize("field", ["email", "role", "status"])
async def test_user_update_with_null_required_field_is_bad_request(client: httpx.AsyncClient, field):
    created = (await client.post("/api/users", json={"name": "Ana", "email": "ana@example.com"})).json()["data"]

    response = await client.patch(f"/api/users/{created['id']}", json={field: None})
    unchanged = await client.get(f"/api/users/{created['id']}")

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert unchanged.json()["data"][field] == created[field]
