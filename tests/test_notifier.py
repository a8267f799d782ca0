from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from helpdesk.metrics import MetricsRegistry
from helpdesk.notifications import NullNotifier, TicketEvent, WebhookNotifier, ticket_to_payload
from helpdesk.tickets.models import Ticket
from helpdesk.tickets.state import TicketPriority, TicketStatus

WEBHOOK_URL = "https://hooks.example.test/tickets"


def _ticket() -> Ticket:
    now = datetime(2024, 7, 1, 8, 0, tzinfo=timezone.utc)
    return Ticket(
        id="ticket-1",
        user_id="user-1",
        message="Printer broken",
        status=TicketStatus.OPEN,
        priority=TicketPriority.HIGH,
        created_at=now,
        updated_at=now,
        category="hardware",
    )


def _outcome(registry: MetricsRegistry, outcome: str) -> float:
    return registry.counter("helpdesk_notifications_total", label_names=("outcome",)).value({"outcome": outcome})


def test_ticket_payload_is_json_ready():
    payload = ticket_to_payload(_ticket())

    assert payload["status"] == "open"
    assert payload["priority"] == "high"
    assert payload["created_at"] == "2024-07-01T08:00:00+00:00"
    assert payload["resolved_at"] is None
    json.dumps(payload)


@pytest.mark.asyncio
async def test_webhook_posts_event_payload():
    received: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        received.append(json.loads(request.content))
        return httpx.Response(204)

    registry = MetricsRegistry()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = WebhookNotifier(WEBHOOK_URL, client=client, metrics=registry)

    notifier.notify(TicketEvent(name="ticket.created", ticket=_ticket()))
    await notifier.drain()
    await notifier.close()
    await client.aclose()

    assert len(received) == 1
    assert received[0]["event"] == "ticket.created"
    assert received[0]["ticket"]["id"] == "ticket-1"
    assert _outcome(registry, "delivered") == 1
    assert registry.distribution("helpdesk_notification_duration_seconds").count() == 1


@pytest.mark.asyncio
async def test_webhook_http_error_is_logged_not_raised(caplog):
    registry = MetricsRegistry()
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(500)))
    notifier = WebhookNotifier(WEBHOOK_URL, client=client, metrics=registry)

    delivered = await notifier.deliver(TicketEvent(name="ticket.created", ticket=_ticket()))
    await client.aclose()

    assert delivered is False
    assert _outcome(registry, "error") == 1
    assert "Error sending ticket.created for ticket ticket-1" in caplog.text


@pytest.mark.asyncio
async def test_webhook_timeout_is_counted():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    registry = MetricsRegistry()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = WebhookNotifier(WEBHOOK_URL, timeout=0.5, client=client, metrics=registry)

    assert await notifier.deliver(TicketEvent(name="ticket.created", ticket=_ticket())) is False
    await client.aclose()

    assert _outcome(registry, "timeout") == 1
    assert _outcome(registry, "error") == 0


@pytest.mark.asyncio
async def test_full_queue_drops_events_without_blocking():
    release = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        await release.wait()
        return httpx.Response(200)

    registry = MetricsRegistry()
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = WebhookNotifier(WEBHOOK_URL, queue_size=1, client=client, metrics=registry)

    notifier.notify(TicketEvent(name="ticket.created", ticket=_ticket()))
    while notifier.pending:
        await asyncio.sleep(0)
    notifier.notify(TicketEvent(name="ticket.status_changed", ticket=_ticket()))
    notifier.notify(TicketEvent(name="ticket.status_changed", ticket=_ticket()))

    assert _outcome(registry, "dropped") == 1

    release.set()
    await notifier.drain()
    await notifier.close()
    await client.aclose()
    assert _outcome(registry, "delivered") == 2


@pytest.mark.asyncio
async def test_null_notifier_only_logs(caplog):
    notifier = NullNotifier()

    notifier.notify(TicketEvent(name="ticket.created", ticket=_ticket()))
    await notifier.close()

    assert "Webhook URL not configured" in caplog.text
