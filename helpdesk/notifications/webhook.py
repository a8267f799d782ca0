"""Best-effort delivery of ticket events to an external webhook."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Protocol

import httpx
from opentelemetry import trace

from helpdesk.metrics import MetricsRegistry, metrics_registry
from helpdesk.tickets.models import Ticket

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def ticket_to_payload(ticket: Ticket) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for item in fields(ticket):
        value = getattr(ticket, item.name)
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, datetime):
            value = value.isoformat()
        payload[item.name] = value
    return payload


@dataclass(slots=True)
class TicketEvent:
    """Snapshot of a ticket at the moment something happened to it."""

    name: str
    ticket: Ticket
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_payload(self) -> dict[str, Any]:
        return {
            "event": self.name,
            "occurred_at": self.occurred_at.isoformat(),
            "ticket": ticket_to_payload(self.ticket),
        }


class TicketNotifier(Protocol):
    def notify(self, event: TicketEvent) -> None:
        ...

    async def close(self) -> None:
        ...


class NullNotifier:
    """Notifier used when no webhook is configured."""

    def notify(self, event: TicketEvent) -> None:
        logger.warning(
            "Webhook URL not configured; %s for ticket %s will not be forwarded",
            event.name,
            event.ticket.id,
        )

    async def close(self) -> None:
        return None


class WebhookNotifier:
    """Queue ticket events and POST them to a webhook from a background task.

    ``notify`` only enqueues, so the caller never waits on the remote system.
    Delivery failures are logged and counted; nothing is retried.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        queue_size: int = 100,
        client: httpx.AsyncClient | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._queue: asyncio.Queue[TicketEvent] = asyncio.Queue(maxsize=queue_size)
        self._client = client
        self._owns_client = client is None
        self._worker: asyncio.Task[None] | None = None
        registry = metrics or metrics_registry
        self._outcomes = registry.counter("helpdesk_notifications_total", label_names=("outcome",))
        self._duration = registry.distribution("helpdesk_notification_duration_seconds")

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        """Start the delivery worker on the running loop if it is not already running."""

        if self._worker is not None and not self._worker.done():
            return
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        self._worker = asyncio.get_running_loop().create_task(self._run(), name="ticket-webhook-notifier")

    def notify(self, event: TicketEvent) -> None:
        self.start()
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self._outcomes.inc(labels={"outcome": "dropped"})
            logger.warning(
                "Notification queue full; dropping %s for ticket %s", event.name, event.ticket.id
            )

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""

        await self._queue.join()

    async def close(self) -> None:
        if self._worker is not None:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=self._timeout)
            except asyncio.TimeoutError:
                logger.warning("Shutting down with %d undelivered ticket notifications", self.pending)
            self._worker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._worker
            self._worker = None
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

    async def deliver(self, event: TicketEvent) -> bool:
        """POST one event. Returns ``False`` instead of raising on failure."""

        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)

        with tracer.start_as_current_span("ticket.notify") as span, self._duration.time():
            span.set_attribute("ticket.id", event.ticket.id)
            span.set_attribute("ticket.event", event.name)
            try:
                response = await self._client.post(self._url, json=event.to_payload(), timeout=self._timeout)
                response.raise_for_status()
            except httpx.TimeoutException:
                self._outcomes.inc(labels={"outcome": "timeout"})
                logger.error(
                    "Timed out after %.1fs sending %s for ticket %s to webhook",
                    self._timeout,
                    event.name,
                    event.ticket.id,
                )
                return False
            except httpx.HTTPError as exc:
                self._outcomes.inc(labels={"outcome": "error"})
                logger.error("Error sending %s for ticket %s to webhook: %s", event.name, event.ticket.id, exc)
                return False

        self._outcomes.inc(labels={"outcome": "delivered"})
        logger.info("Ticket %s sent to webhook (%s)", event.ticket.id, event.name)
        return True

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self.deliver(event)
            except Exception:
                logger.exception("Unexpected failure delivering %s for ticket %s", event.name, event.ticket.id)
            finally:
                self._queue.task_done()
