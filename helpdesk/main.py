from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from helpdesk.api.responses import register_exception_handlers
from helpdesk.api.routes import health, history, interactions, tickets, users
from helpdesk.core.config import Settings, get_settings
from helpdesk.core.logging import configure_logging, init_tracer, shutdown_tracer
from helpdesk.db.session import create_engine, create_session_factory, ensure_schema
from helpdesk.interactions import InteractionRepository, InteractionService
from helpdesk.notifications import NullNotifier, TicketNotifier, WebhookNotifier
from helpdesk.tickets.history import TicketHistoryRepository
from helpdesk.tickets.queries import HistoryQueryService
from helpdesk.tickets.recorder import HistoryRecorder
from helpdesk.tickets.reports import ActivityReportGenerator
from helpdesk.tickets.repository import TicketRepository
from helpdesk.tickets.service import TicketService
from helpdesk.users import UserRepository, UserService

logger = logging.getLogger(__name__)

_SERVICE_NAMES = (
    "ticket_service",
    "history_recorder",
    "history_queries",
    "activity_reports",
    "user_service",
    "interaction_service",
)


def build_notifier(settings: Settings) -> TicketNotifier:
    if not settings.notifier_webhook_url:
        return NullNotifier()
    notifier = WebhookNotifier(
        settings.notifier_webhook_url,
        timeout=settings.notifier_timeout_seconds,
        queue_size=settings.notifier_queue_size,
    )
    notifier.start()
    return notifier


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    configure_logging(settings)
    tracer_provider = init_tracer(settings)

    engine = create_engine(settings.database_url)
    notifier: TicketNotifier = NullNotifier()
    try:
        if settings.auto_create_schema:
            await ensure_schema(engine)
        session_factory = create_session_factory(engine)

        history_repository = TicketHistoryRepository(session_factory)
        recorder = HistoryRecorder(history_repository)
        queries = HistoryQueryService(history_repository)
        notifier = build_notifier(settings)

        app.state.notifier = notifier
        app.state.ticket_service = TicketService(TicketRepository(session_factory), recorder, notifier=notifier)
        app.state.history_recorder = recorder
        app.state.history_queries = queries
        app.state.activity_reports = ActivityReportGenerator(queries)
        app.state.user_service = UserService(UserRepository(session_factory))
        app.state.interaction_service = InteractionService(InteractionRepository(session_factory))
    except Exception:
        logger.exception("Failed to initialise services; API will answer 503")
        for name in _SERVICE_NAMES:
            setattr(app.state, name, None)
        app.state.notifier = notifier

    try:
        yield
    finally:
        await notifier.close()
        await engine.dispose()
        shutdown_tracer(tracer_provider)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    register_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(tickets.router)
    app.include_router(history.router)
    app.include_router(users.router)
    app.include_router(interactions.router)
    return app


app = create_app()
