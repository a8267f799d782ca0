"""Logging and tracing setup for the helpdesk API.

Application loggers live under ``helpdesk``: ticket lifecycle and history logs
under ``helpdesk.tickets`` and webhook delivery logs under
``helpdesk.notifications``. Every record is tagged with the deployment
environment so mixed log streams can be told apart.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig
from urllib.parse import unquote

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from helpdesk.core.config import Settings

APP_LOGGER = "helpdesk"
TICKETS_LOGGER = "helpdesk.tickets"
NOTIFICATIONS_LOGGER = "helpdesk.notifications"

_active_provider: TracerProvider | None = None


class EnvironmentFilter(logging.Filter):
    """Stamp each record with the configured environment name."""

    def __init__(self, environment: str) -> None:
        super().__init__()
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "environment"):
            record.environment = self.environment
        return True


def _level(name: str | None, default: int) -> int:
    if not name:
        return default
    value = logging.getLevelName(name.upper())
    return value if isinstance(value, int) else default


def _parse_headers(header_string: str | None) -> dict[str, str]:
    """Parse ``OTEL_EXPORTER_OTLP_HEADERS`` style ``key=value`` pairs.

    Values may be percent-encoded; malformed pairs and blank keys are skipped.
    """

    headers: dict[str, str] = {}
    for item in (header_string or "").split(","):
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            continue
        headers[key] = unquote(value.strip())
    return headers


def configure_logging(settings: Settings) -> logging.Logger:
    """Install the log configuration and return the ``helpdesk`` logger."""

    level = _level(settings.log_level, logging.INFO)
    notifier_level = _level(settings.notifier_log_level, level)
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "environment": {"()": EnvironmentFilter, "environment": settings.environment},
            },
            "formatters": {
                "default": {"format": settings.log_format},
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                    "filters": ["environment"],
                },
            },
            "loggers": {
                APP_LOGGER: {"level": level},
                TICKETS_LOGGER: {"level": level},
                NOTIFICATIONS_LOGGER: {"level": notifier_level},
                # one INFO line per webhook POST otherwise
                "httpx": {"level": max(level, logging.WARNING)},
                "sqlalchemy.engine": {"level": logging.WARNING},
            },
            "root": {"handlers": ["default"], "level": level},
        }
    )
    return logging.getLogger(APP_LOGGER)


def init_tracer(settings: Settings) -> TracerProvider | None:
    """Install an OTLP exporting tracer provider when tracing is enabled.

    Returns ``None`` when tracing is disabled or a provider from an earlier
    call is still active.
    """

    global _active_provider

    if not settings.otel_enabled or _active_provider is not None:
        return None

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "deployment.environment": settings.environment,
        }
    )
    exporter = OTLPSpanExporter(
        endpoint=settings.otel_exporter_otlp_endpoint,
        headers=_parse_headers(settings.otel_exporter_otlp_headers) or None,
    )
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)
    _active_provider = provider
    logging.getLogger(APP_LOGGER).info(
        "Tracing enabled for %s (exporter endpoint: %s)",
        settings.otel_service_name,
        settings.otel_exporter_otlp_endpoint or "default",
    )
    return provider


def shutdown_tracer(provider: TracerProvider | None) -> None:
    """Flush and shut down ``provider``; a ``None`` provider is ignored."""

    global _active_provider

    if provider is None:
        return
    provider.shutdown()
    if provider is _active_provider:
        _active_provider = None
