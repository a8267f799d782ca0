"""Application wide metrics utilities."""
from __future__ import annotations

from dataclasses import dataclass

from .registry import Counter, Distribution, MetricsRegistry


@dataclass(frozen=True)
class MetricDefinition:
    """Describe a metric that should exist in the registry."""

    name: str
    metric_type: str
    description: str
    label_names: tuple[str, ...] = ()


DEFAULT_METRIC_DEFINITIONS: tuple[MetricDefinition, ...] = (
    MetricDefinition(
        name="helpdesk_tickets_created_total",
        metric_type="counter",
        description="Number of tickets opened.",
        label_names=("priority",),
    ),
    MetricDefinition(
        name="helpdesk_ticket_status_changes_total",
        metric_type="counter",
        description="Number of ticket status updates, by target status.",
        label_names=("status",),
    ),
    MetricDefinition(
        name="helpdesk_history_entries_total",
        metric_type="counter",
        description="Number of entries appended to the ticket history.",
    ),
    MetricDefinition(
        name="helpdesk_notifications_total",
        metric_type="counter",
        description="Outbound ticket notifications, by outcome.",
        label_names=("outcome",),
    ),
    MetricDefinition(
        name="helpdesk_notification_duration_seconds",
        metric_type="distribution",
        description="Time spent delivering a ticket notification.",
    ),
)

metrics_registry = MetricsRegistry()


def register_default_metrics(registry: MetricsRegistry | None = None) -> MetricsRegistry:
    """Ensure all default metric definitions exist in the registry."""

    target = registry or metrics_registry
    for definition in DEFAULT_METRIC_DEFINITIONS:
        if definition.metric_type == "counter":
            target.counter(definition.name, description=definition.description, label_names=definition.label_names)
        elif definition.metric_type == "distribution":
            target.distribution(
                definition.name, description=definition.description, label_names=definition.label_names
            )
        else:  # pragma: no cover - definitions are static
            raise ValueError(f"Unsupported metric type: {definition.metric_type}")
    return target


register_default_metrics()

__all__ = [
    "Counter",
    "DEFAULT_METRIC_DEFINITIONS",
    "Distribution",
    "MetricDefinition",
    "MetricsRegistry",
    "metrics_registry",
    "register_default_metrics",
]
