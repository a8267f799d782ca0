"""In-memory counters and distributions with Prometheus text rendering."""
from __future__ import annotations

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from time import perf_counter
from typing import Iterable, Iterator, Mapping, MutableMapping

LabelValues = tuple[str, ...]


class Metric:
    """Shared label handling for concrete metric types."""

    metric_type = "untyped"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] = ()) -> None:
        self.name = name
        self.description = description
        self.label_names: LabelValues = tuple(label_names)
        self._lock = Lock()

    def _key(self, labels: Mapping[str, str] | None) -> LabelValues:
        labels = labels or {}
        if set(labels) != set(self.label_names):
            raise ValueError(
                f"Metric '{self.name}' expects labels {self.label_names}, got {tuple(labels)}"
            )
        return tuple(str(labels[name]) for name in self.label_names)

    def samples(self) -> list[tuple[str, LabelValues, float]]:
        raise NotImplementedError


class Counter(Metric):
    metric_type = "counter"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] = ()) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._values: MutableMapping[LabelValues, float] = defaultdict(float)

    def inc(self, amount: float = 1.0, *, labels: Mapping[str, str] | None = None) -> None:
        if amount < 0:
            raise ValueError("Counters can only increase")
        key = self._key(labels)
        with self._lock:
            self._values[key] += amount

    def value(self, labels: Mapping[str, str] | None = None) -> float:
        key = self._key(labels)
        with self._lock:
            return self._values.get(key, 0.0)

    def samples(self) -> list[tuple[str, LabelValues, float]]:
        with self._lock:
            return [(self.name, key, value) for key, value in self._values.items()]


@dataclass
class _Summary:
    count: int = 0
    total: float = 0.0


class Distribution(Metric):
    """Summary style metric that tracks observation count and sum."""

    metric_type = "summary"

    def __init__(self, name: str, *, description: str = "", label_names: Iterable[str] = ()) -> None:
        super().__init__(name, description=description, label_names=label_names)
        self._values: MutableMapping[LabelValues, _Summary] = defaultdict(_Summary)

    def observe(self, value: float, *, labels: Mapping[str, str] | None = None) -> None:
        key = self._key(labels)
        with self._lock:
            summary = self._values[key]
            summary.count += 1
            summary.total += value

    def count(self, labels: Mapping[str, str] | None = None) -> int:
        key = self._key(labels)
        with self._lock:
            summary = self._values.get(key)
            return summary.count if summary else 0

    @contextmanager
    def time(self, *, labels: Mapping[str, str] | None = None) -> Iterator[None]:
        start = perf_counter()
        try:
            yield
        finally:
            self.observe(perf_counter() - start, labels=labels)

    def samples(self) -> list[tuple[str, LabelValues, float]]:
        with self._lock:
            rows: list[tuple[str, LabelValues, float]] = []
            for key, summary in self._values.items():
                rows.append((f"{self.name}_count", key, float(summary.count)))
                rows.append((f"{self.name}_sum", key, summary.total))
            return rows


class MetricsRegistry:
    """Registry that owns metric instances by name."""

    def __init__(self) -> None:
        self._metrics: dict[str, Metric] = {}
        self._lock = Lock()

    def _register(self, metric_cls: type[Metric], name: str, description: str, label_names: Iterable[str]):
        with self._lock:
            existing = self._metrics.get(name)
            if existing is None:
                existing = metric_cls(name, description=description, label_names=label_names)
                self._metrics[name] = existing
        if not isinstance(existing, metric_cls):
            raise TypeError(f"Metric '{name}' already exists with a different type")
        return existing

    def counter(self, name: str, *, description: str = "", label_names: Iterable[str] = ()) -> Counter:
        return self._register(Counter, name, description, label_names)

    def distribution(self, name: str, *, description: str = "", label_names: Iterable[str] = ()) -> Distribution:
        return self._register(Distribution, name, description, label_names)

    def render_prometheus(self) -> str:
        """Serialise all metrics in the Prometheus text exposition format."""

        with self._lock:
            metrics = list(self._metrics.values())

        lines: list[str] = []
        for metric in metrics:
            lines.append(f"# HELP {metric.name} {metric.description}")
            lines.append(f"# TYPE {metric.name} {metric.metric_type}")
            for sample_name, key, value in metric.samples():
                label_text = ""
                if key:
                    pairs = ",".join(f'{name}="{val}"' for name, val in zip(metric.label_names, key))
                    label_text = "{" + pairs + "}"
                lines.append(f"{sample_name}{label_text} {value}")
        return "\n".join(lines) + "\n"
