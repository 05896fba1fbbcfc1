"""
Prometheus metrics for the relay.

Tracks session lifecycle, inbound messages and per-recipient delivery
outcomes. Use the MetricsCollector facade instead of touching the
metric objects directly:

    from ws_relay.utils.metrics import MetricsCollector
    MetricsCollector.record_session_opened()
"""

from typing import TypeVar

from prometheus_client import REGISTRY, Counter, Gauge, Histogram

MetricType = TypeVar("MetricType", Counter, Gauge, Histogram)


def _get_or_create(
    metric_cls: type[MetricType],
    name: str,
    doc: str,
    labels: list[str] | None = None,
    **kwargs,
) -> MetricType:
    """
    Get existing metric or create a new one.

    Prevents duplicate registration errors when the application factory is
    called more than once in the same process (tests, --reload).

    Args:
        metric_cls: Counter, Gauge or Histogram.
        name: Metric name.
        doc: Metric documentation.
        labels: Optional list of label names.
        **kwargs: Extra constructor arguments (e.g. histogram buckets).

    Returns:
        Metric instance.
    """
    try:
        return metric_cls(name, doc, labels or [], **kwargs)
    except ValueError:
        # Metric already exists, retrieve it from registry
        return REGISTRY._names_to_collectors[name]


relay_sessions_active = _get_or_create(
    Gauge, "relay_sessions_active", "Number of open relay sessions"
)

relay_sessions_total = _get_or_create(
    Counter,
    "relay_sessions_total",
    "Total relay sessions by how they ended",
    ["status"],  # opened, closed, dropped, malformed, idle
)

relay_messages_received_total = _get_or_create(
    Counter, "relay_messages_received_total", "Total inbound relay messages"
)

relay_deliveries_total = _get_or_create(
    Counter,
    "relay_deliveries_total",
    "Total per-recipient delivery attempts",
    ["result"],  # ok, failed
)

relay_fanout_size = _get_or_create(
    Histogram,
    "relay_fanout_size",
    "Number of recipients per broadcast",
    buckets=(0, 1, 2, 5, 10, 25, 50, 100, 250, 1000),
)

relay_broadcast_duration_seconds = _get_or_create(
    Histogram,
    "relay_broadcast_duration_seconds",
    "Time spent delivering one broadcast",
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)


class MetricsCollector:
    """
    Centralized facade for relay metrics.

    All methods are static for easy use without instantiation.
    """

    @staticmethod
    def record_session_opened() -> None:
        relay_sessions_total.labels(status="opened").inc()
        relay_sessions_active.inc()

    @staticmethod
    def record_session_closed(status: str = "closed") -> None:
        """
        Record a session leaving the registry.

        Args:
            status: One of 'closed', 'dropped', 'malformed', 'idle'
        """
        relay_sessions_total.labels(status=status).inc()
        relay_sessions_active.dec()

    @staticmethod
    def record_message_received() -> None:
        relay_messages_received_total.inc()

    @staticmethod
    def record_delivery(ok: bool) -> None:
        relay_deliveries_total.labels(result="ok" if ok else "failed").inc()

    @staticmethod
    def record_broadcast(recipients: int, duration: float) -> None:
        relay_fanout_size.observe(recipients)
        relay_broadcast_duration_seconds.observe(duration)
