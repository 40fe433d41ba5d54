"""Prometheus metrics for Code Royale.

Tracks connection churn, protocol traffic, game lifecycle and sandbox
behaviour so a running server can be monitored and alerted on.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)

# Application info
APP_INFO = Info("code_royale", "Code Royale application information")
APP_INFO.info({"version": "0.1.0"})


# WebSocket Metrics
WEBSOCKET_CONNECTIONS = Gauge(
    "websocket_connections_active",
    "Active WebSocket connections",
)

WEBSOCKET_MESSAGES_TOTAL = Counter(
    "websocket_messages_total",
    "Total WebSocket messages",
    ["direction", "message_type"],  # direction: "in", "out"
)

PROTOCOL_ERRORS_TOTAL = Counter(
    "protocol_errors_total",
    "Inbound messages dropped as malformed",
)


# Game Metrics
GAMES_STARTED_TOTAL = Counter(
    "games_started_total",
    "Games that left the lobby",
)

GAMES_FINISHED_TOTAL = Counter(
    "games_finished_total",
    "Games that reached GameOver",
)

SESSION_RESETS_TOTAL = Counter(
    "session_resets_total",
    "Session resets",
    ["reason"],  # "finished", "abandoned"
)

ELIMINATIONS_TOTAL = Counter(
    "eliminations_total",
    "Participants eliminated",
    ["cause"],  # "failed", "timeout"
)


# Sandbox Metrics
SUBMISSIONS_TOTAL = Counter(
    "submissions_total",
    "Judged submissions",
    ["result"],  # "passed", "failed", "error", "timeout"
)

SANDBOX_EXECUTION_DURATION = Histogram(
    "sandbox_execution_duration_seconds",
    "Wall-clock time of a single sandbox evaluation",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)


def record_message(direction: str, message_type: str) -> None:
    """Record an inbound or outbound protocol message."""
    WEBSOCKET_MESSAGES_TOTAL.labels(direction=direction, message_type=message_type).inc()


def record_submission(result: str) -> None:
    """Record the outcome of judging a submission."""
    SUBMISSIONS_TOTAL.labels(result=result).inc()


def record_sandbox_run(duration: float) -> None:
    SANDBOX_EXECUTION_DURATION.observe(duration)


def record_elimination(cause: str, count: int = 1) -> None:
    if count:
        ELIMINATIONS_TOTAL.labels(cause=cause).inc(count)


def record_reset(reason: str) -> None:
    SESSION_RESETS_TOTAL.labels(reason=reason).inc()


async def get_metrics() -> tuple[bytes, str]:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST
