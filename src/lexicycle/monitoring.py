"""Monitoring configuration for the learning engine."""
from prometheus_client import Counter, Histogram, start_http_server

# Cycle metrics
cycles_created = Counter(
    "lexicycle_cycles_created_total",
    "Total number of learning cycles created",
)

cycles_rotated = Counter(
    "lexicycle_cycles_rotated_total",
    "Total number of learning cycles deactivated by rotation",
    ["reason"],  # expired, forced
)

cycle_conflicts = Counter(
    "lexicycle_cycle_conflicts_total",
    "Concurrent cycle creations refused by the store",
)

# Session metrics
sessions_started = Counter(
    "lexicycle_sessions_started_total",
    "Total number of learning sessions started",
    ["kind"],  # review, practice
)

activities_generated = Counter(
    "lexicycle_activities_generated_total",
    "Total number of activities generated",
    ["mode"],
)

session_size = Histogram(
    "lexicycle_session_activities",
    "Number of activities per learning session",
    buckets=[2, 5, 10, 15, 20, 30],
)

# Progress metrics
sessions_committed = Counter(
    "lexicycle_sessions_committed_total",
    "Total number of committed learning sessions",
    ["status"],  # ok, partial, failed
)

progress_upserts = Counter(
    "lexicycle_progress_upserts_total",
    "Total number of progress records written",
)

progress_failures = Counter(
    "lexicycle_progress_failures_total",
    "Total number of progress records that failed to commit",
)

# Mood metrics
mood_scores = Histogram(
    "lexicycle_mood_score",
    "Distribution of computed happiness values",
    ["mode"],  # solo, paired
    buckets=[10, 25, 50, 75, 90, 100],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
