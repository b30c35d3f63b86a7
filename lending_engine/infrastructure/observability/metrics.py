"""Prometheus metrics for recompute runs, risk distribution and calendar maintenance"""

from prometheus_client import Counter, Histogram

# Recompute metrics
recompute_contract_counter = Counter(
    "lending_recompute_contracts_total",
    "Contracts processed by the recompute job",
    ["outcome"],  # updated | unchanged | failed
)

recompute_duration_histogram = Histogram(
    "lending_recompute_duration_seconds",
    "Wall-clock duration of a full recompute run",
    buckets=[1.0, 5.0, 15.0, 30.0, 60.0, 120.0, 300.0, 600.0],
)

risk_color_counter = Counter(
    "lending_risk_color_total",
    "Pending statuses written by color",
    ["color"],  # green | yellow | red
)

finished_contract_counter = Counter(
    "lending_finished_contracts_total",
    "Contracts deactivated after being fully paid",
)

purged_contract_counter = Counter(
    "lending_purged_contracts_total",
    "Finished contracts deleted after the grace period",
)

# Calendar metrics
rest_days_created_counter = Counter(
    "lending_rest_days_created_total",
    "Rest-day holiday rows materialized",
)

# Audit trail
audit_failure_counter = Counter(
    "lending_audit_failures_total",
    "Audit events that could not be written",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_recompute_outcome(outcome: str, color: str | None = None) -> None:
    """Count one contract outcome; written statuses also feed the color distribution"""
    recompute_contract_counter.labels(outcome=outcome).inc()
    if outcome == "updated" and color:
        risk_color_counter.labels(color=color).inc()
