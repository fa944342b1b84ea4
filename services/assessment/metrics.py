"""
Prometheus metrics for the assessment service.
Exposed by the app under /metrics.
"""
from prometheus_client import Counter, Histogram

# Submissions accepted (draft persisted) or rejected before persistence
submissions_total = Counter(
    "assessment_submissions_total",
    "Total number of take-test submissions",
    ["outcome"],
)

# Completed gradings, by trigger (submit, regrade)
graded_total = Counter(
    "assessment_graded_total",
    "Total number of attempts graded",
    ["trigger"],
)

# Gradings that stopped before the score was stored
grading_failures_total = Counter(
    "assessment_grading_failures_total",
    "Total number of grading runs that failed",
    ["kind"],
)

# Totals above the test's advertised maximum (flagged, not capped)
over_ceiling_total = Counter(
    "assessment_over_ceiling_total",
    "Graded totals exceeding the test's declared max points",
)

# Wall time of resolve + score + persist
grading_latency_ms = Histogram(
    "assessment_grading_latency_ms",
    "Latency in ms of one grading run (resolve, score, persist)",
    buckets=(1, 2, 5, 10, 20, 50, 100, 250, 500, 1000, 2000, 5000)
)


def mark_submission(outcome: str) -> None:
    """Increment the submission counter for an outcome ("accepted", "rejected")."""
    submissions_total.labels(outcome=outcome).inc()


def mark_graded(trigger: str) -> None:
    graded_total.labels(trigger=trigger).inc()


def mark_failure(kind: str) -> None:
    grading_failures_total.labels(kind=kind).inc()


def mark_over_ceiling() -> None:
    over_ceiling_total.inc()


def observe_grading_latency_ms(value: float) -> None:
    """Record one grading latency observation in milliseconds."""
    grading_latency_ms.observe(value)
