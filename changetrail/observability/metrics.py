"""Prometheus metrics for the audit engine."""

from prometheus_client import Counter, Histogram

AUDIT_RECORDS = Counter(
    "changetrail_audit_records_total",
    "Total number of audit records written",
    labelnames=["table_name", "action"],
)

AUDIT_WRITE_ERRORS = Counter(
    "changetrail_audit_write_errors_total",
    "Total number of failed audit batch writes",
    labelnames=["table_name"],
)

AUDIT_WRITE_LATENCY = Histogram(
    "changetrail_audit_write_latency_seconds",
    "Latency of one audit batch write in seconds",
    labelnames=["table_name"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

MUTATIONS_SKIPPED = Counter(
    "changetrail_mutations_skipped_total",
    "Mutations executed without producing audit records",
    labelnames=["table_name", "reason"],
)
