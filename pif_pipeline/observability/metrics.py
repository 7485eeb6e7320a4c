"""
Prometheus metrics for the PIF submission pipeline

Metrics live on a private registry so that embedding applications can expose
them (or not) without clashing with their own default registry.
"""
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()


# =======================
# VALIDATION METRICS
# =======================

rows_extracted_total = Counter(
    name="pif_rows_extracted_total",
    documentation="Rows read from the entry surface with a non-blank key column",
    labelnames=["site"],
    registry=REGISTRY,
)

validation_issues_total = Counter(
    name="pif_validation_issues_total",
    documentation="Validation issues reported, by error type",
    labelnames=["site", "error_type"],
    registry=REGISTRY,
)

coercion_fallbacks_total = Counter(
    name="pif_coercion_fallbacks_total",
    documentation="Cell values that could not be coerced to their declared kind",
    labelnames=["field_name", "kind"],
    registry=REGISTRY,
)

# =======================
# STORE METRICS
# =======================

records_staged_total = Counter(
    name="pif_records_staged_total",
    documentation="Records loaded into staging tables",
    labelnames=["site", "table"],  # table: project, cost
    registry=REGISTRY,
)

parameter_fallbacks_total = Counter(
    name="pif_parameter_fallbacks_total",
    documentation="Non-strict parameters bound as generic text after a type mismatch",
    labelnames=["procedure", "parameter"],
    registry=REGISTRY,
)

promotions_total = Counter(
    name="pif_promotions_total",
    documentation="Promotion attempts by transition and outcome",
    labelnames=["site", "transition", "status"],  # status: success, failure
    registry=REGISTRY,
)

reconciliation_rows_total = Counter(
    name="pif_reconciliation_rows_total",
    documentation="Entry-surface rows handled by archive reconciliation",
    labelnames=["site", "outcome"],  # outcome: deleted, failed
    registry=REGISTRY,
)

operation_duration_seconds = Histogram(
    name="pif_operation_duration_seconds",
    documentation="Wall-clock duration of user-initiated operations",
    labelnames=["operation", "status"],
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    """Content type for the Prometheus text exposition format."""
    return CONTENT_TYPE_LATEST


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    counter.labels(**labels).inc(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    """
    Observe a value in a histogram metric

    Args:
        histogram: Prometheus Histogram metric
        value: Value to observe
        **labels: Label values for the metric
    """
    histogram.labels(**labels).observe(value)


def record_validation_report(site: str, issue_counts: dict[str, int]) -> None:
    """
    Record the per-type issue counts of one validation run.

    Args:
        site: Active site code
        issue_counts: Mapping of error type to number of issues
    """
    for error_type, count in issue_counts.items():
        if count:
            increment_counter(validation_issues_total, count, site=site, error_type=error_type)


def record_operation(operation: str, duration_seconds: float, success: bool) -> None:
    """
    Record the duration and outcome of a user-initiated operation.

    Args:
        operation: Operation name (validate, submit, promote, archive, reconcile)
        duration_seconds: Elapsed wall-clock time
        success: Whether the operation succeeded
    """
    status = "success" if success else "failure"
    observe_histogram(operation_duration_seconds, duration_seconds, operation=operation, status=status)
