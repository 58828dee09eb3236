"""Prometheus metrics for payment volume, unspent remainders, and store health"""

from prometheus_client import Counter, Histogram

# Payment metrics
payment_operation_counter = Counter(
    "crediario_payment_operations_total",
    "Payment operations handled",
    ["operation", "outcome"],  # installment | note | distribution | edit | delete ; ok | rejected | error
)

amount_applied_counter = Counter(
    "crediario_amount_applied_cents_total",
    "Cents applied to installments and notes",
    ["operation"],
)

remainder_counter = Counter(
    "crediario_remainder_cents_total",
    "Cents returned to the caller unspent",
    ["operation"],
)

# Store metrics
remote_store_failure_counter = Counter(
    "crediario_remote_store_failures_total",
    "Failed calls to the remote notes API",
    ["operation"],  # load | save
)

store_fallback_counter = Counter(
    "crediario_store_fallback_total",
    "Operations served by the local store because the remote one failed",
    ["operation"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_payment(operation: str, applied_cents: int, remainder_cents: int) -> None:
    """Record a successful payment operation and where its money went"""
    payment_operation_counter.labels(operation=operation, outcome="ok").inc()
    amount_applied_counter.labels(operation=operation).inc(applied_cents)
    if remainder_cents > 0:
        remainder_counter.labels(operation=operation).inc(remainder_cents)


def record_payment_outcome(operation: str, outcome: str) -> None:
    payment_operation_counter.labels(operation=operation, outcome=outcome).inc()
