"""Prometheus metrics for ledger activity, EMI creation, purchase advice and advisor health"""

from prometheus_client import Counter, Histogram

# Ledger metrics
ledger_write_counter = Counter(
    "budgetly_ledger_writes_total",
    "Ledger mutations committed",
    ["operation"],  # income_add | expense_update | emi_create | ...
)

emi_plan_counter = Counter(
    "budgetly_emi_plans_total",
    "EMI purchases expanded into installments",
)

emi_installments_histogram = Histogram(
    "budgetly_emi_installments",
    "Installments per EMI purchase",
    buckets=[1, 3, 6, 12, 24, 36, 60, 120],
)

# Advice metrics
suggestion_counter = Counter(
    "budgetly_suggestion_total",
    "Purchase suggestions made",
    ["classification"],  # good | moderate | risky
)

# Advisor API metrics
advisor_failures_counter = Counter(
    "advisor_failures_total",
    "Failed generative advisor calls",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_ledger_write(operation: str) -> None:
    ledger_write_counter.labels(operation=operation).inc()


def record_emi_plan(installments: int) -> None:
    """Record an EMI expansion and its size"""
    emi_plan_counter.inc()
    emi_installments_histogram.observe(installments)


def record_suggestion(classification: str) -> None:
    suggestion_counter.labels(classification=classification).inc()
