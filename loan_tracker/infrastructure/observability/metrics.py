"""Prometheus metrics for monitoring the application pipeline, loan book and repayments"""

from decimal import Decimal

from prometheus_client import Counter, Histogram

# Application pipeline
applications_submitted_counter = Counter(
    "loan_applications_submitted_total",
    "Loan applications submitted by customers",
)

application_transition_counter = Counter(
    "loan_application_transitions_total",
    "Application status transitions",
    ["stage", "outcome"],  # verify|approve, VERIFIED|APPROVED|REJECTED
)

workflow_conflict_counter = Counter(
    "loan_workflow_conflicts_total",
    "Operations refused because of a uniqueness or concurrency conflict",
    ["operation"],
)

# Loan book
loans_created_counter = Counter(
    "loans_created_total",
    "Loans opened on application approval",
)

loan_principal_histogram = Histogram(
    "loan_principal_amount",
    "Principal disbursed per loan",
    buckets=[5_000, 25_000, 100_000, 500_000, 1_000_000, 5_000_000, 10_000_000],
)

# Repayments
payments_counter = Counter(
    "loan_payments_total",
    "Payments applied to loans",
)

payment_amount_counter = Counter(
    "loan_payment_amount_total",
    "Sum of payment amounts applied to loans",
)

loans_paid_off_counter = Counter(
    "loans_paid_off_total",
    "Loans whose principal reached zero",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(stage: str, outcome: str) -> None:
    application_transition_counter.labels(stage=stage, outcome=outcome).inc()


def record_loan_created(principal: Decimal) -> None:
    loans_created_counter.inc()
    loan_principal_histogram.observe(float(principal))


def record_payment(amount: Decimal, paid_off: bool) -> None:
    """Record repayment metrics for monitoring cash received and payoffs"""
    payments_counter.inc()
    payment_amount_counter.inc(float(amount))
    if paid_off:
        loans_paid_off_counter.inc()
