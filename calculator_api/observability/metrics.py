"""
Metrics Collection with Prometheus.

Exposes business and system metrics for monitoring.
"""

from enum import Enum

from prometheus_client import Counter, Gauge, Histogram, Info

from calculator_api.config import settings


class MetricLabels(str, Enum):
    """Standard metric label names."""

    ENDPOINT = "endpoint"
    METHOD = "method"
    STATUS_CODE = "status_code"
    OPERATION = "operation"
    TIER = "tier"
    ERROR_TYPE = "error_type"


class CalculatorMetrics:
    """
    Centralized metrics for the calculator API.

    Covers:
    - HTTP requests (rate, duration, errors)
    - Token balance reads, debits and daily refreshes
    - Purchases (rate by tier, tokens granted)
    - PayPal API calls (latency, failures)
    - Calculations by formula
    """

    def __init__(self) -> None:
        """Initialize all Prometheus metrics."""

        # ====================================================================
        # Service Info
        # ====================================================================
        self.service_info = Info(
            "calculator_service",
            "Service information",
        )
        self.service_info.info(
            {
                "version": settings.api_version,
                "service_name": settings.service_name,
            }
        )

        # ====================================================================
        # HTTP Metrics
        # ====================================================================
        self.http_requests_total = Counter(
            "calculator_http_requests_total",
            "Total HTTP requests",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD, MetricLabels.STATUS_CODE],
        )

        self.http_request_duration_seconds = Histogram(
            "calculator_http_request_duration_seconds",
            "HTTP request duration in seconds",
            [MetricLabels.ENDPOINT, MetricLabels.METHOD],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.http_requests_in_progress = Gauge(
            "calculator_http_requests_in_progress",
            "Number of HTTP requests currently being processed",
        )

        # ====================================================================
        # Token Metrics
        # ====================================================================
        self.balance_reads_total = Counter(
            "calculator_balance_reads_total",
            "Total token balance reads",
            ["is_admin"],
        )

        self.token_debits_total = Counter(
            "calculator_token_debits_total",
            "Total token debit attempts",
            ["success", "reason"],
        )

        self.daily_refreshes_total = Counter(
            "calculator_daily_refreshes_total",
            "Balances reset to the daily allowance",
        )

        self.balances_created_total = Counter(
            "calculator_balances_created_total",
            "Balance rows created for first-time users",
        )

        # ====================================================================
        # Purchase Metrics
        # ====================================================================
        self.purchases_total = Counter(
            "calculator_purchases_total",
            "Total purchase completions",
            [MetricLabels.TIER, "success"],
        )

        self.tokens_purchased = Histogram(
            "calculator_tokens_purchased",
            "Tokens granted per purchase",
            buckets=(75, 500, 2000, 5000),
        )

        self.paypal_request_duration_seconds = Histogram(
            "calculator_paypal_request_duration_seconds",
            "PayPal API call duration in seconds",
            [MetricLabels.OPERATION],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        # ====================================================================
        # Calculation Metrics
        # ====================================================================
        self.calculations_total = Counter(
            "calculator_calculations_total",
            "Total formula calculations",
            ["formula_id", "success"],
        )

        # ====================================================================
        # Error Metrics
        # ====================================================================
        self.errors_total = Counter(
            "calculator_errors_total",
            "Total errors by type",
            [MetricLabels.ERROR_TYPE, MetricLabels.OPERATION],
        )

    # ========================================================================
    # Helper Methods
    # ========================================================================

    def record_http_request(
        self, endpoint: str, method: str, status_code: int, duration: float
    ) -> None:
        """Record HTTP request metrics."""
        self.http_requests_total.labels(
            endpoint=endpoint, method=method, status_code=status_code
        ).inc()
        self.http_request_duration_seconds.labels(endpoint=endpoint, method=method).observe(
            duration
        )

    def record_balance_read(self, is_admin: bool) -> None:
        """Record a balance read."""
        self.balance_reads_total.labels(is_admin=str(is_admin)).inc()

    def record_debit(self, success: bool, reason: str | None = None) -> None:
        """Record a token debit attempt."""
        self.token_debits_total.labels(success=str(success), reason=reason or "none").inc()

    def record_purchase(self, tier: str, success: bool, tokens: int = 0) -> None:
        """Record a purchase completion."""
        self.purchases_total.labels(tier=tier, success=str(success)).inc()
        if success:
            self.tokens_purchased.observe(tokens)

    def record_paypal_call(self, operation: str, duration: float) -> None:
        """Record PayPal API latency."""
        self.paypal_request_duration_seconds.labels(operation=operation).observe(duration)

    def record_calculation(self, formula_id: str, success: bool) -> None:
        """Record a formula calculation."""
        self.calculations_total.labels(formula_id=formula_id, success=str(success)).inc()

    def record_error(self, error_type: str, operation: str) -> None:
        """Record error occurrence."""
        self.errors_total.labels(error_type=error_type, operation=operation).inc()


# Global metrics instance
metrics = CalculatorMetrics()
