"""
Observability module - Logging, Metrics, and Tracing.
"""

from calculator_api.observability.logging import get_logger, log_context, setup_logging
from calculator_api.observability.metrics import metrics
from calculator_api.observability.tracing import setup_tracing

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "metrics",
    "setup_tracing",
]
