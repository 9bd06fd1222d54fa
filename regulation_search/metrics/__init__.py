"""
Metrics and observability module.

Provides per-request search metrics and a JSONL metrics logger.
"""

from .models import SearchMetrics
from .logger import MetricsLogger

__all__ = [
    'SearchMetrics',
    'MetricsLogger'
]
