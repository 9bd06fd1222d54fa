"""
Metric data models for observability.

Defines the dataclass tracking a single search request.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass
class SearchMetrics:
    """Metrics for a single search request."""
    request_id: str = ""
    timestamp: str = ""
    pipeline_version: str = ""
    query: str = ""
    record_count: int = 0
    result_count: int = 0
    fallback_stage: Optional[str] = None  # 'region', 'keyword' or None
    fallback_reason: Optional[str] = None  # 'empty', 'sanitized' or 'error'
    oracle_time_ms: float = 0.0
    total_time_ms: float = 0.0
    success: bool = True  # False when scoring raised and the fallback answered
    error: Optional[str] = None

    def __post_init__(self):
        """Set default timestamp if not provided."""
        if not self.timestamp:
            self.timestamp = datetime.now(timezone.utc).isoformat()

    @property
    def fallback_used(self) -> bool:
        return self.fallback_reason is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        result = asdict(self)
        result['fallback_used'] = self.fallback_used
        return result
