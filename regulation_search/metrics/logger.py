"""
Structured metrics logger for search requests.

Logs metrics in JSONL format for easy analysis and aggregation.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from regulation_search import __version__
from .models import SearchMetrics

logger = logging.getLogger(__name__)


class MetricsLogger:
    """
    Structured logger for search metrics.

    Writes metrics to JSONL files with daily rotation.
    """

    def __init__(
        self,
        log_dir: Path = Path("data/metrics"),
        pipeline_version: str = __version__,
        enabled: bool = True
    ):
        """
        Initialize metrics logger.

        Args:
            log_dir: Directory for metric log files
            pipeline_version: Version string for pipeline
            enabled: Whether logging is enabled
        """
        self.log_dir = Path(log_dir)
        self.pipeline_version = pipeline_version
        self.enabled = enabled
        self._current_date: Optional[str] = None
        self._log_file: Optional[Path] = None

    def _get_log_file(self) -> Path:
        """Get log file path for current date."""
        today = datetime.now(timezone.utc).date().isoformat()
        if today != self._current_date:
            self._current_date = today
            self._log_file = self.log_dir / f"search_metrics_{today}.jsonl"
        return self._log_file

    def log(self, metrics: SearchMetrics) -> None:
        """
        Log search metrics. Failures are logged, never raised.

        Args:
            metrics: SearchMetrics instance to log
        """
        if not self.enabled:
            return

        if not metrics.pipeline_version:
            metrics.pipeline_version = self.pipeline_version

        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = self._get_log_file()
            with open(log_file, 'a', encoding='utf-8') as f:
                f.write(json.dumps(metrics.to_dict(), ensure_ascii=False) + '\n')
        except Exception as e:
            logger.error(f"Failed to log metrics: {e}", exc_info=True)
