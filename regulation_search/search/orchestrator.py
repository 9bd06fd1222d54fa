"""
Search orchestration: scorer first, deterministic fallback on any failure.

Usage:
    searcher = RegulationSearcher(scorer=RelevanceScorer(config=config))
    results = searcher.search("京都の道路条例", regulations)
"""

import logging
import time
import uuid
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from regulation_search.metrics import MetricsLogger, SearchMetrics
from regulation_search.models import Regulation
from .fallback import fallback_with_stage

if TYPE_CHECKING:
    from regulation_search.config import Config
    from regulation_search.llm import RelevanceScorer

logger = logging.getLogger(__name__)


def search(
    query: str,
    records: Sequence[Regulation],
    scorer: 'RelevanceScorer',
    metrics: Optional[SearchMetrics] = None
) -> Sequence[Regulation]:
    """
    Run one search over the loaded records.

    Args:
        query: User query; blank queries skip scoring entirely
        records: Loaded regulation records (not modified)
        scorer: Relevance scorer
        metrics: Optional per-request metrics to fill in

    Returns:
        `records` itself for a blank query, otherwise scored copies ordered by relevance
    """
    if not query or not query.strip():
        return records

    try:
        return scorer.score(query, records, metrics=metrics)
    except Exception as e:
        logger.warning(f"Scoring failed, using fallback search: {e}", exc_info=True)
        stage, results = fallback_with_stage(query, records)
        if metrics is not None:
            metrics.fallback_reason = 'error'
            metrics.success = False
            metrics.fallback_stage = stage
            metrics.error = f"{type(e).__name__}: {e}"
        return results


class RegulationSearcher:
    """
    Search entry point used by the CLI and the API.

    Wraps `search` with timing and JSONL metrics logging.
    """

    def __init__(
        self,
        scorer: 'RelevanceScorer',
        metrics_logger: Optional[MetricsLogger] = None,
        config: Optional['Config'] = None
    ):
        """
        Initialize the searcher.

        Args:
            scorer: Relevance scorer
            metrics_logger: Metrics logger (built from config if omitted)
            config: Optional Config instance
        """
        self.scorer = scorer

        if metrics_logger is None and config is not None:
            metrics_config = config.metrics
            metrics_logger = MetricsLogger(
                log_dir=metrics_config.get('log_dir', 'data/metrics'),
                enabled=metrics_config.get('enabled', True)
            )
        self.metrics_logger = metrics_logger
        self.last_metrics: Optional[SearchMetrics] = None

    def run(self, query: str, records: Sequence[Regulation]) -> Tuple[List[Regulation], SearchMetrics]:
        """
        Search the records and log metrics for the request.

        Args:
            query: User query
            records: Loaded regulation records

        Returns:
            Tuple of (results, metrics for this request)
        """
        start = time.perf_counter()
        metrics = SearchMetrics(
            request_id=str(uuid.uuid4()),
            query=query or "",
            record_count=len(records)
        )

        results = list(search(query, records, self.scorer, metrics=metrics))

        metrics.result_count = len(results)
        metrics.total_time_ms = (time.perf_counter() - start) * 1000
        self.last_metrics = metrics

        if metrics.fallback_used:
            logger.info(
                f"Search finished via fallback ({metrics.fallback_reason}, stage={metrics.fallback_stage}): "
                f"{len(results)} results"
            )
        else:
            logger.info(f"Search finished: {len(results)} results in {metrics.total_time_ms:.0f} ms")

        if self.metrics_logger:
            self.metrics_logger.log(metrics)

        return results, metrics

    def search(self, query: str, records: Sequence[Regulation]) -> List[Regulation]:
        """Search the records; see `run` for the metrics of the call."""
        results, _ = self.run(query, records)
        return results
