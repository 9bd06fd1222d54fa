"""
Display-side session state for regulation search.

Holds what a search screen shows: the loaded records, the current result
list, the error message and the loading/searching flags.
"""

import logging
import threading
from typing import List, Optional, Tuple

from regulation_search.config import Config
from regulation_search.errors import SearchInProgressError, StoreReadError
from regulation_search.llm import RelevanceScorer
from regulation_search.metrics import SearchMetrics
from regulation_search.models import Regulation
from regulation_search.search import RegulationSearcher
from regulation_search.store import RegulationStore

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "データの取得に失敗しました。"
NO_RESULTS_MESSAGE = "検索結果が見つかりませんでした。別の言葉で試してみてください。"
UNTITLED = "タイトルなし"
NO_CONTENT = "内容なし"


class RegulationSession:
    """Loaded records plus the state of the latest search."""

    def __init__(self, store: RegulationStore, searcher: RegulationSearcher):
        self.store = store
        self.searcher = searcher
        self.records: List[Regulation] = []
        self.results: List[Regulation] = []
        self.error: Optional[str] = None
        self.loading = False
        self.search_lock = threading.Lock()
        self.loaded = False

    def load(self) -> List[Regulation]:
        """
        Fetch records from the store. Calling it again is the retry action.

        Returns:
            The loaded records

        Raises:
            StoreReadError: If the fetch fails; `error` is set for display
        """
        self.loading = True
        self.error = None
        try:
            records = self.store.fetch_regulations()
        except StoreReadError:
            self.error = LOAD_ERROR_MESSAGE
            raise
        finally:
            self.loading = False

        self.records = records
        self.results = list(records)
        self.loaded = True
        logger.info(f"Loaded {len(records)} regulations")
        return records

    @property
    def searching(self) -> bool:
        return self.search_lock.locked()

    def run_search(self, query: str) -> Tuple[List[Regulation], SearchMetrics]:
        """
        Search the loaded records and update `results`.

        Returns:
            Tuple of (results, metrics for this search)

        Raises:
            SearchInProgressError: If another search on this session is running
        """
        if not self.search_lock.acquire(blocking=False):
            raise SearchInProgressError("A search is already in progress")

        try:
            self.error = None
            results, metrics = self.searcher.run(query, self.records)
            self.results = results
        finally:
            self.search_lock.release()
        return results, metrics

    def search(self, query: str) -> List[Regulation]:
        """
        Search the loaded records and update `results`.

        Raises:
            SearchInProgressError: If another search on this session is running
        """
        results, _ = self.run_search(query)
        return results


def format_relevance(relevance: float) -> str:
    """Format a relevance score as a rounded percentage."""
    return f"関連度: {int(relevance * 100 + 0.5)}%"


def format_results(results: List[Regulation]) -> str:
    """
    Render results as text cards for terminal display.

    Args:
        results: Regulations to render, in display order

    Returns:
        Multi-line string
    """
    if not results:
        return NO_RESULTS_MESSAGE

    cards = []
    for i, reg in enumerate(results, 1):
        lines = [f"[{i}] {reg.title or UNTITLED}"]
        region = " ".join(part for part in (reg.prefecture, reg.city) if part)
        if region or reg.category:
            lines.append(f"    {region}{' / ' if region and reg.category else ''}{reg.category}")
        lines.append(f"    {reg.content or NO_CONTENT}")
        if reg.relevance:
            lines.append(f"    {format_relevance(reg.relevance)}")
        cards.append("\n".join(lines))
    return "\n\n".join(cards)


def create_session(
    config: Optional[Config] = None,
    provider: Optional[str] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    min_relevance: Optional[float] = None,
    limit: Optional[int] = None
) -> RegulationSession:
    """
    Wire store, scorer and searcher into a session.

    Keyword arguments override config values.

    Raises:
        ValueError: If a credential is missing or a setting is out of range
    """
    scorer = RelevanceScorer(
        provider=provider,
        model=model,
        temperature=temperature,
        min_relevance=min_relevance,
        config=config
    )
    store = RegulationStore(limit=limit, config=config)
    searcher = RegulationSearcher(scorer=scorer, config=config)
    return RegulationSession(store=store, searcher=searcher)
