"""
Example usage of RelevanceScorer and the fallback matcher

This script demonstrates:
1. Scoring regulations with an LLM (needs OPENAI_API_KEY)
2. What the offline fallback returns for the same queries
"""

from regulation_search.config import load_config
from regulation_search.llm import RelevanceScorer
from regulation_search.models import Regulation
from regulation_search.pipeline import format_results
from regulation_search.search import RegulationSearcher, fallback_search

REGULATIONS = [
    Regulation(id=1, prefecture="京都府", city="京都市", category="道路",
               title="京都市道路条例", content="市道の管理および道路占用の許可について定める。"),
    Regulation(id=2, prefecture="東京都", city="練馬区", category="道路",
               title="練馬区道路占用料等徴収条例", content="区道の占用料の額および徴収方法を定める。"),
    Regulation(id=3, prefecture="大阪府", city="大阪市", category="景観",
               title="大阪市景観条例", content="都市景観の形成に関する基本的事項を定める。"),
]

QUERIES = ["京都の道路条例", "練馬区の道路に関する条例を教えて", "景観"]


# Example 1: Offline fallback only (no API key needed)
def example_fallback():
    for query in QUERIES:
        print(f"--- {query}")
        print(format_results(fallback_search(query, REGULATIONS)))


# Example 2: LLM scoring with automatic fallback
def example_scoring():
    config = load_config()
    searcher = RegulationSearcher(scorer=RelevanceScorer(config=config), config=config)
    for query in QUERIES:
        print(f"--- {query}")
        print(format_results(searcher.search(query, REGULATIONS)))
        print(f"(fallback: {searcher.last_metrics.fallback_stage or 'none'})")


if __name__ == "__main__":
    example_fallback()
    example_scoring()
