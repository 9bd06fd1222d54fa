"""
Deterministic fallback matcher.

Used whenever the scoring model fails or finds nothing. Matching runs in two
stages, first match wins:
1. Region stage: known prefecture/city names found in the query are matched
   against each record's prefecture and city (relevance 0.5)
2. Keyword stage: query tokens longer than one character are matched against
   title, content and category (relevance 0.3)

No network, no randomness: identical input always yields identical output.
"""

import logging
import re
from typing import List, Optional, Sequence, Tuple

from regulation_search.models import Regulation

logger = logging.getLogger(__name__)

REGION_RELEVANCE = 0.5
KEYWORD_RELEVANCE = 0.3

STAGE_REGION = "region"
STAGE_KEYWORD = "keyword"

# Prefecture stems (all 47), designated cities and Tokyo special wards.
# Single-character names (堺, 港, 北) are left out: they match far too much.
REGION_NAMES: Tuple[str, ...] = (
    # Prefectures
    "北海道", "青森", "岩手", "宮城", "秋田", "山形", "福島",
    "茨城", "栃木", "群馬", "埼玉", "千葉", "東京", "神奈川",
    "新潟", "富山", "石川", "福井", "山梨", "長野", "岐阜",
    "静岡", "愛知", "三重", "滋賀", "京都", "大阪", "兵庫",
    "奈良", "和歌山", "鳥取", "島根", "岡山", "広島", "山口",
    "徳島", "香川", "愛媛", "高知", "福岡", "佐賀", "長崎",
    "熊本", "大分", "宮崎", "鹿児島", "沖縄",
    # Designated cities
    "札幌", "仙台", "さいたま", "横浜", "川崎", "相模原", "名古屋",
    "浜松", "神戸", "北九州",
    # Tokyo special wards
    "千代田", "新宿", "文京", "台東", "墨田", "江東", "品川",
    "目黒", "大田", "世田谷", "渋谷", "中野", "杉並", "豊島",
    "荒川", "板橋", "練馬", "足立", "葛飾", "江戸川",
)

# Longest names first so that a longer name wins over a prefix at the same position
_REGION_PATTERN = re.compile(
    "|".join(re.escape(name) for name in sorted(set(REGION_NAMES), key=len, reverse=True))
)

KEYWORD_SEPARATORS = re.compile(r"[\s,、，。　]+")


def extract_region_names(query: str) -> List[str]:
    """
    Find known region names in the query.

    Args:
        query: User query

    Returns:
        Matched names in query order (non-overlapping, duplicates kept)
    """
    return _REGION_PATTERN.findall(query or "")


def extract_keywords(query: str) -> List[str]:
    """Split the query on whitespace/punctuation, dropping tokens of length <= 1."""
    return [token for token in KEYWORD_SEPARATORS.split(query or "") if len(token) > 1]


def _region_field_matches(names: Sequence[str], value: str) -> bool:
    # Compare against the names found in the field, so "京都" does not hit "東京都"
    found = extract_region_names(value)
    return any(name in found for name in names)


def match_by_region(names: Sequence[str], records: Sequence[Regulation]) -> List[Regulation]:
    """Keep records whose prefecture or city contains any of the names."""
    if not names:
        return []
    return [
        reg.with_relevance(REGION_RELEVANCE)
        for reg in records
        if _region_field_matches(names, reg.prefecture) or _region_field_matches(names, reg.city)
    ]


def match_by_keywords(keywords: Sequence[str], records: Sequence[Regulation]) -> List[Regulation]:
    """Keep records whose title, content or category contains any keyword."""
    if not keywords:
        return []
    return [
        reg.with_relevance(KEYWORD_RELEVANCE)
        for reg in records
        if any(kw in reg.title or kw in reg.content or kw in reg.category for kw in keywords)
    ]


def fallback_with_stage(
    query: str,
    records: Sequence[Regulation]
) -> Tuple[Optional[str], List[Regulation]]:
    """
    Run the fallback matcher and report which stage produced the result.

    Args:
        query: User query
        records: Records to match against (not modified)

    Returns:
        Tuple of (stage, results) where stage is 'region', 'keyword' or None
    """
    logger.info("Running fallback search")

    names = extract_region_names(query)
    if names:
        logger.info(f"Region names in query: {names}")
        results = match_by_region(names, records)
        if results:
            logger.info(f"Region stage matched {len(results)} regulations")
            return STAGE_REGION, results

    keywords = extract_keywords(query)
    if not keywords:
        return None, []

    logger.info(f"Keywords in query: {keywords}")
    results = match_by_keywords(keywords, records)
    logger.info(f"Keyword stage matched {len(results)} regulations")
    return (STAGE_KEYWORD if results else None), results


def fallback_search(query: str, records: Sequence[Regulation]) -> List[Regulation]:
    """
    Offline region/keyword search over the records.

    Args:
        query: User query
        records: Records to match against (not modified)

    Returns:
        Matching records with a fixed relevance, in original order; empty list if nothing matches
    """
    _, results = fallback_with_stage(query, records)
    return results
