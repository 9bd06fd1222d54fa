"""
Search Module

Provides the fallback matcher and search orchestration.
"""

from .fallback import REGION_NAMES, fallback_search, fallback_with_stage
from .orchestrator import RegulationSearcher, search

__all__ = [
    'REGION_NAMES',
    'fallback_search',
    'fallback_with_stage',
    'RegulationSearcher',
    'search'
]
