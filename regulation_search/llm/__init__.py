"""
LLM Module

Provides LLM-powered relevance scoring.
"""

from .scorer import RelevanceScorer

__all__ = [
    'RelevanceScorer'
]
