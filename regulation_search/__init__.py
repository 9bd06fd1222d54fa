"""
Regulation Search

Natural-language search over municipal regulation records, scored by an LLM
with a deterministic offline fallback.
"""

__version__ = "0.1.0"
