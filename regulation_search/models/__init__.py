"""
Regulation Models

Core data structures for regulation records.
"""

from .regulation import Regulation, regulations_from_rows

__all__ = [
    'Regulation',
    'regulations_from_rows'
]
