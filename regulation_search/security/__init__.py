"""
Security module for Regulation Search.

Provides input sanitization and prompt injection guards.
"""

from .sanitizer import sanitize_query

__all__ = ['sanitize_query']
