"""
FastAPI serving layer for regulation search.

Provides REST API endpoints for listing and searching regulations.
"""

from .main import app

__all__ = ['app']
