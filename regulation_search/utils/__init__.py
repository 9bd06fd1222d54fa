"""
Utilities Module

Provides shared utilities.
"""

import logging

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def setup_logging(level=logging.INFO):
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # Keep HTTP client chatter out of the search logs
    logging.getLogger("httpx").setLevel(logging.WARNING)

__all__ = ['setup_logging']
