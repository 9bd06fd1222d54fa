"""
Dependency injection for FastAPI endpoints.
"""

import logging
from typing import Optional

from regulation_search.config import load_config
from regulation_search.errors import StoreReadError
from regulation_search.pipeline import RegulationSession, create_session

logger = logging.getLogger(__name__)

# Global session instance (created on startup)
_session: Optional[RegulationSession] = None


def get_session() -> RegulationSession:
    """
    Get or create the session instance (singleton).

    A failed initial load leaves the session in its error state;
    POST /reload retries.

    Returns:
        RegulationSession instance
    """
    global _session

    if _session is None:
        config = load_config()
        session = create_session(config=config)
        try:
            session.load()
        except StoreReadError as e:
            logger.error(f"Initial regulation load failed: {e}")
        _session = session

    return _session
