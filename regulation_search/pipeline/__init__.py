"""
Pipeline Module

Session state and command line entry point.
"""

from .session import RegulationSession, create_session, format_results

__all__ = [
    'RegulationSession',
    'create_session',
    'format_results'
]
