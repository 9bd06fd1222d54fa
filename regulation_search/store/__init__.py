"""
Record Store Module

Read access to the hosted regulations table.
"""

from .client import RegulationStore

__all__ = ['RegulationStore']
