"""
Exception hierarchy for the regulation search pipeline.
"""


class RegulationSearchError(Exception):
    """Base class for all regulation search errors."""


class OracleError(RegulationSearchError):
    """The scoring model answered, but the reply was empty or unusable."""


class TransportError(RegulationSearchError):
    """The scoring model could not be reached or the call failed."""


class StoreReadError(RegulationSearchError):
    """Fetching regulation records from the store failed."""


class SearchInProgressError(RegulationSearchError):
    """A search was submitted while another one is still running."""
