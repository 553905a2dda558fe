"""
Errors raised while fetching external data for a CV.
"""
from typing import Optional


class ExternalDataError(Exception):
    """Base error for the external data pipeline."""


class SourceFetchError(ExternalDataError):
    """A source adapter failed at the network or API level."""

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class SourceNotFoundError(SourceFetchError):
    """The upstream resource does not exist (HTTP 404)."""


class MissingIdentifierError(SourceFetchError):
    """No username, URL or name is available for a requested source."""
