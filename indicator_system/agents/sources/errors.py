"""Errors raised inside source agents.

They never leave a source: BaseIndicatorSource.extract() turns them into
ExtractionFailure.error. Both kinds are handled identically downstream.
"""


class SourceError(Exception):
    """Base class for source-side extraction errors."""


class SourceUnavailableError(SourceError):
    """Network, navigation or authentication failure talking to a source."""


class IncompleteExtractionError(SourceError):
    """The source answered but the indicators could not be parsed or look wrong."""
