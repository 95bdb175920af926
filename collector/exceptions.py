"""
Exceptions raised by the collector.
"""


class CollectorError(Exception):
    """Base exception for collector errors."""

    pass


class RenderError(CollectorError):
    """A page could not be loaded or rendered (network, navigation, browser crash)."""

    pass


class FetchExhaustedError(CollectorError):
    """Every render attempt for a URL failed."""

    def __init__(self, url: str, attempts: int):
        super().__init__(f"Rendering failed after {attempts} attempt(s): {url}")
        self.url = url
        self.attempts = attempts


class ParseError(CollectorError):
    """Rendered text could not be interpreted."""

    pass


class WindParseError(ParseError):
    """Wind descriptor is not '<direction> <word> <speed> ...'."""

    pass


class ReadingParseError(ParseError):
    """Particulate reading does not start with a number."""

    pass


class StorageError(CollectorError):
    """Writing a sample failed."""

    pass


class DatabaseNotReadyError(CollectorError):
    """Database did not answer within the readiness timeout."""

    pass


class CollectionAborted(CollectorError):
    """Too many consecutive time points exhausted their fetch retries."""

    pass
