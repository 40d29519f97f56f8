"""Exceptions raised by the text analyzer client.

None of these escape TextAnalyzer.analyze(): every AnalysisError triggers
the keyword fallback. They exist so the client can be tested and logged
precisely.
"""


class AnalysisError(Exception):
    """Base exception for analyzer failures."""


class AnalysisHTTPError(AnalysisError):
    """The analyzer API answered with a 4xx/5xx status or the request failed."""

    def __init__(self, message: str, status_code: int, url: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.url = url


class AnalysisTimeoutError(AnalysisError):
    """The analyzer API did not answer within the configured timeout."""

    def __init__(self, message: str, url: str) -> None:
        super().__init__(message)
        self.url = url


class AnalysisResponseError(AnalysisError):
    """The response could not be parsed into the Signals contract."""


class AnalysisConfigurationError(AnalysisError):
    """The analyzer is disabled or missing credentials."""
