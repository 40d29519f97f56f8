"""Text analysis: turns resumes and job descriptions into Signals."""

from .analyzer import Analyzer, TextAnalyzer, parse_signals_response
from .client import AnalyzerClient
from .exceptions import (
    AnalysisConfigurationError,
    AnalysisError,
    AnalysisHTTPError,
    AnalysisResponseError,
    AnalysisTimeoutError,
)
from .fallback import heuristic_signals

__all__ = [
    "Analyzer",
    "TextAnalyzer",
    "AnalyzerClient",
    "parse_signals_response",
    "heuristic_signals",
    "AnalysisError",
    "AnalysisHTTPError",
    "AnalysisTimeoutError",
    "AnalysisResponseError",
    "AnalysisConfigurationError",
]
