"""Configuration management for campusmatch."""

from .environment import EnvironmentConfig, load_environment_config
from .exceptions import ConfigurationError
from .loader import load_config, parse_app_config
from .models import (
    AnalysisConfig,
    AppConfig,
    ChannelType,
    LogFormat,
    LoggingConfig,
    LogLevel,
    MatchingConfig,
    NotificationsConfig,
    ScorerName,
    ScoringWeights,
    SweepConfig,
)

__all__ = [
    "load_config",
    "parse_app_config",
    "load_environment_config",
    "AppConfig",
    "MatchingConfig",
    "ScoringWeights",
    "AnalysisConfig",
    "NotificationsConfig",
    "SweepConfig",
    "LoggingConfig",
    "EnvironmentConfig",
    "ScorerName",
    "ChannelType",
    "LogLevel",
    "LogFormat",
    "ConfigurationError",
]
