"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """Inspect a raw configuration dictionary for risky but valid settings.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    messages: List[str] = []

    matching = _section(config_dict, "matching")
    cache_ttl = matching.get("cache_ttl")
    if isinstance(cache_ttl, str):
        try:
            if parse_duration(cache_ttl) < 300:
                messages.append(
                    f"Short matching.cache_ttl ({cache_ttl}) will recompute most matches "
                    "and increase analyzer calls"
                )
        except DurationParseError:
            pass  # reported by model validation

    scorers = matching.get("scorers")
    if isinstance(scorers, list) and "keyword_overlap" in scorers:
        messages.append(
            "keyword_overlap scorer is enabled; its scores can exceed the signal scorer "
            "and trigger more alerts"
        )

    analysis = _section(config_dict, "analysis")
    if analysis.get("enabled") is False:
        messages.append("Analyzer disabled; all signals will come from the keyword heuristic")

    notifications = _section(config_dict, "notifications")
    rate = notifications.get("sends_per_second")
    if isinstance(rate, (int, float)) and rate > 50:
        messages.append(
            f"High notifications.sends_per_second ({rate}) may exceed the message provider's limit"
        )
    if notifications.get("channel") == "mock":
        messages.append("Mock channel selected; alerts will not leave the process")

    sweep = _section(config_dict, "sweep")
    concurrency = sweep.get("max_concurrent_sweeps")
    if isinstance(concurrency, int) and concurrency > 4:
        messages.append(
            f"max_concurrent_sweeps={concurrency}; concurrent sweeps share one send rate limit"
        )

    return messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages through the warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)


def _section(config_dict: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = config_dict.get(name)
    return value if isinstance(value, dict) else {}
