"""Text analyzer: LLM extraction with a deterministic keyword fallback.

analyze() never raises for analyzer-side problems. Whatever goes wrong on
the LLM path (no key, timeout, HTTP error, malformed JSON, schema mismatch)
the keyword heuristic answers instead, with the same Signals shape.
"""

import json
import re
from typing import Literal, Optional, Protocol

from pydantic import ValidationError

from campusmatch.domain.models import Signals, WorkMode
from campusmatch.logging import get_logger

from .client import AnalyzerClient
from .exceptions import AnalysisError, AnalysisResponseError
from .fallback import heuristic_signals

logger = get_logger(__name__, component="analysis")

Kind = Literal["job", "resume"]

# Long resumes are truncated before prompting; the head carries the skills.
MAX_PROMPT_CHARS = 12000

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

_RESPONSE_SHAPE = (
    '{"skills": ["python", "react"], "tools": ["jira", "github"], '
    '"category": "Tech|Non-Tech|Core", "work_mode": "%s"}'
)

_PROMPTS = {
    "job": (
        "Analyze this job description and extract the required skills, the tools or "
        "software used, the job category and the work mode. Use lowercase for skills "
        "and tools. Return ONLY a valid JSON object with exactly this structure:\n"
        + _RESPONSE_SHAPE % "Remote|Onsite|Hybrid"
        + "\n\nJob description:\n"
    ),
    "resume": (
        "Analyze this resume and extract the candidate's skills, the tools or software "
        "they have used, the job category they fit and their preferred work mode "
        "(Any if not stated). Use lowercase for skills and tools. Return ONLY a valid "
        "JSON object with exactly this structure:\n"
        + _RESPONSE_SHAPE % "Remote|Onsite|Hybrid|Any"
        + "\n\nResume:\n"
    ),
}


class Analyzer(Protocol):
    """Anything that turns free text into Signals."""

    def analyze(self, text: str, kind: Kind) -> Signals:
        ...


def parse_signals_response(raw_text: str, kind: Kind) -> Signals:
    """Parse an LLM response body into Signals.

    Markdown code fences are stripped, and any prose around the outermost
    JSON object is ignored.

    Raises:
        AnalysisResponseError: If no valid Signals object can be read
    """
    cleaned = _FENCE.sub("", raw_text.strip()).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise AnalysisResponseError("No JSON object in analyzer response")

    try:
        data = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        raise AnalysisResponseError(f"Malformed JSON in analyzer response: {e}") from e

    if not isinstance(data, dict):
        raise AnalysisResponseError("Analyzer response JSON is not an object")

    # Accept camelCase from models that ignore the requested key names.
    if "work_mode" not in data and "workMode" in data:
        data["work_mode"] = data.pop("workMode")

    try:
        signals = Signals.model_validate(
            {
                "skills": data.get("skills", []),
                "tools": data.get("tools", []),
                "category": data.get("category"),
                "work_mode": data.get("work_mode"),
                "source": "ai",
            }
        )
    except ValidationError as e:
        raise AnalysisResponseError(f"Analyzer response violates the signals schema: {e}") from e

    if kind == "job" and signals.work_mode == WorkMode.ANY.value:
        raise AnalysisResponseError("Work mode 'Any' is not valid for a job")

    return signals


class TextAnalyzer:
    """Analyzer with an LLM primary path and a keyword fallback.

    Args:
        client: LLM client; None means every call uses the fallback
    """

    def __init__(self, client: Optional[AnalyzerClient] = None):
        self.client = client

    def analyze(self, text: str, kind: Kind) -> Signals:
        """Extract Signals from a resume or job description."""
        if kind not in _PROMPTS:
            raise ValueError(f"kind must be 'job' or 'resume', got: {kind!r}")

        if self.client is None:
            logger.debug(
                "Analyzer not configured, using keyword heuristic",
                extra={"event": "analysis.fallback", "kind": kind, "reason": "not_configured"},
            )
            return heuristic_signals(text, kind)

        try:
            raw = self.client.complete(_PROMPTS[kind] + (text or "")[:MAX_PROMPT_CHARS])
            signals = parse_signals_response(raw, kind)
        except AnalysisError as e:
            logger.warning(
                f"Analyzer failed, using keyword heuristic: {e}",
                extra={
                    "event": "analysis.fallback",
                    "kind": kind,
                    "reason": type(e).__name__,
                },
            )
            return heuristic_signals(text, kind)

        logger.debug(
            "Analyzer extracted signals",
            extra={
                "event": "analysis.succeeded",
                "kind": kind,
                "skills_count": len(signals.skills),
                "tools_count": len(signals.tools),
            },
        )
        return signals
