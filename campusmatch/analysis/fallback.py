"""Deterministic keyword heuristic used when the analyzer is unavailable."""

import re
from typing import List, Sequence

from campusmatch.domain.models import Category, Signals, WorkMode

SKILL_VOCABULARY = (
    "javascript", "python", "java", "react", "nodejs", "angular", "vue", "html",
    "css", "sql", "mongodb", "postgresql", "aws", "docker", "kubernetes", "git",
    "typescript", "express", "flask", "django", "spring", "laravel", "php",
    "ruby", "golang", "c++", "c#", "marketing", "sales", "accounting", "finance",
    "hr", "design", "photoshop", "illustrator", "figma", "sketch", "communication",
)

TOOL_VOCABULARY = (
    "jira", "slack", "trello", "github", "gitlab", "jenkins", "tableau", "powerbi",
    "excel", "word", "powerpoint", "salesforce", "hubspot", "google analytics",
    "adobe", "canva", "notion", "confluence",
)

MAX_SKILLS = 10
MAX_TOOLS = 5

_REMOTE_CUES = re.compile(r"remote|work from home|wfh")
_HYBRID_CUES = re.compile(r"hybrid|flexible")
_TECH_CUES = re.compile(r"software|developer|programmer|engineer|tech|coding|programming")


def _find_terms(text: str, vocabulary: Sequence[str], limit: int) -> List[str]:
    return [term for term in vocabulary if term in text][:limit]


def heuristic_signals(text: str, kind: str) -> Signals:
    """Extract signals by vocabulary substring search and regex cues.

    Args:
        text: Resume or job description text
        kind: "job" or "resume"; resumes without a work-mode cue get Any,
            jobs get Onsite

    Returns:
        Signals with source="fallback"
    """
    lowered = (text or "").lower()

    if _REMOTE_CUES.search(lowered):
        work_mode = WorkMode.REMOTE
    elif _HYBRID_CUES.search(lowered):
        work_mode = WorkMode.HYBRID
    elif kind == "resume":
        work_mode = WorkMode.ANY
    else:
        work_mode = WorkMode.ONSITE

    category = Category.TECH if _TECH_CUES.search(lowered) else Category.NON_TECH

    return Signals(
        skills=_find_terms(lowered, SKILL_VOCABULARY, MAX_SKILLS),
        tools=_find_terms(lowered, TOOL_VOCABULARY, MAX_TOOLS),
        category=category,
        work_mode=work_mode,
        source="fallback",
    )
