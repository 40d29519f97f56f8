"""Alert payload construction.

The payload is the JSON body posted to the message webhook:
{jobTitle, company, location, salary, matchScore, personalizedMessage, jobLink}.
"""

from typing import Any, Dict, Optional

from campusmatch.domain.models import CandidateProfile, JobPosting, MatchRecord, WorkMode

from .templates import TemplateRenderer

TOP_SKILLS = 3
TOP_TOOLS = 2
DEFAULT_JOB_LINK_BASE = "https://campuspe.com/jobs"


def format_salary(job: JobPosting) -> str:
    """Salary range in lakhs per annum, e.g. '₹4-6 LPA'.

    INR is shown as '₹'; other currencies keep their code. A posting without
    both bounds is 'Competitive'.
    """
    if not job.salary_min or not job.salary_max:
        return "Competitive"
    currency = "₹" if job.salary_currency.upper() == "INR" else job.salary_currency
    return f"{currency}{round(job.salary_min / 100000)}-{round(job.salary_max / 100000)} LPA"


def format_location(job: JobPosting) -> str:
    """Posting location with the work mode folded in."""
    if job.work_mode == WorkMode.REMOTE.value:
        return "Remote"
    if not job.location:
        return job.work_mode or "Remote"
    if job.work_mode == WorkMode.HYBRID.value:
        return f"{job.location} (Hybrid)"
    return job.location


def build_message_context(
    candidate: CandidateProfile, job: JobPosting, record: MatchRecord
) -> Dict[str, Any]:
    """Template variables for the personalized message."""
    return {
        "candidate_name": candidate.name,
        "job_title": job.title,
        "company": job.company,
        "match_score": record.score_percent,
        "top_skills": list(record.matched_skills[:TOP_SKILLS]),
        "top_tools": list(record.matched_tools[:TOP_TOOLS]),
    }


def build_alert_payload(
    candidate: CandidateProfile,
    job: JobPosting,
    record: MatchRecord,
    renderer: Optional[TemplateRenderer] = None,
    job_link_base_url: str = DEFAULT_JOB_LINK_BASE,
) -> Dict[str, str]:
    """Build the webhook payload for one alert.

    Raises:
        NotificationTemplateError: If the personalized message fails to render
    """
    renderer = renderer or TemplateRenderer()
    return {
        "jobTitle": job.title,
        "company": job.company,
        "location": format_location(job),
        "salary": format_salary(job),
        "matchScore": str(record.score_percent),
        "personalizedMessage": renderer.render_message(
            build_message_context(candidate, job, record)
        ),
        "jobLink": f"{job_link_base_url.rstrip('/')}/{job.job_id}",
    }
