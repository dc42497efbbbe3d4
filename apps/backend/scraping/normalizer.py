"""
Map raw actor items onto the canonical job record.

Each source has its own explicit mapping function. Normalization is total:
a malformed item yields None instead of raising, so one bad item never
aborts a batch.
"""

import re
import logging
from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Iterable, Optional

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")
_NUMBER = re.compile(r"\d[\d,]*(?:\.\d+)?")
_TRUTHY = {"true", "1", "yes", "y", "remote"}
# Upper bound of a PostgreSQL INTEGER column
MAX_SALARY = 2_147_483_647


@dataclass(frozen=True)
class NormalizedJob:
    """Canonical job record; transient between the actor output and the jobs table."""

    source: str
    source_job_id: str
    title: str
    company: str
    location: Optional[str]
    url: str
    jd_raw: str
    jd_clean: str
    salary_min: Optional[int] = None
    salary_max: Optional[int] = None
    job_type: Optional[str] = None
    remote_type: Optional[str] = None

    def to_row(self) -> Dict[str, Any]:
        """Column/value mapping for the jobs table."""
        return asdict(self)


def _text(value: Any) -> str:
    """Trimmed string for str/number values; '' for anything else."""
    if isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)):
        return str(value)
    return ""


def _first_text(item: Dict[str, Any], *keys: str) -> str:
    """First non-empty trimmed string among `keys`."""
    for key in keys:
        text = _text(item.get(key))
        if text:
            return text
    return ""


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, (list, tuple)):
        parts = [_text(v) for v in value]
        value = ", ".join(p for p in parts if p)
    text = _text(value)
    return text or None


def _salary(value: Any) -> Optional[int]:
    """
    Coerce a salary bound to an integer.

    Accepts numbers and numeric strings ("$120,000", "95000.50"); zero,
    negatives, values beyond the INTEGER column range, booleans and anything
    unparseable become None.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        amount = value
    elif isinstance(value, str):
        match = _NUMBER.search(value)
        if not match:
            return None
        try:
            amount = float(match.group(0).replace(",", ""))
        except ValueError:
            return None
    else:
        return None
    # NaN, non-positive, or too large for the INTEGER salary columns
    if amount != amount or amount <= 0 or amount > MAX_SALARY:
        return None
    return int(round(amount))


def _is_truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    return False


def strip_html(html: str) -> str:
    """Plain text from an HTML fragment with whitespace collapsed."""
    if not html:
        return ""
    if "<" in html or "&" in html:
        text = BeautifulSoup(html, "html.parser").get_text(" ")
    else:
        text = html
    return _WHITESPACE.sub(" ", text.replace("\xa0", " ")).strip()


def _normalize_indeed(item: Dict[str, Any]) -> NormalizedJob:
    description = _text(item.get("description"))
    return NormalizedJob(
        source="indeed",
        source_job_id=_first_text(item, "id", "positionId", "jobkey"),
        title=_first_text(item, "positionName", "title"),
        company=_first_text(item, "company", "companyName"),
        location=_optional_text(item.get("location")),
        url=_first_text(item, "url", "externalApplyLink"),
        jd_raw=description,
        jd_clean=strip_html(description),
        salary_min=_salary(item.get("salaryMin")),
        salary_max=_salary(item.get("salaryMax")),
        job_type=_optional_text(item.get("jobType")),
        remote_type="remote" if _is_truthy(item.get("remote")) else None,
    )


def _normalize_linkedin(item: Dict[str, Any]) -> NormalizedJob:
    description = _text(item.get("description"))
    return NormalizedJob(
        source="linkedin",
        source_job_id=_first_text(item, "jobId", "id"),
        title=_text(item.get("title")),
        company=_first_text(item, "company", "companyName"),
        location=_optional_text(item.get("location")),
        url=_first_text(item, "url", "linkedinUrl", "jobUrl"),
        jd_raw=description,
        jd_clean=strip_html(description),
        salary_min=_salary(item.get("salaryMin")),
        salary_max=_salary(item.get("salaryMax")),
        job_type=_optional_text(item.get("employmentType")),
        remote_type=_optional_text(item.get("workplaceType")),
    )


NORMALIZERS: Dict[str, Callable[[Dict[str, Any]], NormalizedJob]] = {
    "indeed": _normalize_indeed,
    "linkedin": _normalize_linkedin,
}


def normalize(raw_item: Any, source: str) -> Optional[NormalizedJob]:
    """
    Normalize one raw actor item.

    Returns None for non-dict items, unknown sources, records without a
    title or company, and items that fail to map for any other reason.
    """
    mapper = NORMALIZERS.get(source)
    if mapper is None or not isinstance(raw_item, dict):
        return None

    try:
        job = mapper(raw_item)
    except Exception as e:
        logger.warning(f"[normalizer] Dropping malformed {source} item: {e}")
        return None

    if not job.title or not job.company:
        return None
    return job


def normalize_all(raw_items: Iterable[Any], source: str) -> list:
    """Normalize a batch, dropping unusable items."""
    jobs = []
    for item in raw_items:
        job = normalize(item, source)
        if job is not None:
            jobs.append(job)
    return jobs
