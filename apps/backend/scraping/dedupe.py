"""
Content fingerprinting and duplicate detection.
"""
import hashlib
import logging
from typing import Optional

from .normalizer import NormalizedJob
from .store import JobStore

logger = logging.getLogger(__name__)

FINGERPRINT_SEPARATOR = "|"
DESCRIPTION_PREFIX_CHARS = 500


def fingerprint(job: NormalizedJob) -> str:
    """
    SHA-256 over (title, company, location, first 500 chars of the clean
    description), each lower-cased and trimmed, joined with '|'.

    Field order is fixed; the value is stable across runs.
    """
    parts = (
        job.title,
        job.company,
        job.location,
        (job.jd_clean or "")[:DESCRIPTION_PREFIX_CHARS],
    )
    canonical = FINGERPRINT_SEPARATOR.join((p or "").lower().strip() for p in parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class Deduplicator:
    """Checks normalized jobs against the jobs already in storage"""

    def __init__(self, store: JobStore):
        self.store = store

    @staticmethod
    def fingerprint(job: NormalizedJob) -> str:
        return fingerprint(job)

    async def is_duplicate(self, job: NormalizedJob, dedupe_hash: Optional[str] = None) -> bool:
        """
        True when a stored job shares the fingerprint, or shares
        (source, source_job_id) and the native id is non-empty.
        """
        dedupe_hash = dedupe_hash or fingerprint(job)
        existing = await self.store.find_existing_job(
            dedupe_hash,
            job.source,
            job.source_job_id or None,
        )
        if existing:
            logger.debug(f"[dedupe] {job.source}:{job.source_job_id or '-'} matches stored job {existing.get('id')}")
        return bool(existing)
