"""
Tests for fingerprinting and duplicate detection.
"""
import hashlib
from dataclasses import replace

import pytest

from scraping.dedupe import Deduplicator, fingerprint
from scraping.normalizer import normalize
from conftest import indeed_item


@pytest.fixture
def job():
    return normalize(indeed_item(), "indeed")


def test_fingerprint_is_sha256_of_canonical_fields(job):
    expected = hashlib.sha256(b"data engineer|acme|austin, tx|build pipelines").hexdigest()

    assert fingerprint(job) == expected
    assert Deduplicator.fingerprint(job) == expected


def test_fingerprint_ignores_case_and_surrounding_whitespace(job):
    shouty = replace(job, title="  DATA ENGINEER ", company="ACME", location="AUSTIN, TX ")

    assert fingerprint(shouty) == fingerprint(job)


def test_fingerprint_ignores_description_case_and_surrounding_whitespace(job):
    padded = replace(job, jd_clean="  Build PIPELINES \n")

    assert fingerprint(padded) == fingerprint(job)
    assert fingerprint(replace(job, jd_clean="build  pipelines")) != fingerprint(job)


def test_fingerprint_ignores_source_and_native_id(job):
    other = replace(job, source="linkedin", source_job_id="999", url="https://elsewhere")

    assert fingerprint(other) == fingerprint(job)


def test_fingerprint_uses_only_description_prefix(job):
    base = replace(job, jd_clean="x" * 500)

    assert fingerprint(replace(base, jd_clean="x" * 500 + "tail")) == fingerprint(base)
    assert fingerprint(replace(base, jd_clean="y" + "x" * 499)) != fingerprint(base)


def test_missing_location_hashes_as_empty(job):
    assert fingerprint(replace(job, location=None)) == fingerprint(replace(job, location=""))


@pytest.mark.asyncio
async def test_new_job_is_not_duplicate(store, job):
    assert await Deduplicator(store).is_duplicate(job) is False


@pytest.mark.asyncio
async def test_same_fingerprint_is_duplicate(store, job):
    await store.insert_job(dict(job.to_row(), dedupe_hash=fingerprint(job)))
    reposted = replace(job, source_job_id="different-id")

    assert await Deduplicator(store).is_duplicate(reposted) is True


@pytest.mark.asyncio
async def test_same_native_id_is_duplicate_even_if_content_changed(store, job):
    await store.insert_job(dict(job.to_row(), dedupe_hash=fingerprint(job)))
    edited = replace(job, title="Senior Data Engineer")

    assert await Deduplicator(store).is_duplicate(edited) is True


@pytest.mark.asyncio
async def test_empty_native_id_only_matches_by_fingerprint(store, job):
    stored = replace(job, source_job_id="")
    await store.insert_job(dict(stored.to_row(), dedupe_hash=fingerprint(stored)))
    other = replace(job, source_job_id="", title="Other role")

    assert await Deduplicator(store).is_duplicate(other) is False
