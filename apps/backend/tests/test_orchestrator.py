"""
End-to-end ingestion tests with an in-memory store and scripted actor runs.
"""
from unittest.mock import AsyncMock

import pytest

from scraping.dedupe import fingerprint
from scraping.errors import ActorRunFailedError, ActorTimeoutError
from scraping.normalizer import normalize
from scraping.orchestrator import IngestionOrchestrator, IngestionRequest, MATCHING_STARTED_MESSAGE
from conftest import FakeActorClient, drain_background, indeed_item, linkedin_card


def request(queries, sources, **kwargs):
    return IngestionRequest(search_queries=queries, sources=sources, **kwargs)


def seed(store, item, source):
    job = normalize(item, source)
    store.jobs.append(dict(job.to_row(), dedupe_hash=fingerprint(job), id="existing"))


@pytest.mark.asyncio
async def test_indeed_ingestion_with_duplicate_and_drop(store):
    seed(store, indeed_item(id="old-1"), "indeed")
    items = [
        indeed_item(id="new-1", positionName="Platform Engineer"),
        indeed_item(id="old-1"),
        indeed_item(id="bad-1", company=""),
    ]
    matcher = AsyncMock(return_value={"ok": True})
    orchestrator = IngestionOrchestrator(store, FakeActorClient([items]), matcher=matcher)

    result = await orchestrator.ingest(request(["data engineer"], ["indeed"]))
    await drain_background()

    pair = result.results[0]
    assert (pair.jobs_found, pair.jobs_new, pair.jobs_duplicate) == (3, 1, 1)
    assert result.total_new_jobs == 1
    assert result.matching == {"status": "started", "message": MATCHING_STARTED_MESSAGE}
    matcher.assert_awaited_once()

    run = store.runs[pair.run_id]
    assert run["status"] == "completed"
    assert run["actor_id"] == "misceres/indeed-scraper"
    assert (run["jobs_found"], run["jobs_new"], run["jobs_duplicate"]) == (3, 1, 1)

    stored = [j for j in store.jobs if j["source_job_id"] == "new-1"][0]
    assert stored["is_active"] is True
    assert stored["scraped_at"] is not None
    assert stored["dedupe_hash"] == fingerprint(normalize(items[0], "indeed"))


@pytest.mark.asyncio
async def test_linkedin_detail_failure_still_stores_jobs(store):
    client = FakeActorClient([
        [linkedin_card("1"), linkedin_card("2", title="Data Scientist")],
        ActorTimeoutError("run-2", 360),
    ])
    orchestrator = IngestionOrchestrator(store, client)

    result = await orchestrator.ingest(request(["engineer"], ["linkedin"], skip_matching=True))

    pair = result.results[0]
    assert pair.error is None
    assert pair.jobs_new == 2
    assert {j["url"] for j in store.jobs} == {
        "https://www.linkedin.com/jobs/view/1/",
        "https://www.linkedin.com/jobs/view/2/",
    }
    assert all(j["jd_clean"] == "" for j in store.jobs)
    assert result.matching == {"status": "skipped", "reason": "skip_matching=true"}


@pytest.mark.asyncio
async def test_failed_pair_does_not_stop_siblings(store):
    client = FakeActorClient([
        ActorRunFailedError("run-1", "FAILED"),
        [indeed_item()],
    ])
    orchestrator = IngestionOrchestrator(store, client, matcher=AsyncMock())

    result = await orchestrator.ingest(request(["q1", "q2"], ["indeed"]))
    await drain_background()

    failed, ok = result.results
    assert failed.query == "q1"
    assert failed.error == "Apify run ended with status: FAILED"
    assert store.runs[failed.run_id]["status"] == "failed"
    assert store.runs[failed.run_id]["error_message"] == "Apify run ended with status: FAILED"
    assert ok.query == "q2"
    assert ok.jobs_new == 1
    assert result.total_new_jobs == 1

    payload = result.to_dict()
    assert payload["results"][0] == {
        "query": "q1",
        "source": "indeed",
        "run_id": failed.run_id,
        "error": "Apify run ended with status: FAILED",
    }
    assert "error" not in payload["results"][1]


@pytest.mark.asyncio
async def test_all_pairs_failing_skips_matching(store):
    client = FakeActorClient([ActorRunFailedError("run-1", "FAILED")])
    matcher = AsyncMock()
    orchestrator = IngestionOrchestrator(store, client, matcher=matcher)

    result = await orchestrator.ingest(request(["q1"], ["indeed"]))

    assert result.total_new_jobs == 0
    assert result.matching == {"status": "skipped", "reason": "no new jobs"}
    matcher.assert_not_called()


@pytest.mark.asyncio
async def test_pairs_run_query_major(store):
    client = FakeActorClient([[], [[]], [], [[]]])
    orchestrator = IngestionOrchestrator(store, client)

    result = await orchestrator.ingest(request(["q1", "q2"], ["indeed", "linkedin"]))

    assert [(p.query, p.source) for p in result.results] == [
        ("q1", "indeed"), ("q1", "linkedin"), ("q2", "indeed"), ("q2", "linkedin"),
    ]
    assert [c["actor_id"] for c in client.calls] == [
        "misceres/indeed-scraper", "apify/cheerio-scraper",
        "misceres/indeed-scraper", "apify/cheerio-scraper",
    ]


@pytest.mark.asyncio
async def test_same_job_in_one_batch_is_stored_once(store):
    client = FakeActorClient([[indeed_item(), indeed_item()]])
    orchestrator = IngestionOrchestrator(store, client)

    result = await orchestrator.ingest(request(["q"], ["indeed"]))

    assert (result.results[0].jobs_new, result.results[0].jobs_duplicate) == (1, 1)
    assert len(store.jobs) == 1


@pytest.mark.asyncio
async def test_rerun_reports_everything_as_duplicate(store):
    items = [indeed_item(id="a", positionName="A"), indeed_item(id="b", positionName="B")]
    orchestrator = IngestionOrchestrator(store, FakeActorClient([items, items]))

    first = await orchestrator.ingest(request(["q"], ["indeed"]))
    second = await orchestrator.ingest(request(["q"], ["indeed"]))

    assert first.total_new_jobs == 2
    assert second.total_new_jobs == 0
    assert second.results[0].jobs_duplicate == 2
    assert len(store.jobs) == 2


@pytest.mark.asyncio
async def test_insert_conflict_counts_as_duplicate(store):
    orchestrator = IngestionOrchestrator(store, FakeActorClient([[indeed_item()]]))
    # Simulate another writer winning the race after the duplicate check
    store.find_existing_job = AsyncMock(return_value=None)
    store.insert_job = AsyncMock(return_value=False)

    result = await orchestrator.ingest(request(["q"], ["indeed"]))

    assert (result.results[0].jobs_new, result.results[0].jobs_duplicate) == (0, 1)


@pytest.mark.asyncio
async def test_item_insert_error_skips_only_that_item(store):
    store.fail_insert_titles = {"Broken"}
    items = [indeed_item(id="1", positionName="Broken"), indeed_item(id="2", positionName="Fine")]
    orchestrator = IngestionOrchestrator(store, FakeActorClient([items]))

    result = await orchestrator.ingest(request(["q"], ["indeed"]))

    pair = result.results[0]
    assert pair.error is None
    assert (pair.jobs_found, pair.jobs_new, pair.jobs_duplicate) == (2, 1, 0)
    assert [j["title"] for j in store.jobs] == ["Fine"]


@pytest.mark.asyncio
async def test_run_open_failure_is_reported_per_pair(store):
    store.fail_create_run = True
    client = FakeActorClient([[indeed_item()]])
    orchestrator = IngestionOrchestrator(store, client)

    result = await orchestrator.ingest(request(["q"], ["indeed"]))

    pair = result.results[0]
    assert pair.error == "DB insert failed: connection refused"
    assert pair.run_id is None
    assert client.calls == []
    assert store.runs == {}


@pytest.mark.asyncio
async def test_unknown_source_fails_its_run(store):
    orchestrator = IngestionOrchestrator(store, FakeActorClient())

    result = await orchestrator.ingest(request(["q"], ["monster"]))

    pair = result.results[0]
    assert "not supported" in pair.error
    assert store.runs[pair.run_id]["status"] == "failed"
    assert store.runs[pair.run_id]["actor_id"] == "monster"


@pytest.mark.asyncio
async def test_no_matcher_configured(store):
    orchestrator = IngestionOrchestrator(store, FakeActorClient([[indeed_item()]]))

    result = await orchestrator.ingest(request(["q"], ["indeed"]))

    assert result.matching == {"status": "skipped", "reason": "matching not configured"}


@pytest.mark.asyncio
async def test_matcher_failure_does_not_affect_result(store):
    matcher = AsyncMock(side_effect=RuntimeError("matching down"))
    orchestrator = IngestionOrchestrator(store, FakeActorClient([[indeed_item()]]), matcher=matcher)

    result = await orchestrator.ingest(request(["q"], ["indeed"]))
    await drain_background()

    assert result.matching["status"] == "started"
    assert result.total_new_jobs == 1


@pytest.mark.asyncio
async def test_empty_request_is_rejected(store):
    orchestrator = IngestionOrchestrator(store, FakeActorClient())

    with pytest.raises(ValueError):
        await orchestrator.ingest(request([], ["indeed"]))
    with pytest.raises(ValueError):
        await orchestrator.ingest(request(["q"], []))


@pytest.mark.asyncio
async def test_scenario_two_new_one_already_stored(store):
    posted = indeed_item(id="stored-1", positionName="Backend Engineer", company="Initech")
    seed(store, posted, "indeed")
    items = [
        indeed_item(id="n-1", positionName="Backend Engineer", company="Acme"),
        indeed_item(id="n-2", positionName="Senior Backend Engineer", company="Hooli"),
        dict(posted),
    ]
    client = FakeActorClient([items])
    matcher = AsyncMock()
    orchestrator = IngestionOrchestrator(store, client, matcher=matcher)

    result = await orchestrator.ingest(request(["backend engineer"], ["indeed"], location="Austin"))
    await drain_background()

    pair = result.results[0]
    assert (pair.jobs_found, pair.jobs_new, pair.jobs_duplicate) == (3, 2, 1)
    assert store.runs[pair.run_id]["status"] == "completed"
    assert client.calls[0]["input"]["queries"] == [{"query": "backend engineer", "location": "Austin"}]
    assert result.matching["status"] == "started"
    matcher.assert_awaited_once()


@pytest.mark.asyncio
async def test_skip_matching_never_invokes_matcher(store):
    items = [indeed_item(id=str(i), positionName=f"Role {i}") for i in range(5)]
    matcher = AsyncMock()
    orchestrator = IngestionOrchestrator(store, FakeActorClient([items]), matcher=matcher)

    result = await orchestrator.ingest(request(["q"], ["indeed"], skip_matching=True))
    await drain_background()

    assert result.total_new_jobs == 5
    assert result.matching == {"status": "skipped", "reason": "skip_matching=true"}
    matcher.assert_not_called()
