"""
Apify actor client: start a run, poll it to a terminal state, fetch its dataset.

The client holds no state between calls besides the HTTP connection pool.
Failed runs are never resubmitted; only individual status/dataset requests
are retried on transient transport errors.
"""

import time
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from app.config import ScrapingSettings
from .errors import ActorStartError, ActorRunFailedError, ActorTimeoutError, ActorResponseError

logger = logging.getLogger(__name__)

SUCCEEDED = "SUCCEEDED"
FAILURE_STATES = frozenset({"FAILED", "ABORTED", "TIMED-OUT"})
MAX_GET_ATTEMPTS = 3


@dataclass
class ActorRun:
    """Handle for a started actor run."""

    id: str
    actor_id: str
    dataset_id: Optional[str] = None
    status: str = "READY"


class ActorClient:
    """Async client for the Apify REST API"""

    def __init__(self, settings: ScrapingSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.token = settings.require_token()
        self.base_url = settings.apify_base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(settings.http_timeout_seconds)
        )

    async def __aenter__(self) -> "ActorClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _params(self, **extra: Any) -> Dict[str, Any]:
        params = {"token": self.token}
        params.update(extra)
        return params

    @retry(
        stop=stop_after_attempt(MAX_GET_ATTEMPTS),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        reraise=True,
    )
    async def _get(self, path: str, **params: Any) -> httpx.Response:
        return await self._client.get(f"{self.base_url}{path}", params=self._params(**params))

    @staticmethod
    def _json(response: httpx.Response, path: str) -> Any:
        try:
            return response.json()
        except ValueError:
            raise ActorResponseError(path, response.status_code, "body is not JSON")

    @classmethod
    def _data(cls, response: httpx.Response, path: str) -> Dict[str, Any]:
        """The `data` object of an envelope response ({} when absent)."""
        body = cls._json(response, path)
        if body is None:
            return {}
        if not isinstance(body, dict):
            raise ActorResponseError(path, response.status_code, "body is not a JSON object")
        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise ActorResponseError(path, response.status_code, "data is not a JSON object")
        return data

    async def start(self, actor_id: str, input_payload: Dict[str, Any]) -> ActorRun:
        """
        Submit a run for `actor_id` with the given input.

        Raises:
            ActorStartError: non-success status, or no run id in the response
        """
        url = f"{self.base_url}/acts/{quote(actor_id, safe='')}/runs"
        response = await self._client.post(url, params=self._params(), json=input_payload)

        if not response.is_success:
            raise ActorStartError(actor_id, response.status_code, response.text)

        try:
            data = self._data(response, f"/acts/{actor_id}/runs")
        except ActorResponseError as e:
            raise ActorStartError(actor_id, response.status_code, str(e))
        run_id = data.get("id")
        if not run_id:
            raise ActorStartError(actor_id, response.status_code, "Apify did not return a run ID")

        run = ActorRun(
            id=run_id,
            actor_id=actor_id,
            dataset_id=data.get("defaultDatasetId"),
            status=data.get("status", "READY"),
        )
        logger.info(f"[actor] Started {actor_id} run {run.id}")
        return run

    async def poll_until_done(self, run: ActorRun) -> List[Dict[str, Any]]:
        """
        Poll `run` every poll interval until it succeeds, then return its dataset items.

        Raises:
            ActorRunFailedError: run ended FAILED / ABORTED / TIMED-OUT
            ActorTimeoutError: the wall-clock timeout elapsed first
        """
        deadline = time.monotonic() + self.settings.actor_timeout_seconds

        while time.monotonic() < deadline:
            await asyncio.sleep(self.settings.poll_interval_seconds)

            path = f"/actor-runs/{run.id}"
            response = await self._get(path)
            if not response.is_success:
                logger.warning(f"[actor] Status check for run {run.id} returned HTTP {response.status_code}")
                continue

            try:
                data = self._data(response, path)
            except ActorResponseError as e:
                logger.warning(f"[actor] Status check for run {run.id} unreadable: {e}")
                continue
            status = data.get("status")
            run.status = status or run.status

            if status == SUCCEEDED:
                dataset_id = run.dataset_id or data.get("defaultDatasetId")
                return await self.fetch_dataset(dataset_id)

            if status in FAILURE_STATES:
                raise ActorRunFailedError(run.id, status)

        raise ActorTimeoutError(run.id, self.settings.actor_timeout_seconds)

    async def fetch_dataset(self, dataset_id: Optional[str]) -> List[Dict[str, Any]]:
        """
        Fetch up to `dataset_limit` items; a JSON value that is not an array yields [].

        Raises:
            httpx.HTTPStatusError: non-success status
            ActorResponseError: body is not JSON
        """
        if not dataset_id:
            logger.warning("[actor] Run succeeded without a dataset ID")
            return []

        path = f"/datasets/{dataset_id}/items"
        response = await self._get(path, format="json", limit=self.settings.dataset_limit)
        response.raise_for_status()

        items = self._json(response, path)
        if not isinstance(items, list):
            logger.warning(f"[actor] Dataset {dataset_id} did not return a list")
            return []
        return items

    async def run(self, actor_id: str, input_payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Start an actor run and wait for its output."""
        run = await self.start(actor_id, input_payload)
        items = await self.poll_until_done(run)
        logger.info(f"[actor] {actor_id} run {run.id} returned {len(items)} items")
        return items

    async def list_running_runs(self, limit: int = 10) -> List[Dict[str, Any]]:
        """List actor runs the host still reports as RUNNING."""
        response = await self._get("/actor-runs", status="RUNNING", limit=limit)
        response.raise_for_status()
        items = self._data(response, "/actor-runs").get("items") or []
        return [r for r in items if isinstance(r, dict)]

    async def abort_run(self, run_id: str) -> None:
        """Request cancellation of a remote run."""
        response = await self._client.post(
            f"{self.base_url}/actor-runs/{run_id}/abort",
            params=self._params(),
        )
        response.raise_for_status()
        logger.info(f"[actor] Abort requested for run {run_id}")

    async def abort_all_running(self, limit: int = 10) -> int:
        """
        Best-effort abort of every run the host reports as RUNNING.

        Individual abort failures are logged; returns the number of abort
        requests the host accepted.
        """
        runs = await self.list_running_runs(limit=limit)
        run_ids = [r["id"] for r in runs if r.get("id")]
        results = await asyncio.gather(*(self.abort_run(run_id) for run_id in run_ids), return_exceptions=True)

        accepted = 0
        for run_id, result in zip(run_ids, results):
            if isinstance(result, Exception):
                logger.warning(f"[actor] Abort failed for run {run_id}: {result}")
            else:
                accepted += 1
        return accepted
