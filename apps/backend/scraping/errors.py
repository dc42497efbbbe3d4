"""
Error taxonomy for the ingestion pipeline.

Actor errors propagate out of the actor client and adapters and are caught
at the orchestrator boundary, where they become a failed scrape run.
"""


class ScrapingError(Exception):
    """Base class for ingestion errors."""


class ConfigurationError(ScrapingError):
    """Required configuration (e.g. the actor host token) is missing."""


class ActorStartError(ScrapingError):
    """The actor host rejected a run submission."""

    def __init__(self, actor_id: str, status_code: int, body: str):
        self.actor_id = actor_id
        self.status_code = status_code
        self.body = body
        super().__init__(f"Apify start failed ({status_code}): {body}")


class ActorRunFailedError(ScrapingError):
    """The actor run ended in a failure terminal state."""

    def __init__(self, run_id: str, status: str):
        self.run_id = run_id
        self.status = status
        super().__init__(f"Apify run ended with status: {status}")


class ActorTimeoutError(ScrapingError):
    """The local poll timeout elapsed before the run reached a terminal state."""

    def __init__(self, run_id: str, timeout_seconds: float):
        self.run_id = run_id
        self.timeout_seconds = timeout_seconds
        minutes = timeout_seconds / 60
        super().__init__(f"Apify run timed out after {minutes:g} minutes")


class PersistenceError(ScrapingError):
    """A storage operation failed."""


class InvalidRunTransition(ScrapingError):
    """A scrape run was moved out of a terminal state."""


class ActorResponseError(ScrapingError):
    """The actor host answered with a body that is not the expected JSON shape."""

    def __init__(self, path: str, status_code: int, reason: str):
        self.path = path
        self.status_code = status_code
        super().__init__(f"Unexpected Apify response ({status_code}) from {path}: {reason}")
