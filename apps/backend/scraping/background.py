"""
Detached background tasks whose failures are logged, never raised.
"""
import asyncio
import logging
from typing import Any, Coroutine, Optional, Set

logger = logging.getLogger(__name__)

# The event loop only keeps weak references to tasks
_background_tasks: Set[asyncio.Task] = set()


def _log_task_result(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        logger.warning(f"[background] Task {task.get_name()} was cancelled")
        return
    error = task.exception()
    if error is not None:
        logger.error(f"[background] Task {task.get_name()} failed: {error}", exc_info=error)


def spawn(coro: Coroutine[Any, Any, Any], name: Optional[str] = None) -> asyncio.Task:
    """Schedule `coro` without awaiting it; exceptions go to the log."""
    task = asyncio.create_task(coro, name=name)
    _background_tasks.add(task)
    task.add_done_callback(_log_task_result)
    return task


def pending_tasks() -> Set[asyncio.Task]:
    return set(_background_tasks)
