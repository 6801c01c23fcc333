"""
Fire-and-forget persistence of chat exchanges.

The HTTP response never waits on these tasks; failures are logged and sent to
Sentry from the done-callback.
"""

from __future__ import annotations

import asyncio
import logging

import sentry_sdk

from chat_api.chat_repo import ChatRepo
from chat_api.chat_store import ChatRecord

logger = logging.getLogger(__name__)

# Track running tasks to prevent GC (asyncio only keeps weak references)
_running_tasks: set[asyncio.Task] = set()


async def _save_chat(repo: ChatRepo, record: ChatRecord) -> None:
    # Repos are synchronous (psycopg); keep the event loop free.
    await asyncio.to_thread(repo.save, record)
    logger.debug("Saved chat for user %s", record.user_id)


def enqueue_chat_save(repo: ChatRepo, record: ChatRecord) -> asyncio.Task:
    """
    Fire-and-forget: persist a chat exchange in the background.

    Must be called from a running event loop (i.e. inside a request handler).
    """
    task = asyncio.create_task(
        _save_chat(repo, record),
        name=f"save-chat-{record.user_id}",
    )
    _running_tasks.add(task)
    task.add_done_callback(_task_done)
    return task


def _task_done(task: asyncio.Task) -> None:
    """Callback to clean up completed tasks and log errors."""
    _running_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc:
        logger.error("Error saving chat to database (%s): %s", task.get_name(), exc)
        sentry_sdk.capture_exception(exc)


async def drain() -> None:
    """Wait for outstanding saves. Used on shutdown and in tests."""
    if _running_tasks:
        await asyncio.gather(*list(_running_tasks), return_exceptions=True)
