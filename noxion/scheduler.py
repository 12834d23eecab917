import logging
from collections.abc import Callable, Iterable
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from noxion.config import settings
from noxion.services.content_service import NotionClient

scheduler = AsyncIOScheduler()

logger = logging.getLogger(__name__)

CACHE_CLEANUP_JOB_ID = "cache_cleanup"

ClientSource = Callable[[], Iterable[NotionClient]]


async def run_cache_cleanup(clients: ClientSource) -> int:
    """
    Evict expired entries from every content client's cache. Returns the number evicted.

    Must stay a coroutine: AsyncIOScheduler then runs it on the event loop,
    the only thread that touches the caches.
    """
    removed = 0
    for client in clients():
        removed += client.cache.cleanup_expired()
    if removed:
        logger.info("[Scheduler] Cache cleanup evicted %d expired entries", removed)
    return removed


def schedule_cache_cleanup(
    clients: ClientSource,
    interval_seconds: Optional[int] = None,
    target: Optional[AsyncIOScheduler] = None,
) -> None:
    """
    Register the periodic cache cleanup job.

    clients is called on every run, so blogs added after scheduling are
    cleaned as well.
    """
    interval = interval_seconds or settings.cache_cleanup_interval_seconds
    (target or scheduler).add_job(
        run_cache_cleanup,
        trigger=IntervalTrigger(seconds=interval),
        args=[clients],
        id=CACHE_CLEANUP_JOB_ID,
        replace_existing=True,
    )
    logger.info("[Scheduler] Cache cleanup scheduled every %s seconds", interval)
