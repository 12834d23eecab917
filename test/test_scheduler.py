"""
Tests for the cache cleanup job
"""

import asyncio
import inspect
import threading
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from noxion.scheduler import CACHE_CLEANUP_JOB_ID, run_cache_cleanup, schedule_cache_cleanup


class TestRunCacheCleanup:
    def test_evicts_expired_entries(self, content_client, clock):
        asyncio.run(content_client.get_database_pages())
        clock.advance(301)

        removed = asyncio.run(run_cache_cleanup(lambda: [content_client]))

        assert removed >= 1
        assert content_client.cache.get_stats()["posts"] == 0

    def test_nothing_expired(self, content_client):
        asyncio.run(content_client.get_database_pages())

        assert asyncio.run(run_cache_cleanup(lambda: [content_client])) == 0
        assert content_client.cache.get_stats()["posts"] == 1

    def test_no_clients(self):
        assert asyncio.run(run_cache_cleanup(lambda: [])) == 0


class TestScheduleCacheCleanup:
    def test_job_registered_with_interval(self):
        target = AsyncIOScheduler()

        schedule_cache_cleanup(lambda: [], interval_seconds=30, target=target)

        job = target.get_job(CACHE_CLEANUP_JOB_ID)
        assert job is not None
        assert job.func is run_cache_cleanup
        assert job.trigger.interval == timedelta(seconds=30)

    def test_job_is_a_coroutine(self):
        assert inspect.iscoroutinefunction(run_cache_cleanup)

    def test_job_runs_on_the_event_loop_thread(self):
        seen_threads = []

        def clients():
            seen_threads.append(threading.get_ident())
            return []

        async def run_once():
            target = AsyncIOScheduler()
            schedule_cache_cleanup(clients, interval_seconds=3600, target=target)
            target.start()
            try:
                target.get_job(CACHE_CLEANUP_JOB_ID).modify(next_run_time=datetime.now(timezone.utc))
                for _ in range(50):
                    if seen_threads:
                        break
                    await asyncio.sleep(0.05)
            finally:
                target.shutdown(wait=False)
            return threading.get_ident()

        loop_thread = asyncio.run(run_once())

        assert seen_threads == [loop_thread]
