"""
Tests for the TTL cache and the content cache namespaces.
"""

import asyncio
import time
from unittest.mock import AsyncMock

from noxion.utils.cache import (
    CacheTTL,
    ContentCache,
    TTLCache,
    get_content_cache_key,
    get_post_cache_key,
    get_posts_list_cache_key,
    should_invalidate_cache,
)
from noxion.utils.validation import create_safe_blog_post


def make_post(slug: str):
    return create_safe_blog_post({"id": f"id-{slug}", "title": slug.title(), "slug": slug, "published": True})


class TestTTLCache:
    """Tests for the in-memory TTL cache."""

    def test_basic_get_set(self, clock):
        cache = TTLCache(clock=clock)

        cache.set("key1", "value1")
        assert cache.get("key1") == "value1"

    def test_get_missing_key(self, clock):
        assert TTLCache(clock=clock).get("missing") is None

    def test_set_twice_keeps_last_value(self, clock):
        cache = TTLCache(clock=clock)

        cache.set("key", "a", 60)
        cache.set("key", "b", 60)

        assert cache.get("key") == "b"
        assert cache.size() == 1

    def test_entry_expires_after_ttl(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("key", "value", ttl_seconds=10)

        clock.advance(10)
        assert cache.get("key") == "value"

        clock.advance(0.001)
        assert cache.get("key") is None
        assert cache.size() == 0

    def test_delete(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("key", "value")

        assert cache.delete("key") is True
        assert cache.delete("key") is False
        assert cache.get("key") is None

    def test_contains_respects_expiry(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("key", "value", 5)
        assert "key" in cache

        clock.advance(6)
        assert "key" not in cache

    def test_cleanup_removes_only_expired(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("short", 1, 5)
        cache.set("long", 2, 50)

        clock.advance(10)

        assert cache.cleanup() == 1
        assert cache.get("long") == 2
        assert cache.size() == 1

    def test_max_size_evicts_least_recently_used(self, clock):
        cache = TTLCache(max_size=2, clock=clock)
        cache.set("key1", 1)
        cache.set("key2", 2)
        cache.get("key1")
        cache.set("key3", 3)

        assert cache.get("key2") is None
        assert cache.get("key1") == 1
        assert cache.get("key3") == 3

    def test_stats(self, clock):
        cache = TTLCache(clock=clock)
        cache.set("key", "value")
        cache.get("key")
        cache.get("missing")

        stats = cache.get_stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        assert stats["hit_rate"] == "50.00%"


class TestCacheKeys:
    def test_namespaces_are_disjoint(self):
        keys = {get_posts_list_cache_key(), get_post_cache_key("all"), get_content_cache_key("all")}
        assert keys == {"posts:all", "post:all", "content:all"}


class TestContentCache:
    def test_posts_fetcher_called_once_within_ttl(self, clock):
        cache = ContentCache(ttl=CacheTTL(posts=30), clock=clock)
        posts = [make_post("a")]
        fetcher = AsyncMock(return_value=posts)

        assert asyncio.run(cache.get_cached_posts(fetcher)) == posts
        assert asyncio.run(cache.get_cached_posts(fetcher)) == posts
        assert fetcher.await_count == 1

        clock.advance(31)
        asyncio.run(cache.get_cached_posts(fetcher))
        assert fetcher.await_count == 2

    def test_empty_post_list_is_cached(self, clock):
        cache = ContentCache(clock=clock)
        fetcher = AsyncMock(return_value=[])

        asyncio.run(cache.get_cached_posts(fetcher))
        asyncio.run(cache.get_cached_posts(fetcher))

        assert fetcher.await_count == 1

    def test_missing_post_is_not_cached(self, clock):
        cache = ContentCache(clock=clock)
        fetcher = AsyncMock(return_value=None)

        assert asyncio.run(cache.get_cached_post(fetcher, "ghost")) is None
        assert asyncio.run(cache.get_cached_post(fetcher, "ghost")) is None
        assert fetcher.await_count == 2

    def test_empty_content_is_cached(self, clock):
        cache = ContentCache(clock=clock)
        fetcher = AsyncMock(return_value="")

        asyncio.run(cache.get_cached_content(fetcher, "page-1"))
        asyncio.run(cache.get_cached_content(fetcher, "page-1"))

        assert fetcher.await_count == 1

    def test_fetcher_failure_caches_nothing(self, clock):
        cache = ContentCache(clock=clock)
        fetcher = AsyncMock(side_effect=RuntimeError("down"))

        try:
            asyncio.run(cache.get_cached_posts(fetcher))
        except RuntimeError:
            pass

        assert cache.get_stats()["total"] == 0

    def test_invalidate_post_drops_the_list_too(self, clock):
        cache = ContentCache(clock=clock)
        asyncio.run(cache.get_cached_posts(AsyncMock(return_value=[make_post("a")])))
        asyncio.run(cache.get_cached_post(AsyncMock(return_value=make_post("a")), "a"))

        cache.invalidate_post("a")

        assert cache.get_stats()["total"] == 0

    def test_invalidate_all(self, clock):
        cache = ContentCache(clock=clock)
        asyncio.run(cache.get_cached_content(AsyncMock(return_value="body"), "p"))
        asyncio.run(cache.get_cached_posts(AsyncMock(return_value=[])))

        cache.invalidate_all()

        assert cache.get_stats() == {"posts": 0, "post": 0, "content": 0, "total": 0}

    def test_invalidate_content_only_touches_that_page(self, clock):
        cache = ContentCache(clock=clock)
        asyncio.run(cache.get_cached_content(AsyncMock(return_value="one"), "p1"))
        asyncio.run(cache.get_cached_content(AsyncMock(return_value="two"), "p2"))

        cache.invalidate_content("p1")

        assert cache.get_stats()["content"] == 1
        assert get_content_cache_key("p2") in cache.content

    def test_invalidate_all_posts_keeps_content(self, clock):
        cache = ContentCache(clock=clock)
        asyncio.run(cache.get_cached_posts(AsyncMock(return_value=[make_post("a")])))
        asyncio.run(cache.get_cached_post(AsyncMock(return_value=make_post("a")), "a"))
        asyncio.run(cache.get_cached_content(AsyncMock(return_value="body"), "p"))

        cache.invalidate_all_posts()

        assert cache.get_stats() == {"posts": 0, "post": 0, "content": 1, "total": 1}

    def test_cleanup_expired_across_namespaces(self, clock):
        cache = ContentCache(ttl=CacheTTL(posts=10, post=10, content=100), clock=clock)
        asyncio.run(cache.get_cached_posts(AsyncMock(return_value=[])))
        asyncio.run(cache.get_cached_content(AsyncMock(return_value="body"), "p"))

        clock.advance(20)

        assert cache.cleanup_expired() == 1
        assert cache.get_stats()["content"] == 1

    def test_preload_warms_list_and_first_five_posts(self, clock):
        cache = ContentCache(clock=clock)
        posts = [make_post(f"post-{i}") for i in range(7)]

        asyncio.run(cache.preload(AsyncMock(return_value=posts)))

        stats = cache.get_stats()
        assert stats["posts"] == 1
        assert stats["post"] == 5

    def test_preload_failure_is_logged_not_raised(self, clock):
        cache = ContentCache(clock=clock)
        asyncio.run(cache.preload(AsyncMock(side_effect=RuntimeError("down"))))
        assert cache.get_stats()["total"] == 0


class TestShouldInvalidateCache:
    def test_stale_by_age(self):
        assert should_invalidate_cache(time.time() - 100, "2000-01-01T00:00:00Z", max_age=10)

    def test_newer_update_invalidates(self):
        last_fetch = time.time() - 5
        assert should_invalidate_cache(last_fetch, "2999-01-01T00:00:00Z", max_age=60)

    def test_fresh_cache_kept(self):
        assert not should_invalidate_cache(time.time(), "2000-01-01T00:00:00Z", max_age=60)

    def test_unparseable_update_kept(self):
        assert not should_invalidate_cache(time.time(), "not a date", max_age=60)
