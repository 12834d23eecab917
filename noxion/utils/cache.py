"""
In-Memory TTL Cache

Provides per-entry TTL caching for Notion content:
- TTLCache: key/value store with lazy expiry and optional LRU bound
- ContentCache: the three namespaces used by a content client
  (post list, single post by slug, raw page content by page id)

Each content client owns its own ContentCache, so tenants never share entries.
"""

import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from noxion.config import settings
from noxion.schemas.post import BlogPost

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class CacheTTL:
    """TTLs in seconds for each cache namespace."""

    posts: int = 300
    post: int = 600
    content: int = 900

    @classmethod
    def from_settings(cls) -> "CacheTTL":
        return cls(
            posts=settings.cache_ttl_posts,
            post=settings.cache_ttl_post,
            content=settings.cache_ttl_content,
        )


CACHE_TTL = CacheTTL.from_settings()


@dataclass
class CacheStats:
    """Cache statistics."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    expired: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total * 100


@dataclass
class CacheEntry(Generic[T]):
    value: T
    inserted_at: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl_seconds


class TTLCache(Generic[T]):
    """
    Key/value store with a TTL per entry.

    Expired entries are evicted lazily on read; cleanup() sweeps the rest.
    With max_size set, the least recently used entry is evicted on overflow.
    """

    def __init__(self, max_size: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self._cache: "OrderedDict[str, CacheEntry[T]]" = OrderedDict()
        self._max_size = max_size
        self._clock = clock
        self._stats = CacheStats()

    def get(self, key: str) -> Optional[T]:
        entry = self._cache.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        if entry.is_expired(self._clock()):
            del self._cache[key]
            self._stats.expired += 1
            self._stats.misses += 1
            return None

        self._cache.move_to_end(key)
        self._stats.hits += 1
        return entry.value

    def set(self, key: str, value: T, ttl_seconds: float = 300) -> None:
        if key in self._cache:
            self._cache.move_to_end(key)
        self._cache[key] = CacheEntry(value=value, inserted_at=self._clock(), ttl_seconds=ttl_seconds)

        if self._max_size is not None:
            while len(self._cache) > self._max_size:
                self._cache.popitem(last=False)

        self._stats.sets += 1

    def delete(self, key: str) -> bool:
        if key in self._cache:
            del self._cache[key]
            self._stats.deletes += 1
            return True
        return False

    def clear(self) -> None:
        self._cache.clear()

    def size(self) -> int:
        return len(self._cache)

    def __contains__(self, key: str) -> bool:
        entry = self._cache.get(key)
        return entry is not None and not entry.is_expired(self._clock())

    def cleanup(self) -> int:
        """Remove every expired entry. Returns the number evicted."""
        now = self._clock()
        expired = [key for key, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired:
            del self._cache[key]
        self._stats.expired += len(expired)
        return len(expired)

    def get_stats(self) -> dict:
        return {
            "size": len(self._cache),
            "max_size": self._max_size,
            "hits": self._stats.hits,
            "misses": self._stats.misses,
            "hit_rate": f"{self._stats.hit_rate:.2f}%",
        }


# ── Cache keys ────────────────────────────────────────────────────────────────


def get_posts_list_cache_key() -> str:
    return "posts:all"


def get_post_cache_key(slug: str) -> str:
    return f"post:{slug}"


def get_content_cache_key(page_id: str) -> str:
    return f"content:{page_id}"


class ContentCache:
    """
    The three cache namespaces used by a content client.

    Fetchers are only awaited on a miss. Failures propagate to the caller and
    nothing is cached for them.
    """

    def __init__(
        self,
        ttl: Optional[CacheTTL] = None,
        max_size: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = ttl or CACHE_TTL
        self.posts: TTLCache[list[BlogPost]] = TTLCache(max_size=max_size, clock=clock)
        self.post: TTLCache[BlogPost] = TTLCache(max_size=max_size, clock=clock)
        self.content: TTLCache[str] = TTLCache(max_size=max_size, clock=clock)

    async def get_cached_posts(
        self,
        fetcher: Callable[[], Awaitable[list[BlogPost]]],
        cache_key: Optional[str] = None,
        ttl: Optional[int] = None,
    ) -> list[BlogPost]:
        key = cache_key or get_posts_list_cache_key()
        cached = self.posts.get(key)
        if cached is not None:
            logger.debug("Cache HIT: %s", key)
            return cached

        logger.debug("Cache MISS: %s", key)
        data = await fetcher()
        self.posts.set(key, data, ttl or self.ttl.posts)
        return data

    async def get_cached_post(
        self,
        fetcher: Callable[[], Awaitable[Optional[BlogPost]]],
        slug: str,
        ttl: Optional[int] = None,
    ) -> Optional[BlogPost]:
        key = get_post_cache_key(slug)
        cached = self.post.get(key)
        if cached is not None:
            logger.debug("Cache HIT: %s", key)
            return cached

        logger.debug("Cache MISS: %s", key)
        data = await fetcher()
        # Misses are not cached so a newly published page shows up on the next request
        if data is not None:
            self.post.set(key, data, ttl or self.ttl.post)
        return data

    async def get_cached_content(
        self,
        fetcher: Callable[[], Awaitable[str]],
        page_id: str,
        ttl: Optional[int] = None,
    ) -> str:
        key = get_content_cache_key(page_id)
        cached = self.content.get(key)
        if cached is not None:
            logger.debug("Cache HIT: %s", key)
            return cached

        logger.debug("Cache MISS: %s", key)
        data = await fetcher()
        self.content.set(key, data, ttl or self.ttl.content)
        return data

    # ── Invalidation ──────────────────────────────────────────────────────────

    def invalidate_post(self, slug: str) -> None:
        """Drop one post and the list that contains it."""
        self.post.delete(get_post_cache_key(slug))
        self.posts.delete(get_posts_list_cache_key())

    def invalidate_content(self, page_id: str) -> None:
        self.content.delete(get_content_cache_key(page_id))

    def invalidate_all_posts(self) -> None:
        self.posts.clear()
        self.post.clear()

    def invalidate_all(self) -> None:
        self.posts.clear()
        self.post.clear()
        self.content.clear()

    def cleanup_expired(self) -> int:
        return self.posts.cleanup() + self.post.cleanup() + self.content.cleanup()

    def get_stats(self) -> dict[str, int]:
        return {
            "posts": self.posts.size(),
            "post": self.post.size(),
            "content": self.content.size(),
            "total": self.posts.size() + self.post.size() + self.content.size(),
        }

    async def preload(self, posts_loader: Callable[[], Awaitable[list[BlogPost]]]) -> None:
        """Warm the list cache and the first five posts."""
        try:
            posts = await posts_loader()
        except Exception as exc:
            logger.warning("Cache preload failed: %s", exc)
            return

        self.posts.set(get_posts_list_cache_key(), posts, self.ttl.posts)
        for post in posts[:5]:
            self.post.set(get_post_cache_key(post.slug), post, self.ttl.post)


def should_invalidate_cache(
    last_fetch: float,
    last_update: str,
    max_age: Optional[float] = None,
) -> bool:
    """
    Decide whether a cached list is stale.

    Args:
        last_fetch: Unix timestamp of the last fetch.
        last_update: ISO-8601 last edited time of the newest post.
        max_age: Maximum cache age in seconds (default: posts TTL).
    """
    max_age = CACHE_TTL.posts if max_age is None else max_age
    if time.time() - last_fetch > max_age:
        return True
    try:
        updated_at = datetime.fromisoformat(last_update.replace("Z", "+00:00")).timestamp()
    except (AttributeError, ValueError):
        return False
    return updated_at > last_fetch
