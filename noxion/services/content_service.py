"""
Content Service: Notion-backed blog posts

NotionClient turns the pages of one Notion database into validated BlogPost
records:

    query database → validate envelope → per page: validate shape →
    read properties → fetch body (cached) → compute reading time →
    create_safe_blog_post → cache

One malformed page never aborts a listing: it is logged and either replaced
by a degraded post with empty content or dropped. Only a failure of the
database query itself is fatal (NotionAPIError).
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any, Protocol

from noxion.exceptions import ErrorCode, NotionAPIError, log_error
from noxion.schemas.post import BlogPost
from noxion.services.notion_api import NotionAPI
from noxion.utils.cache import CacheTTL, ContentCache, get_posts_list_cache_key
from noxion.utils.markdown import blocks_to_markdown
from noxion.utils.properties import NotionPropertyAccessor
from noxion.utils.slugify import matches_slug, post_slug
from noxion.utils.validation import (
    create_safe_blog_post,
    sanitize_string,
    validate_database_response,
    validate_notion_page,
)

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200

# Deeper block trees are truncated when flattening page content
MAX_BLOCK_DEPTH = 8

# Blocks whose children are separate pages, not part of this page's body
_OPAQUE_BLOCK_TYPES = frozenset({"child_page", "child_database"})

PUBLISHED_FILTER: dict[str, Any] = {"property": "Published", "checkbox": {"equals": True}}
DATE_DESCENDING: list[dict[str, Any]] = [{"property": "Date", "direction": "descending"}]


class NotionTransport(Protocol):
    async def query_database(
        self,
        database_id: str,
        filter: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
        start_cursor: str | None = None,
    ) -> dict[str, Any]: ...

    async def list_block_children(self, block_id: str, start_cursor: str | None = None) -> dict[str, Any]: ...


def calculate_reading_time(content: Any) -> int:
    """Minutes to read content at 200 words per minute, never less than 1."""
    if not isinstance(content, str) or not content.strip():
        return 1
    words = len(content.split())
    return max(1, math.ceil(words / WORDS_PER_MINUTE))


def get_cover_image_url(page: Mapping[str, Any]) -> str | None:
    cover = page.get("cover")
    if not isinstance(cover, Mapping):
        return None
    source = cover.get("type")
    if source not in ("external", "file"):
        return None
    inner = cover.get(source)
    url = inner.get("url") if isinstance(inner, Mapping) else None
    return url if isinstance(url, str) else None


def _empty_response() -> dict[str, Any]:
    return {"object": "list", "results": [], "has_more": False, "next_cursor": None}


class NotionClient:
    """
    Content client for one Notion database.

    Without a token and database id the client is unconfigured: listings are
    empty and single-post lookups return None.
    """

    def __init__(
        self,
        token: str | None = None,
        database_id: str | None = None,
        api: NotionTransport | None = None,
        cache: ContentCache | None = None,
        ttl: CacheTTL | None = None,
    ):
        self.database_id = database_id or None
        if api is None and token:
            api = NotionAPI(token)
        self.api = api
        self.cache = cache or ContentCache(ttl=ttl)

    @property
    def is_configured(self) -> bool:
        return self.api is not None and self.database_id is not None

    async def aclose(self) -> None:
        close = getattr(self.api, "aclose", None)
        if close is not None:
            await close()

    # ── Page → post mapping ───────────────────────────────────────────────────

    def _extract_post_data(self, page: Mapping[str, Any]) -> dict[str, Any]:
        accessor = NotionPropertyAccessor(page.get("properties"))

        title = accessor.get_string("Title") or accessor.get_string("title") or accessor.get_string("Name")
        slug = post_slug(accessor.get_string("Slug"), title)
        created = accessor.get_date("Created", default=page.get("created_time"))
        tags = accessor.get_string_array("Tags") + accessor.get_string_array("Category")

        return {
            "id": page.get("id"),
            "title": title,
            "slug": slug,
            "summary": accessor.get_string("Summary") or accessor.get_string("Description"),
            "published": accessor.get_boolean("Published"),
            "date": accessor.get_date("Date", default=created),
            "tags": list(dict.fromkeys(tags)),
            "cover": get_cover_image_url(page),
            "lastEditedTime": page.get("last_edited_time"),
        }

    async def _build_post(self, post_data: dict[str, Any]) -> BlogPost | None:
        """Fetch content and build a post, degrading to empty content on failure."""
        page_id = post_data["id"]
        try:
            content = await self.get_page_content(page_id)
            return create_safe_blog_post(
                {**post_data, "content": content, "readingTime": calculate_reading_time(content)}
            )
        except Exception as exc:
            log_error(exc, f"Processing page {page_id}", page_id=page_id, title=post_data.get("title"))

        try:
            return create_safe_blog_post({**post_data, "content": "", "readingTime": 1})
        except Exception as exc:
            log_error(exc, f"Failed to create fallback post for {page_id}", page_id=page_id)
            return None

    # ── Database listing ──────────────────────────────────────────────────────

    async def _query_all(self, filter: dict[str, Any], sorts: list[dict[str, Any]] | None = None) -> list[Any]:
        """Run a database query, following pagination cursors."""
        results: list[Any] = []
        cursor: str | None = None
        while True:
            raw = await self.api.query_database(self.database_id, filter=filter, sorts=sorts, start_cursor=cursor)
            if not validate_database_response(raw):
                logger.warning("Invalid database response for %s; treating page as empty", self.database_id)
                raw = _empty_response()
            results.extend(raw["results"])
            cursor = raw.get("next_cursor")
            if not raw.get("has_more") or not cursor:
                return results

    async def _fetch_database_pages(self) -> list[BlogPost]:
        if not self.is_configured:
            return []

        try:
            pages = await self._query_all(PUBLISHED_FILTER, DATE_DESCENDING)
        except Exception as exc:
            log_error(exc, "Fetching database pages", database_id=self.database_id)
            raise NotionAPIError(
                "Failed to fetch blog posts from Notion",
                code=ErrorCode.DATABASE_QUERY_ERROR,
                original_error=exc,
                upstream_status=getattr(exc, "upstream_status", None),
            ) from exc

        posts: list[BlogPost] = []
        for page in pages:
            if not validate_notion_page(page):
                page_id = page.get("id") if isinstance(page, Mapping) else None
                log_error("Invalid page structure", "Processing Notion page", page_id=page_id)
                continue

            post_data = self._extract_post_data(page)
            if not post_data["title"] or not post_data["published"]:
                continue

            post = await self._build_post(post_data)
            if post is not None:
                posts.append(post)

        logger.info("Fetched %d posts from database %s", len(posts), self.database_id)
        return posts

    async def get_database_pages(self) -> list[BlogPost]:
        """All published posts, newest first. Raises NotionAPIError if the query fails."""
        return await self.cache.get_cached_posts(self._fetch_database_pages, get_posts_list_cache_key())

    # ── Page content ──────────────────────────────────────────────────────────

    async def _fetch_blocks(self, block_id: str, depth: int = 0) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            raw = await self.api.list_block_children(block_id, start_cursor=cursor)
            for block in raw.get("results") or []:
                if not isinstance(block, Mapping):
                    continue
                block = dict(block)
                if (
                    block.get("has_children")
                    and block.get("type") not in _OPAQUE_BLOCK_TYPES
                    and depth < MAX_BLOCK_DEPTH
                    and isinstance(block.get("id"), str)
                ):
                    block["children"] = await self._fetch_blocks(block["id"], depth + 1)
                blocks.append(block)
            cursor = raw.get("next_cursor")
            if not raw.get("has_more") or not cursor:
                return blocks

    async def _fetch_page_content(self, page_id: str) -> str:
        if self.api is None:
            log_error("Notion client not initialized", "get_page_content", page_id=page_id)
            return ""

        if not sanitize_string(page_id):
            log_error("Invalid page_id provided", "get_page_content", page_id=page_id)
            return ""

        try:
            blocks = await self._fetch_blocks(page_id)
            return sanitize_string(blocks_to_markdown(blocks))
        except Exception as exc:
            log_error(exc, "Fetching page content", page_id=page_id)
            return ""

    async def get_page_content(self, page_id: str) -> str:
        """Markdown body of a page; empty string if it cannot be fetched."""
        return await self.cache.get_cached_content(lambda: self._fetch_page_content(page_id), page_id)

    # ── Single post ───────────────────────────────────────────────────────────

    async def _find_by_title_slug(self, slug: str) -> BlogPost | None:
        for post in await self.get_database_pages():
            if matches_slug(slug, post.slug, post.title):
                return post
        return None

    async def _fetch_page_by_slug(self, slug: str) -> BlogPost | None:
        if not self.is_configured:
            log_error("Notion client or database ID not configured", "get_page_by_slug", slug=slug)
            return None

        if not sanitize_string(slug):
            log_error("Invalid slug provided", "get_page_by_slug", slug=slug)
            return None

        try:
            raw = await self.api.query_database(
                self.database_id,
                filter={"and": [PUBLISHED_FILTER, {"property": "Slug", "rich_text": {"equals": slug}}]},
            )
            response = raw if validate_database_response(raw) else _empty_response()

            pages = [page for page in response["results"] if validate_notion_page(page)]
            if not pages:
                # Pages without an explicit Slug property are matched by their title
                return await self._find_by_title_slug(slug)

            page = pages[0]
            post_data = self._extract_post_data(page)
            if not post_data["published"]:
                return None

            content = await self.get_page_content(page["id"])
            return create_safe_blog_post(
                {**post_data, "content": content, "readingTime": calculate_reading_time(content)}
            )
        except Exception as exc:
            log_error(exc, "Fetching page by slug", slug=slug, database_id=self.database_id)
            return None

    async def get_page_by_slug(self, slug: str) -> BlogPost | None:
        """The published post with this slug, or None."""
        return await self.cache.get_cached_post(lambda: self._fetch_page_by_slug(slug), slug)

    async def get_all_slugs(self) -> list[str]:
        """Slugs of all published posts; empty on any failure."""
        try:
            posts = await self.get_database_pages()
        except Exception as exc:
            log_error(exc, "Fetching all slugs", database_id=self.database_id)
            return []
        return [post.slug for post in posts]

    async def preload(self) -> None:
        await self.cache.preload(self._fetch_database_pages)
