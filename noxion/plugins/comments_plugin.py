"""
Comments Plugin

Reader comments for blog posts, stored through a CommentStore.

Registers:
  - component  CommentsSection
  - routes     GET /api/comments/:slug, POST /api/comments/:slug,
               PUT /api/comments/approve/:id, DELETE /api/comments/:id
  - hook       afterPostRender → sets comment_count on the post

Comments are scoped by blog id; the same plugin instance serves every blog.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from pydantic import ValidationError

from noxion.plugins.base import PluginBase, PluginMeta
from noxion.plugins.context import PluginContext
from noxion.plugins.hooks import HOOK_AFTER_POST_RENDER
from noxion.schemas.comment import Comment, CommentApiResponse, CommentCreate
from noxion.schemas.post import BlogPost
from noxion.utils.sanitize import sanitize_comment, sanitize_email, sanitize_plain_text

logger = logging.getLogger(__name__)

DEFAULT_BLOG_ID = "default"

_META = PluginMeta(
    name="comments",
    version="1.0.0",
    description="Reader comments with moderation for blog posts",
    config={"auto_approve": False, "moderation_enabled": True},
    config_schema={
        "auto_approve": {"type": "boolean", "default": False},
        "moderation_enabled": {"type": "boolean", "default": True},
    },
)


class CommentStore(Protocol):
    async def list_comments(self, blog_id: str, post_slug: str, approved_only: bool = True) -> list[Comment]: ...

    async def create_comment(self, blog_id: str, post_slug: str, data: CommentCreate, approved: bool) -> Comment: ...

    async def approve_comment(self, blog_id: str, comment_id: str) -> Optional[Comment]: ...

    async def delete_comment(self, blog_id: str, comment_id: str) -> bool: ...

    async def count_comments(self, blog_id: str, post_slug: str) -> int: ...


class InMemoryCommentStore:
    """Process-local CommentStore, keyed by (blog id, comment id)."""

    def __init__(self) -> None:
        self._comments: dict[tuple[str, str], Comment] = {}

    async def list_comments(self, blog_id: str, post_slug: str, approved_only: bool = True) -> list[Comment]:
        comments = [
            c
            for (owner, _), c in self._comments.items()
            if owner == blog_id and c.post_slug == post_slug and (c.approved or not approved_only)
        ]
        return sorted(comments, key=lambda c: c.created_at)

    async def create_comment(self, blog_id: str, post_slug: str, data: CommentCreate, approved: bool) -> Comment:
        now = datetime.now(timezone.utc)
        comment = Comment(
            id=str(uuid.uuid4()),
            blog_id=blog_id,
            post_slug=post_slug,
            author=sanitize_plain_text(data.author),
            email=sanitize_email(str(data.email)),
            content=sanitize_comment(data.content),
            approved=approved,
            parent_id=data.parent_id,
            created_at=now,
            updated_at=now,
        )
        self._comments[(blog_id, comment.id)] = comment
        return comment

    async def approve_comment(self, blog_id: str, comment_id: str) -> Optional[Comment]:
        comment = self._comments.get((blog_id, comment_id))
        if comment is None:
            return None
        approved = comment.model_copy(update={"approved": True, "updated_at": datetime.now(timezone.utc)})
        self._comments[(blog_id, comment_id)] = approved
        return approved

    async def delete_comment(self, blog_id: str, comment_id: str) -> bool:
        return self._comments.pop((blog_id, comment_id), None) is not None

    async def count_comments(self, blog_id: str, post_slug: str) -> int:
        return len(await self.list_comments(blog_id, post_slug))


class CommentsPlugin(PluginBase):
    """Reader comments: HTTP routes, a CommentsSection component and per-post comment counts."""

    def __init__(self, store: Optional[CommentStore] = None, config: Optional[dict[str, Any]] = None):
        self.store = store or InMemoryCommentStore()
        self._meta = PluginMeta(**{**_META.__dict__, "config": {**_META.config, **(config or {})}})

    @property
    def meta(self) -> PluginMeta:
        return self._meta

    async def register(self, context: PluginContext) -> None:
        blog_id = context.blog_id or DEFAULT_BLOG_ID
        store = self.store

        def setting(key: str) -> Any:
            return context.plugin_settings.get(key, self._meta.config.get(key))

        async def get_comments(payload: Any, params: dict[str, str]) -> CommentApiResponse:
            comments = await store.list_comments(blog_id, params["slug"])
            return CommentApiResponse(success=True, comments=comments)

        async def create_comment(payload: Any, params: dict[str, str]) -> CommentApiResponse:
            try:
                data = CommentCreate.model_validate(payload or {})
            except ValidationError as exc:
                return CommentApiResponse(success=False, error=_first_error(exc))

            approved = bool(setting("auto_approve")) or not setting("moderation_enabled")
            comment = await store.create_comment(blog_id, params["slug"], data, approved=approved)
            message = (
                "Comment submitted successfully!"
                if approved
                else "Comment submitted successfully! It will appear after approval."
            )
            return CommentApiResponse(success=True, comment=comment, message=message)

        async def approve_comment(payload: Any, params: dict[str, str]) -> CommentApiResponse:
            comment = await store.approve_comment(blog_id, params["id"])
            if comment is None:
                return CommentApiResponse(success=False, error="Comment not found")
            return CommentApiResponse(success=True, comment=comment)

        async def delete_comment(payload: Any, params: dict[str, str]) -> CommentApiResponse:
            if not await store.delete_comment(blog_id, params["id"]):
                return CommentApiResponse(success=False, error="Comment not found")
            return CommentApiResponse(success=True, message="Comment deleted successfully")

        async def add_comment_count(post: Any) -> Any:
            if not isinstance(post, BlogPost):
                return post
            count = await store.count_comments(blog_id, post.slug)
            return post.model_copy(update={"comment_count": count})

        context.register_component("CommentsSection", {"type": "comments-section", "blog_id": blog_id})
        context.register_route("GET /api/comments/:slug", get_comments)
        context.register_route("POST /api/comments/:slug", create_comment)
        context.register_route("PUT /api/comments/approve/:id", approve_comment)
        context.register_route("DELETE /api/comments/:id", delete_comment)
        context.register_hook(HOOK_AFTER_POST_RENDER, add_comment_count)
        logger.debug("CommentsPlugin registered for blog %s", blog_id)


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid comment"
    error = errors[0]
    field = ".".join(str(loc) for loc in error.get("loc", ()))
    return f"{field}: {error.get('msg')}" if field else str(error.get("msg"))
