"""
Plugin Hook Constants

Hook names plugins can register handlers for. Each handler receives the
current value and returns the (possibly transformed) value for the next one.
"""

from __future__ import annotations

# ── Post listing ───────────────────────────────────────────────────────────────
HOOK_BEFORE_POSTS_QUERY = "beforePostsQuery"
HOOK_AFTER_POSTS_QUERY = "afterPostsQuery"

# ── Single post ────────────────────────────────────────────────────────────────
HOOK_BEFORE_POST_RENDER = "beforePostRender"
HOOK_AFTER_POST_RENDER = "afterPostRender"

# ── Master list ───────────────────────────────────────────────────────────────
ALL_HOOKS: list[str] = [
    HOOK_BEFORE_POSTS_QUERY,
    HOOK_AFTER_POSTS_QUERY,
    HOOK_BEFORE_POST_RENDER,
    HOOK_AFTER_POST_RENDER,
]
