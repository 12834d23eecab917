"""
Notion Response Validation & Sanitization

Type guards for raw Notion payloads, sanitizers that coerce arbitrary input
into safe primitives, and the safe blog post constructor used by the content
client. Sanitizers never raise; they substitute a default on any mismatch.
"""

import math
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urlparse

from noxion.exceptions import DataValidationError, ErrorCode
from noxion.schemas.post import BlogPost
from noxion.utils.slugify import slugify


def utc_now_iso() -> str:
    """Current instant as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ── Type guards ───────────────────────────────────────────────────────────────


def is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and len(value.strip()) > 0


def is_valid_date_string(value: Any) -> bool:
    """True if value is an ISO-8601 date or datetime string."""
    if not is_non_empty_string(value):
        return False
    try:
        datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return False
    return True


def is_valid_url(value: Any) -> bool:
    """True if value parses as an absolute URL with a scheme and host."""
    if not is_non_empty_string(value) or any(ch.isspace() for ch in value.strip()):
        return False
    try:
        parsed = urlparse(value.strip())
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(parsed.netloc)


def is_string_array(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def validate_notion_property(prop: Any) -> bool:
    return isinstance(prop, Mapping) and isinstance(prop.get("id"), str) and isinstance(prop.get("type"), str)


def validate_notion_page(page: Any) -> bool:
    """Check that a raw object has the minimum shape of a Notion page."""
    if not isinstance(page, Mapping):
        return False
    return (
        isinstance(page.get("id"), str)
        and isinstance(page.get("created_time"), str)
        and isinstance(page.get("last_edited_time"), str)
        and isinstance(page.get("archived"), bool)
        and isinstance(page.get("properties"), Mapping)
    )


def validate_database_response(response: Any) -> bool:
    """Check the list envelope returned by a database query. Pages are checked one by one by the caller."""
    if not isinstance(response, Mapping):
        return False
    results = response.get("results")
    return (
        response.get("object") == "list"
        and isinstance(results, list)
        and isinstance(response.get("has_more"), bool)
    )


def validate_blog_post(post: Any) -> bool:
    """
    Check a mapping against the full blog post contract.

    Accepts either the camelCase keys used on the wire or the snake_case
    attribute names.
    """
    if isinstance(post, BlogPost):
        post = post.model_dump(by_alias=True)
    if not isinstance(post, Mapping):
        return False

    last_edited = post.get("lastEditedTime", post.get("last_edited_time"))
    reading_time = post.get("readingTime", post.get("reading_time"))
    cover = post.get("cover")
    return (
        is_non_empty_string(post.get("id"))
        and is_non_empty_string(post.get("title"))
        and is_non_empty_string(post.get("slug"))
        and slugify(post.get("slug")) == post.get("slug")
        and isinstance(post.get("published"), bool)
        and is_valid_date_string(post.get("date"))
        and is_valid_date_string(last_edited)
        and is_string_array(post.get("tags"))
        and isinstance(post.get("summary"), str)
        and isinstance(post.get("content"), str)
        and isinstance(reading_time, int)
        and not isinstance(reading_time, bool)
        and reading_time >= 1
        and (cover is None or is_valid_url(cover))
    )


# ── Sanitizers ────────────────────────────────────────────────────────────────


def sanitize_string(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value.strip()
    return default


def sanitize_boolean(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    return default


def sanitize_number(value: Any, default: float = 0) -> float:
    """Return a finite number; numeric strings are parsed."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else default
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return default
        if not math.isfinite(parsed):
            return default
        return int(parsed) if parsed.is_integer() else parsed
    return default


def sanitize_array(
    value: Any,
    item_validator: Callable[[Any], bool] = lambda item: isinstance(item, str),
    default: Optional[list] = None,
) -> list:
    if isinstance(value, (list, tuple)):
        return [item for item in value if item_validator(item)]
    return list(default) if default is not None else []


def sanitize_date(value: Any, default: Optional[str] = None) -> str:
    if is_valid_date_string(value):
        return value.strip()
    if default is not None and is_valid_date_string(default):
        return default.strip()
    return utc_now_iso()


def sanitize_url(value: Any) -> Optional[str]:
    if is_valid_url(value):
        return value.strip()
    return None


def _sanitize_reading_time(value: Any) -> int:
    minutes = sanitize_number(value, 1)
    return max(1, math.ceil(minutes))


def _dedupe(items: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for item in items:
        if item and item not in seen:
            seen[item] = None
    return list(seen)


# ── Safe post construction ────────────────────────────────────────────────────


def create_safe_blog_post(data: Any) -> BlogPost:
    """
    Build a BlogPost from potentially invalid data.

    Every field is passed through its sanitizer, then the assembled mapping is
    re-validated against the blog post contract.

    Raises:
        DataValidationError: if the sanitized mapping still fails validation.
    """
    raw: Mapping[str, Any] = data if isinstance(data, Mapping) else {}

    safe = {
        "id": sanitize_string(raw.get("id"), "unknown") or "unknown",
        "title": sanitize_string(raw.get("title"), "Untitled") or "Untitled",
        "slug": slugify(sanitize_string(raw.get("slug"))) or "untitled",
        "summary": sanitize_string(raw.get("summary")),
        "published": sanitize_boolean(raw.get("published")),
        "date": sanitize_date(raw.get("date")),
        "tags": _dedupe([tag.strip() for tag in sanitize_array(raw.get("tags"))]),
        "cover": sanitize_url(raw.get("cover")),
        "content": sanitize_string(raw.get("content")),
        "lastEditedTime": sanitize_date(raw.get("lastEditedTime", raw.get("last_edited_time"))),
        "readingTime": _sanitize_reading_time(raw.get("readingTime", raw.get("reading_time"))),
    }

    if not validate_blog_post(safe):
        title = raw.get("title") or "unknown"
        raise DataValidationError(
            f"Invalid blog post data structure for post: {title}",
            code=ErrorCode.INVALID_BLOG_POST,
            payload=data,
        )

    return BlogPost.model_validate(safe)


def validate_notion_response(response: Any, validator: Callable[[Any], bool], context: str) -> Any:
    """Return response unchanged, or raise DataValidationError if validator rejects it."""
    if not validator(response):
        raise DataValidationError(
            f"Invalid Notion API response structure in {context}",
            code=ErrorCode.INVALID_NOTION_RESPONSE,
            payload=response,
        )
    return response
