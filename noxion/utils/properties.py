"""
Notion Property Access

All branching on the Notion property schema lives here. The rest of the
system works against typed values returned by NotionPropertyAccessor.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from noxion.utils.validation import utc_now_iso


class PropertyType(str, Enum):
    """Property kinds the accessor knows how to read."""

    TITLE = "title"
    RICH_TEXT = "rich_text"
    SELECT = "select"
    MULTI_SELECT = "multi_select"
    CHECKBOX = "checkbox"
    NUMBER = "number"
    DATE = "date"
    CREATED_TIME = "created_time"
    LAST_EDITED_TIME = "last_edited_time"
    URL = "url"
    EMAIL = "email"
    PHONE_NUMBER = "phone_number"

    @classmethod
    def of(cls, prop: Any) -> PropertyType | None:
        """Return the kind of a raw property, or None if unknown or malformed."""
        if not isinstance(prop, Mapping):
            return None
        try:
            return cls(prop.get("type"))
        except ValueError:
            return None


STRING_KINDS = frozenset(
    {
        PropertyType.TITLE,
        PropertyType.RICH_TEXT,
        PropertyType.SELECT,
        PropertyType.URL,
        PropertyType.EMAIL,
        PropertyType.PHONE_NUMBER,
    }
)
DATE_KINDS = frozenset({PropertyType.DATE, PropertyType.CREATED_TIME, PropertyType.LAST_EDITED_TIME})


def plain_text(rich_text: Any, default: str = "") -> str:
    """Join the plain_text of a Notion rich text array."""
    if not isinstance(rich_text, list):
        return default
    text = "".join(
        part.get("plain_text") or "" for part in rich_text if isinstance(part, Mapping) and isinstance(part.get("plain_text", ""), str)
    ).strip()
    return text or default


def _option_name(option: Any) -> str:
    if isinstance(option, Mapping) and isinstance(option.get("name"), str):
        return option["name"]
    return ""


class NotionPropertyAccessor:
    """Type-safe reads from a page's property bag; every getter has a default and never raises."""

    def __init__(self, properties: Mapping[str, Any] | None):
        self._properties: Mapping[str, Any] = properties if isinstance(properties, Mapping) else {}

    def _lookup(self, key: str) -> tuple[PropertyType | None, Mapping[str, Any]]:
        prop = self._properties.get(key)
        kind = PropertyType.of(prop)
        return kind, prop if kind is not None else {}

    def get_string(self, key: str, default: str = "") -> str:
        kind, prop = self._lookup(key)
        if kind not in STRING_KINDS:
            return default

        if kind in (PropertyType.TITLE, PropertyType.RICH_TEXT):
            return plain_text(prop.get(kind.value), default)
        if kind is PropertyType.SELECT:
            return _option_name(prop.get("select")) or default

        value = prop.get(kind.value)
        return value.strip() or default if isinstance(value, str) else default

    def get_boolean(self, key: str, default: bool = False) -> bool:
        kind, prop = self._lookup(key)
        if kind is PropertyType.CHECKBOX and isinstance(prop.get("checkbox"), bool):
            return prop["checkbox"]
        return default

    def get_number(self, key: str, default: float = 0) -> float:
        kind, prop = self._lookup(key)
        value = prop.get("number")
        if kind is PropertyType.NUMBER and isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        return default

    def get_string_array(self, key: str, default: list[str] | None = None) -> list[str]:
        fallback = list(default) if default is not None else []
        kind, prop = self._lookup(key)

        if kind is PropertyType.MULTI_SELECT:
            options = prop.get("multi_select")
            if not isinstance(options, list):
                return fallback
            return [name for name in (_option_name(option) for option in options) if name]
        if kind in (PropertyType.TITLE, PropertyType.RICH_TEXT):
            text = plain_text(prop.get(kind.value))
            return [text] if text else fallback
        return fallback

    def get_date(self, key: str, default: str | None = None) -> str:
        """Return an ISO-8601 string; falls back to default, then to now."""
        fallback = default or utc_now_iso()
        kind, prop = self._lookup(key)
        if kind not in DATE_KINDS:
            return fallback

        if kind is PropertyType.DATE:
            value = prop.get("date")
            start = value.get("start") if isinstance(value, Mapping) else None
            return start if isinstance(start, str) and start else fallback

        value = prop.get(kind.value)
        return value if isinstance(value, str) and value else fallback

    def has(self, key: str) -> bool:
        """True if key exists with a known property kind."""
        return PropertyType.of(self._properties.get(key)) is not None
