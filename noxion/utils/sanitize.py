"""
Reader Input Sanitization

Comments are the only reader-supplied text Noxion stores. Their bodies keep a
small set of inline formatting tags; author names and emails keep none.
"""

import re
from typing import Optional

import bleach
from bleach.sanitizer import Cleaner

ALLOWED_PROTOCOLS = ["http", "https", "mailto"]

COMMENT_TAGS = ["p", "br", "strong", "em", "u", "a", "code"]
COMMENT_ATTRS = {"a": ["href", "title"]}

_WHITESPACE = re.compile(r"\s+")

_comment_cleaner = Cleaner(
    tags=COMMENT_TAGS,
    attributes=COMMENT_ATTRS,
    protocols=ALLOWED_PROTOCOLS,
    strip=True,
)
_text_cleaner = Cleaner(tags=[], strip=True)


def sanitize_html(
    text: Optional[str],
    tags: Optional[list[str]] = None,
    attributes: Optional[dict] = None,
    strip: bool = False,
) -> str:
    """
    Clean an HTML fragment with bleach.

    With strip=True every tag is removed. Otherwise only the given tags and
    attributes survive (comment tags by default) and disallowed tags are
    dropped rather than escaped.
    """
    if text is None:
        return ""
    if strip:
        return _text_cleaner.clean(text)
    if tags is None and attributes is None:
        return _comment_cleaner.clean(text)
    return bleach.clean(
        text,
        tags=tags if tags is not None else COMMENT_TAGS,
        attributes=attributes if attributes is not None else COMMENT_ATTRS,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
    )


def sanitize_plain_text(text: Optional[str]) -> str:
    """Tag-free, single-spaced text for one-line fields such as author names."""
    if text is None:
        return ""
    return _WHITESPACE.sub(" ", _text_cleaner.clean(text)).strip()


def sanitize_comment(text: Optional[str]) -> str:
    return sanitize_html(text).strip()


def sanitize_email(email: Optional[str]) -> str:
    # format is already checked by EmailStr on CommentCreate
    if not email:
        return ""
    return sanitize_plain_text(email).lower()
