"""
URL slugs for posts

Explicit Slug properties and titles go through the same transform, so a post
can be requested by either form.
"""

import re

from unidecode import unidecode

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def slugify(text):
    """ASCII, lowercase, hyphen separated. Anything that is not a string gives ""."""
    if not isinstance(text, str):
        return ""
    return _NON_ALNUM.sub("-", unidecode(text).lower()).strip("-")


def post_slug(explicit, title):
    """The slugified explicit slug, or the title's slug when that is empty."""
    return slugify(explicit) or slugify(title)


def matches_slug(slug, explicit, title):
    if not slug:
        return False
    return slug in (slugify(explicit), slugify(title))
