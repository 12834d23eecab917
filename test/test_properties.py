"""
Tests for NotionPropertyAccessor
"""

import pytest

from noxion.utils.properties import NotionPropertyAccessor, PropertyType, plain_text
from utils.notion_fakes import rich_text

PROPERTIES = {
    "Title": {"id": "t", "type": "title", "title": rich_text("  My Post  ")},
    "Summary": {"id": "s", "type": "rich_text", "rich_text": rich_text("Hello ") + rich_text("there")},
    "Status": {"id": "st", "type": "select", "select": {"name": "Live"}},
    "Empty Select": {"id": "es", "type": "select", "select": None},
    "Published": {"id": "p", "type": "checkbox", "checkbox": True},
    "Views": {"id": "v", "type": "number", "number": 42},
    "Tags": {"id": "tg", "type": "multi_select", "multi_select": [{"name": "a"}, {"name": "b"}, {"bad": 1}]},
    "Date": {"id": "d", "type": "date", "date": {"start": "2024-01-15"}},
    "No Date": {"id": "nd", "type": "date", "date": None},
    "Created": {"id": "c", "type": "created_time", "created_time": "2024-01-10T08:00:00.000Z"},
    "Link": {"id": "l", "type": "url", "url": "https://example.com"},
    "Weird": {"id": "w", "type": "formula", "formula": {}},
}


@pytest.fixture
def accessor():
    return NotionPropertyAccessor(PROPERTIES)


class TestPropertyType:
    def test_known_kind(self):
        assert PropertyType.of(PROPERTIES["Title"]) is PropertyType.TITLE

    def test_unknown_kind(self):
        assert PropertyType.of(PROPERTIES["Weird"]) is None
        assert PropertyType.of("not a mapping") is None


class TestPlainText:
    def test_joins_and_strips(self):
        assert plain_text(rich_text(" a") + rich_text("b ")) == "ab"

    def test_default_for_non_list(self):
        assert plain_text(None, "x") == "x"


class TestGetString:
    def test_title(self, accessor):
        assert accessor.get_string("Title") == "My Post"

    def test_rich_text_concatenated(self, accessor):
        assert accessor.get_string("Summary") == "Hello there"

    def test_select(self, accessor):
        assert accessor.get_string("Status") == "Live"
        assert accessor.get_string("Empty Select", "none") == "none"

    def test_url(self, accessor):
        assert accessor.get_string("Link") == "https://example.com"

    def test_wrong_kind_returns_default(self, accessor):
        assert accessor.get_string("Published", "fallback") == "fallback"

    def test_missing_key(self, accessor):
        assert accessor.get_string("Nope") == ""


class TestOtherGetters:
    def test_boolean(self, accessor):
        assert accessor.get_boolean("Published") is True
        assert accessor.get_boolean("Title", default=True) is True

    def test_number(self, accessor):
        assert accessor.get_number("Views") == 42
        assert accessor.get_number("Title", 5) == 5

    def test_string_array_from_multi_select(self, accessor):
        assert accessor.get_string_array("Tags") == ["a", "b"]

    def test_string_array_from_text(self, accessor):
        assert accessor.get_string_array("Title") == ["My Post"]

    def test_string_array_default_is_copied(self, accessor):
        default = ["x"]
        result = accessor.get_string_array("Nope", default)
        result.append("y")
        assert default == ["x"]

    def test_date(self, accessor):
        assert accessor.get_date("Date") == "2024-01-15"
        assert accessor.get_date("Created") == "2024-01-10T08:00:00.000Z"

    def test_date_falls_back_to_default(self, accessor):
        assert accessor.get_date("No Date", "2020-01-01") == "2020-01-01"
        assert accessor.get_date("Title", "2020-01-01") == "2020-01-01"

    def test_date_falls_back_to_now(self, accessor):
        assert accessor.get_date("Nope").endswith("Z")

    def test_has(self, accessor):
        assert accessor.has("Title")
        assert not accessor.has("Weird")
        assert not accessor.has("Nope")

    def test_non_mapping_properties(self):
        accessor = NotionPropertyAccessor(None)
        assert accessor.get_string("Title", "d") == "d"
        assert accessor.get_boolean("Published") is False
