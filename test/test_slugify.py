"""
Tests for slugify utility function
"""

from noxion.utils.slugify import matches_slug, post_slug, slugify


class TestSlugify:
    """URL slug generation from titles"""

    def test_simple_string(self):
        assert slugify("Hello World") == "hello-world"

    def test_punctuation_is_trimmed(self):
        assert slugify("Hello World!") == "hello-world"
        assert slugify("Price: $99.99") == "price-99-99"

    def test_accented_characters(self):
        assert slugify("Café Résumé") == "cafe-resume"

    def test_multiple_separators_collapse(self):
        assert slugify("Too   Many --- Dashes") == "too-many-dashes"

    def test_empty_and_symbol_only(self):
        assert slugify("") == ""
        assert slugify("!!!") == ""

    def test_non_string_input(self):
        assert slugify(None) == ""
        assert slugify(123) == ""


class TestPostSlug:
    """Explicit slug vs title fallback"""

    def test_explicit_slug_wins(self):
        assert post_slug("My Custom Slug", "Some Title") == "my-custom-slug"

    def test_title_used_when_explicit_empty(self):
        assert post_slug("", "Hello World!") == "hello-world"
        assert post_slug(None, "Hello World!") == "hello-world"
        assert post_slug("???", "Hello World!") == "hello-world"

    def test_matches_either_form(self):
        assert matches_slug("second", "second", "Second Post")
        assert matches_slug("second-post", "second", "Second Post")
        assert not matches_slug("third", "second", "Second Post")
        assert not matches_slug("", "", "")
