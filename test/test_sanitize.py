"""
Tests for reader input sanitization
"""

from noxion.utils.sanitize import sanitize_comment, sanitize_email, sanitize_html, sanitize_plain_text


class TestSanitizeComment:
    def test_keeps_basic_formatting(self):
        assert sanitize_comment("<p>Nice <strong>post</strong></p>") == "<p>Nice <strong>post</strong></p>"

    def test_strips_script_tags(self):
        cleaned = sanitize_comment("Hi<script>alert(1)</script>")
        assert "<script>" not in cleaned
        assert cleaned.startswith("Hi")

    def test_strips_disallowed_attributes(self):
        cleaned = sanitize_comment('<a href="https://example.com" onclick="evil()">link</a>')
        assert "onclick" not in cleaned
        assert 'href="https://example.com"' in cleaned

    def test_drops_javascript_links(self):
        cleaned = sanitize_comment('<a href="javascript:alert(1)">x</a>')
        assert "javascript" not in cleaned

    def test_none(self):
        assert sanitize_comment(None) == ""


class TestSanitizePlainText:
    def test_removes_all_tags_and_normalizes_whitespace(self):
        assert sanitize_plain_text("<b>Jane</b>   <i>Doe</i>") == "Jane Doe"

    def test_sanitize_html_strip_mode(self):
        assert sanitize_html("<em>x</em>", strip=True) == "x"


class TestSanitizeEmail:
    def test_lowercases(self):
        assert sanitize_email(" Reader@Example.COM ") == "reader@example.com"

    def test_empty(self):
        assert sanitize_email("") == ""
