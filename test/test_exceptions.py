"""
Tests for custom exception classes

Tests exception initialization, messages, status codes, and details.
"""

from fastapi import status

from noxion.exceptions import (
    BlogConfigurationError,
    BlogNotFoundError,
    DataValidationError,
    ErrorCode,
    NotionAPIError,
    NoxionError,
    PluginAlreadyRegisteredError,
    PluginDependencyError,
    PluginNotFoundError,
    get_user_friendly_error_message,
    log_error,
)


class TestNoxionError:
    """Test base NoxionError class"""

    def test_defaults(self):
        exc = NoxionError("Test error")
        assert str(exc) == "Test error"
        assert exc.code == "UNKNOWN_ERROR"
        assert exc.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert exc.details == {}

    def test_enum_code_stored_as_value(self):
        exc = NoxionError("x", code=ErrorCode.INTERNAL_ERROR)
        assert exc.code == "INTERNAL_ERROR"


class TestContentErrors:
    def test_notion_api_error_details(self):
        cause = ConnectionError("refused")
        exc = NotionAPIError("query failed", code=ErrorCode.DATABASE_QUERY_ERROR, original_error=cause, upstream_status=503)

        assert exc.code == "DATABASE_QUERY_ERROR"
        assert exc.status_code == status.HTTP_502_BAD_GATEWAY
        assert exc.details == {"upstream_status": 503, "original_error": "refused"}
        assert exc.original_error is cause

    def test_data_validation_error(self):
        exc = DataValidationError("bad", payload={"id": 1})
        assert exc.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert exc.payload == {"id": 1}


class TestPluginErrors:
    def test_already_registered(self):
        exc = PluginAlreadyRegisteredError("comments")
        assert exc.status_code == status.HTTP_409_CONFLICT
        assert exc.details == {"plugin": "comments"}

    def test_dependency(self):
        exc = PluginDependencyError("seo", "analytics")
        assert exc.dependency == "analytics"
        assert exc.details["dependency"] == "analytics"
        assert "analytics" in exc.message

    def test_not_found_with_blog(self):
        assert PluginNotFoundError("x").message == "Plugin x not found"
        assert PluginNotFoundError("x", blog_id="b").message == "Plugin x not found for blog b"


class TestBlogErrors:
    def test_blog_not_found(self):
        exc = BlogNotFoundError("acme")
        assert exc.status_code == status.HTTP_404_NOT_FOUND
        assert exc.blog_id == "acme"

    def test_blog_configuration(self):
        exc = BlogConfigurationError("acme")
        assert exc.code == "BLOG_MISCONFIGURED"
        assert "acme" in exc.message


class TestHelpers:
    def test_user_friendly_messages(self):
        assert "Notion" in get_user_friendly_error_message(NotionAPIError())
        assert "format" in get_user_friendly_error_message(DataValidationError("bad"))
        assert get_user_friendly_error_message(ValueError("raw detail")) == "raw detail"
        assert "raw" not in get_user_friendly_error_message(ValueError("raw detail"), production=True)
        assert "unexpected" in get_user_friendly_error_message("not an exception")

    def test_log_error_never_raises(self, caplog):
        log_error(NotionAPIError(), "context", blog_id="b")
        log_error({"weird": True}, "context")

        assert "Application error in context" in caplog.text
