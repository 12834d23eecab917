"""
Custom Exception Classes for Noxion

This module defines the error taxonomy shared by the content pipeline and
the plugin runtime:

    NotionAPIError       upstream unreachable or rejected the request
    DataValidationError  a record could not be coerced into the post shape
    PluginError          plugin lifecycle failures (duplicate, dependency, lookup)
    BlogNotFoundError    unknown tenant id
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from fastapi import status

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Machine-readable error codes carried by every NoxionError."""

    NOTION_API_ERROR = "NOTION_API_ERROR"
    DATABASE_QUERY_ERROR = "DATABASE_QUERY_ERROR"
    PAGE_CONTENT_ERROR = "PAGE_CONTENT_ERROR"
    DATA_VALIDATION_ERROR = "DATA_VALIDATION_ERROR"
    INVALID_BLOG_POST = "INVALID_BLOG_POST"
    INVALID_NOTION_RESPONSE = "INVALID_NOTION_RESPONSE"
    PLUGIN_ERROR = "PLUGIN_ERROR"
    PLUGIN_ALREADY_REGISTERED = "PLUGIN_ALREADY_REGISTERED"
    PLUGIN_DEPENDENCY_MISSING = "PLUGIN_DEPENDENCY_MISSING"
    PLUGIN_NOT_FOUND = "PLUGIN_NOT_FOUND"
    BLOG_NOT_FOUND = "BLOG_NOT_FOUND"
    BLOG_MISCONFIGURED = "BLOG_MISCONFIGURED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class NoxionError(Exception):
    """Base exception class for all Noxion exceptions"""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str = ErrorCode.UNKNOWN_ERROR,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc)
        super().__init__(self.message)


# ============================================================================
# Content Pipeline Exceptions
# ============================================================================


class NotionAPIError(NoxionError):
    """Raised when the Notion API is unreachable or rejects a request"""

    def __init__(
        self,
        message: str = "Notion API request failed",
        code: ErrorCode | str = ErrorCode.NOTION_API_ERROR,
        original_error: BaseException | None = None,
        upstream_status: int | None = None,
    ):
        details: dict[str, Any] = {}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        if original_error is not None:
            details["original_error"] = str(original_error)
        super().__init__(message=message, code=code, status_code=status.HTTP_502_BAD_GATEWAY, details=details)
        self.original_error = original_error
        self.upstream_status = upstream_status


class DataValidationError(NoxionError):
    """Raised when a record fails to coerce into the blog post shape"""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str = ErrorCode.DATA_VALIDATION_ERROR,
        payload: Any = None,
    ):
        super().__init__(message=message, code=code, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)
        self.payload = payload


# ============================================================================
# Plugin Exceptions
# ============================================================================


class PluginError(NoxionError):
    """Base class for plugin lifecycle errors"""

    def __init__(
        self,
        message: str,
        plugin_name: str,
        code: ErrorCode | str = ErrorCode.PLUGIN_ERROR,
        status_code: int = status.HTTP_400_BAD_REQUEST,
    ):
        super().__init__(message=message, code=code, status_code=status_code, details={"plugin": plugin_name})
        self.plugin_name = plugin_name


class PluginAlreadyRegisteredError(PluginError):
    """Raised when a plugin name is registered twice in one registry"""

    def __init__(self, plugin_name: str):
        super().__init__(
            message=f"Plugin {plugin_name} is already registered",
            plugin_name=plugin_name,
            code=ErrorCode.PLUGIN_ALREADY_REGISTERED,
            status_code=status.HTTP_409_CONFLICT,
        )


class PluginDependencyError(PluginError):
    """Raised when a plugin depends on a plugin that is not registered yet"""

    def __init__(self, plugin_name: str, dependency: str):
        super().__init__(
            message=f"Plugin {plugin_name} depends on {dependency} which is not registered",
            plugin_name=plugin_name,
            code=ErrorCode.PLUGIN_DEPENDENCY_MISSING,
        )
        self.dependency = dependency
        self.details["dependency"] = dependency


class PluginNotFoundError(PluginError):
    """Raised when a plugin name cannot be resolved"""

    def __init__(self, plugin_name: str, blog_id: str | None = None):
        message = f"Plugin {plugin_name} not found"
        if blog_id is not None:
            message = f"Plugin {plugin_name} not found for blog {blog_id}"
        super().__init__(
            message=message,
            plugin_name=plugin_name,
            code=ErrorCode.PLUGIN_NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
        )


# ============================================================================
# Tenant Exceptions
# ============================================================================


class BlogNotFoundError(NoxionError):
    """Raised when a blog id has not been initialized"""

    def __init__(self, blog_id: str):
        super().__init__(
            message=f"Blog {blog_id} not found",
            code=ErrorCode.BLOG_NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"blog_id": blog_id},
        )
        self.blog_id = blog_id


class BlogConfigurationError(NoxionError):
    """Raised when a blog is missing the credentials it needs"""

    def __init__(self, blog_id: str, message: str | None = None):
        super().__init__(
            message=message or f"No Notion client configured for blog {blog_id}",
            code=ErrorCode.BLOG_MISCONFIGURED,
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"blog_id": blog_id},
        )
        self.blog_id = blog_id


# ============================================================================
# Helpers
# ============================================================================


def log_error(error: BaseException | Any, context: str, **info: Any) -> None:
    """Log an error with its context in a consistent structured format."""
    if isinstance(error, BaseException):
        error_info: Any = {"name": type(error).__name__, "message": str(error)}
        if isinstance(error, NoxionError):
            error_info["code"] = error.code
    else:
        error_info = error
    logger.error(
        "Application error in %s: %s",
        context,
        {"error": error_info, **info},
        exc_info=error if isinstance(error, BaseException) else None,
    )


def get_user_friendly_error_message(error: BaseException | Any, production: bool = False) -> str:
    """Return a message that is safe to show to readers of a blog."""
    if isinstance(error, NotionAPIError):
        return "Unable to load content from Notion. Please try again later."

    if isinstance(error, DataValidationError):
        return "The content format is invalid. Please check the source."

    if isinstance(error, Exception):
        if production:
            return "Something went wrong. Please try again later."
        return str(error)

    return "An unexpected error occurred. Please try again later."
