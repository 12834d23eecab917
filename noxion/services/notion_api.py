"""
Notion REST API transport.

Thin async wrapper over the two Notion endpoints the content pipeline needs:
database query and block children listing. Every HTTP or transport failure
surfaces as NotionAPIError.
"""

import logging
from typing import Any

import httpx

from noxion.config import settings
from noxion.exceptions import ErrorCode, NotionAPIError

logger = logging.getLogger(__name__)

# Notion caps page_size at 100 for both endpoints
PAGE_SIZE = 100


class NotionAPI:
    """Async client for the Notion API authenticated with an integration token."""

    def __init__(
        self,
        token: str,
        client: httpx.AsyncClient | None = None,
        base_url: str | None = None,
        notion_version: str | None = None,
        timeout: float | None = None,
    ):
        self._token = token
        self._base_url = (base_url or settings.notion_api_url).rstrip("/")
        self._notion_version = notion_version or settings.notion_version
        self._timeout = timeout if timeout is not None else settings.notion_timeout_seconds
        self._client = client
        self._owns_client = client is None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Notion-Version": self._notion_version,
            "Content-Type": "application/json",
        }

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def _request(self, method: str, path: str, code: ErrorCode, **kwargs: Any) -> dict[str, Any]:
        url = f"{self._base_url}/{path.lstrip('/')}"
        try:
            response = await self._get_client().request(method, url, headers=self.headers, **kwargs)
        except httpx.TimeoutException as exc:
            raise NotionAPIError("Notion API request timed out", code=code, original_error=exc) from exc
        except httpx.RequestError as exc:
            raise NotionAPIError(f"Notion API request error: {exc}", code=code, original_error=exc) from exc

        if response.status_code >= 400:
            message = response.text[:500]
            try:
                message = response.json().get("message", message)
            except (ValueError, AttributeError):
                pass
            logger.warning("Notion API %s %s returned %d: %s", method, path, response.status_code, message)
            raise NotionAPIError(
                f"Notion API returned {response.status_code}: {message}",
                code=code,
                upstream_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise NotionAPIError("Notion API returned invalid JSON", code=code, original_error=exc) from exc

    async def query_database(
        self,
        database_id: str,
        filter: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
        start_cursor: str | None = None,
        page_size: int = PAGE_SIZE,
    ) -> dict[str, Any]:
        """POST /databases/{id}/query and return the raw list envelope."""
        body: dict[str, Any] = {"page_size": page_size}
        if filter is not None:
            body["filter"] = filter
        if sorts is not None:
            body["sorts"] = sorts
        if start_cursor:
            body["start_cursor"] = start_cursor
        return await self._request("POST", f"databases/{database_id}/query", ErrorCode.DATABASE_QUERY_ERROR, json=body)

    async def list_block_children(
        self,
        block_id: str,
        start_cursor: str | None = None,
        page_size: int = PAGE_SIZE,
    ) -> dict[str, Any]:
        """GET /blocks/{id}/children and return the raw list envelope."""
        params: dict[str, Any] = {"page_size": page_size}
        if start_cursor:
            params["start_cursor"] = start_cursor
        return await self._request("GET", f"blocks/{block_id}/children", ErrorCode.PAGE_CONTENT_ERROR, params=params)
