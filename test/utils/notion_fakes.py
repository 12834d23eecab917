"""
Fakes for exercising the content pipeline without the network

- make_page(): build a raw Notion page object
- make_paragraph(): build a paragraph block
- FakeNotionAPI: in-memory transport with call recording and failure injection
- FakeClock: manually advanced monotonic clock for cache tests
"""

from __future__ import annotations

from typing import Any, Optional

from noxion.exceptions import NotionAPIError


def rich_text(text: str) -> list[dict[str, Any]]:
    return [{"type": "text", "plain_text": text, "annotations": {}, "href": None}]


def make_page(
    page_id: str,
    title: Optional[str] = "Hello World!",
    slug: Optional[str] = None,
    published: bool = True,
    date: Optional[str] = "2024-01-15",
    tags: Optional[list[str]] = None,
    summary: Optional[str] = None,
    cover_url: Optional[str] = None,
    **extra_properties: Any,
) -> dict[str, Any]:
    properties: dict[str, Any] = {
        "Published": {"id": "pub", "type": "checkbox", "checkbox": published},
    }
    if title is not None:
        properties["Title"] = {"id": "title", "type": "title", "title": rich_text(title)}
    if slug is not None:
        properties["Slug"] = {"id": "slug", "type": "rich_text", "rich_text": rich_text(slug)}
    if date is not None:
        properties["Date"] = {"id": "date", "type": "date", "date": {"start": date}}
    if tags is not None:
        properties["Tags"] = {
            "id": "tags",
            "type": "multi_select",
            "multi_select": [{"name": tag} for tag in tags],
        }
    if summary is not None:
        properties["Summary"] = {"id": "summary", "type": "rich_text", "rich_text": rich_text(summary)}
    properties.update(extra_properties)

    page: dict[str, Any] = {
        "object": "page",
        "id": page_id,
        "created_time": "2024-01-10T08:00:00.000Z",
        "last_edited_time": "2024-01-16T09:30:00.000Z",
        "archived": False,
        "properties": properties,
    }
    if cover_url is not None:
        page["cover"] = {"type": "external", "external": {"url": cover_url}}
    return page


def make_paragraph(text: str, block_id: str = "block", has_children: bool = False) -> dict[str, Any]:
    return {
        "object": "block",
        "id": block_id,
        "type": "paragraph",
        "has_children": has_children,
        "paragraph": {"rich_text": rich_text(text)},
    }


def list_envelope(results: list[Any], has_more: bool = False, next_cursor: Optional[str] = None) -> dict[str, Any]:
    return {"object": "list", "results": results, "has_more": has_more, "next_cursor": next_cursor}


class FakeNotionAPI:
    """
    Transport double for NotionClient.

    pages:  every page in the database; query_database applies the Published
            and Slug filters the client sends.
    blocks: block id → list of child blocks.
    """

    def __init__(
        self,
        pages: Optional[list[dict[str, Any]]] = None,
        blocks: Optional[dict[str, list[dict[str, Any]]]] = None,
    ):
        self.pages = pages or []
        self.blocks = blocks or {}
        self.query_calls: list[dict[str, Any]] = []
        self.block_calls: list[str] = []
        self.fail_queries = False
        self.fail_blocks_for: set[str] = set()
        self.closed = False

    async def query_database(self, database_id, filter=None, sorts=None, start_cursor=None):
        self.query_calls.append({"database_id": database_id, "filter": filter, "sorts": sorts})
        if self.fail_queries:
            raise NotionAPIError("boom", upstream_status=500)

        results = [page for page in self.pages if self._matches(page, filter)]
        return list_envelope(results)

    async def list_block_children(self, block_id, start_cursor=None):
        self.block_calls.append(block_id)
        if block_id in self.fail_blocks_for:
            raise NotionAPIError("blocks unavailable", upstream_status=502)
        return list_envelope(self.blocks.get(block_id, []))

    async def aclose(self):
        self.closed = True

    @staticmethod
    def _matches(page: dict[str, Any], filter: Optional[dict[str, Any]]) -> bool:
        if not filter:
            return True
        clauses = filter.get("and", [filter])
        properties = page.get("properties", {})
        for clause in clauses:
            prop = properties.get(clause["property"], {})
            if "checkbox" in clause and prop.get("checkbox") != clause["checkbox"]["equals"]:
                return False
            if "rich_text" in clause:
                text = "".join(part["plain_text"] for part in prop.get("rich_text", []))
                if text != clause["rich_text"]["equals"]:
                    return False
        return True


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
