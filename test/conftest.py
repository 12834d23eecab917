"""
Pytest configuration and fixtures for Noxion tests
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))  # noqa: PTH100, PTH118, PTH119, PTH120
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))  # noqa: PTH100, PTH120

from noxion.services.content_service import NotionClient  # noqa: E402
from noxion.utils.cache import CacheTTL, ContentCache  # noqa: E402
from utils.notion_fakes import FakeClock, FakeNotionAPI, make_page, make_paragraph  # noqa: E402


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_api():
    """A database with two published posts and one draft."""
    return FakeNotionAPI(
        pages=[
            make_page("page-1", title="Hello World!", tags=["intro", "intro", "notion"]),
            make_page("page-2", title="Second Post", slug="second", date="2024-02-01"),
            make_page("page-3", title="Draft", published=False),
        ],
        blocks={
            "page-1": [make_paragraph("word " * 250, block_id="b1")],
            "page-2": [make_paragraph("Short body.", block_id="b2")],
        },
    )


@pytest.fixture
def content_client(fake_api, clock):
    return NotionClient(
        database_id="db-1",
        api=fake_api,
        cache=ContentCache(ttl=CacheTTL(posts=300, post=600, content=900), clock=clock),
    )
