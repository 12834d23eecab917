from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class BlogPost(BaseModel):
    """
    A validated blog post derived from a Notion page.

    Instances are only ever built by ``create_safe_blog_post`` and are
    immutable once constructed.
    """

    id: str = Field(..., min_length=1, title="Post ID", description="The Notion page id.")
    title: str = Field(..., min_length=1, title="Title")
    slug: str = Field(..., min_length=1, title="Slug", description="URL-safe, lowercase, hyphen-separated.")
    summary: str = Field("", title="Summary")
    published: bool = Field(..., title="Published")
    date: str = Field(..., title="Date", description="ISO-8601 publication date.")
    tags: list[str] = Field(default_factory=list, title="Tags")
    cover: Optional[str] = Field(None, title="Cover", description="Absolute URL of the cover image.")
    content: str = Field("", title="Content", description="Markdown body; empty when unavailable.")
    last_edited_time: str = Field(..., alias="lastEditedTime", title="Last Edited Time")
    reading_time: int = Field(1, ge=1, alias="readingTime", title="Reading Time", description="Minutes.")
    comment_count: Optional[int] = Field(
        None,
        ge=0,
        alias="commentCount",
        description="Set by the comments plugin when it is enabled for the blog.",
    )

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "5f1c2b9e-0d4c-4a5e-9f7e-1b2c3d4e5f60",
                "title": "Hello World",
                "slug": "hello-world",
                "summary": "A first post.",
                "published": True,
                "date": "2024-01-15",
                "tags": ["intro"],
                "cover": "https://images.example.com/cover.png",
                "content": "# Hello\n\nWelcome to the blog.",
                "lastEditedTime": "2024-01-16T09:30:00.000Z",
                "readingTime": 1,
            }
        },
    )
