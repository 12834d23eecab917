from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CommentCreate(BaseModel):
    author: str = Field(..., min_length=1, max_length=100, description="Display name of the commenter.")
    email: EmailStr = Field(..., description="A valid email address.")
    content: str = Field(..., min_length=1, max_length=5000, description="Comment body; basic HTML allowed.")
    parent_id: Optional[str] = Field(None, alias="parentId", description="Id of the comment being replied to.")

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class Comment(BaseModel):
    id: str
    blog_id: str = Field(..., alias="blogId")
    post_slug: str = Field(..., alias="postSlug")
    author: str
    email: str
    content: str
    approved: bool = False
    parent_id: Optional[str] = Field(None, alias="parentId")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    model_config = ConfigDict(populate_by_name=True)


class CommentApiResponse(BaseModel):
    success: bool
    comment: Optional[Comment] = None
    comments: Optional[list[Comment]] = None
    message: Optional[str] = None
    error: Optional[str] = None
