from .post import BlogPost
from .comment import Comment, CommentApiResponse, CommentCreate

# Define the public API of this module
__all__ = [
    "BlogPost",
    "Comment",
    "CommentApiResponse",
    "CommentCreate",
]
