from .user import User
from .category import Category
from .post import Post
from .comment import Comment

__all__ = [
    "User",
    "Category",
    "Post",
    "Comment",
]
