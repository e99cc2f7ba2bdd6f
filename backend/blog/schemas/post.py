from datetime import datetime
from typing import List, Optional
from .base import ApiModel
from .category import Category
from .comment import Comment
from .user import UserPublic


class Post(ApiModel):
    id: str
    title: str
    content: str
    published: bool
    author_id: str
    category_id: Optional[str] = None
    author: UserPublic
    category: Optional[Category] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None


class PostDetail(Post):
    """Post with its comments, newest first."""

    comments: List[Comment] = []


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class PostList(ApiModel):
    posts: List[Post]
    pagination: Pagination


class PostEnvelope(ApiModel):
    post: Post


class PostDetailEnvelope(ApiModel):
    post: PostDetail
