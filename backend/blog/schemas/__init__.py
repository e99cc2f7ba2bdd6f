from blog.schemas.base import ApiModel, MessageResponse
from blog.schemas.user import (
    UserPublic,
    UserProfile,
    UserEnvelope,
    UserProfileEnvelope,
)
from blog.schemas.category import (
    Category,
    CategoryWithCount,
    CategoryList,
    CategoryEnvelope,
)
from blog.schemas.comment import Comment, CommentEnvelope
from blog.schemas.post import (
    Post,
    PostDetail,
    Pagination,
    PostList,
    PostEnvelope,
    PostDetailEnvelope,
)

__all__ = [
    "ApiModel",
    "MessageResponse",
    "UserPublic",
    "UserProfile",
    "UserEnvelope",
    "UserProfileEnvelope",
    "Category",
    "CategoryWithCount",
    "CategoryList",
    "CategoryEnvelope",
    "Comment",
    "CommentEnvelope",
    "Post",
    "PostDetail",
    "Pagination",
    "PostList",
    "PostEnvelope",
    "PostDetailEnvelope",
]
