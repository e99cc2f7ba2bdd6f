from datetime import datetime
from .base import ApiModel
from .user import UserPublic


class Comment(ApiModel):
    id: str
    content: str
    post_id: str
    author_id: str
    author: UserPublic
    created_at: datetime
    updated_at: datetime


class CommentEnvelope(ApiModel):
    comment: Comment
