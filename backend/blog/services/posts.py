"""
Post lifecycle service.

Mutations always re-read the post inside the same operation and check, in
order: existence (soft-deleted counts as missing), then authorship. Only after
both pass is the update payload validated, so callers learn nothing about a
post they may not touch.
"""

import logging
import math
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from blog.api.validation import ValidationResult, ensure_valid
from blog.core.auth import SessionIdentity
from blog.core.errors import ForbiddenError, NotFoundError, ValidationError
from blog.models.comment import Comment
from blog.models.post import Post
from blog.services import repository
from blog.services.repository import POST_DETAIL_RELATIONS, POST_LIST_RELATIONS

logger = logging.getLogger(__name__)

POST_NOT_FOUND_MESSAGE = "Post not found"


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class PostService:
    """Create, read, update and soft-delete posts; add comments."""

    def __init__(self, db: Session):
        self.db = db

    def list_published(
        self, page: int = 1, limit: int = 10, category_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Published, live posts newest first, with pagination metadata."""
        result = repository.find_posts(
            self.db,
            published=True,
            include_deleted=False,
            category_id=category_id,
            page=page,
            limit=limit,
            relations=POST_LIST_RELATIONS,
        )
        return {
            "posts": result.items,
            "pagination": {
                "page": page,
                "limit": limit,
                "total": result.total,
                "total_pages": total_pages(result.total, limit),
            },
        }

    def get_detail(self, post_id: str) -> Post:
        post = repository.get_post(self.db, post_id, relations=POST_DETAIL_RELATIONS)
        if post is None:
            raise NotFoundError(POST_NOT_FOUND_MESSAGE)
        return post

    def create(self, identity: SessionIdentity, data: Dict[str, Any]) -> Post:
        self._check_category(data.get("category_id"))

        post = repository.create_post(
            self.db,
            author_id=identity.user_id,
            title=data["title"],
            content=data["content"],
            published=data["published"],
            category_id=data.get("category_id"),
        )
        logger.info(f"User {identity.user_id} created post {post.id}")

        return repository.get_post(self.db, post.id, relations=POST_LIST_RELATIONS)

    def update(
        self,
        identity: SessionIdentity,
        post_id: str,
        read_payload: Callable[[], ValidationResult],
    ) -> Post:
        """
        Apply a partial update.

        ``read_payload`` is only called once the caller is known to own a live
        post, so the body of a rejected request is never parsed.
        """
        post = self._get_owned(identity, post_id)

        data = ensure_valid(read_payload())
        if "category_id" in data:
            self._check_category(data["category_id"])

        repository.update_post(self.db, post, data)
        logger.info(
            f"User {identity.user_id} updated post {post_id} "
            f"(fields: {', '.join(sorted(data)) or 'none'})"
        )

        return repository.get_post(self.db, post_id, relations=POST_LIST_RELATIONS)

    def soft_delete(self, identity: SessionIdentity, post_id: str) -> None:
        post = self._get_owned(identity, post_id)
        repository.soft_delete_post(self.db, post)
        logger.info(f"User {identity.user_id} soft-deleted post {post_id}")

    def add_comment(
        self, identity: SessionIdentity, post_id: str, content: str
    ) -> Comment:
        post = repository.get_post(self.db, post_id)
        if post is None:
            raise NotFoundError(POST_NOT_FOUND_MESSAGE)

        comment = repository.create_comment(
            self.db, post_id=post_id, author_id=identity.user_id, content=content
        )
        return repository.get_comment(self.db, comment.id, relations={"author"})

    def _get_owned(self, identity: SessionIdentity, post_id: str) -> Post:
        post = repository.get_post(self.db, post_id, include_deleted=True)
        if post is None or post.is_deleted:
            raise NotFoundError(POST_NOT_FOUND_MESSAGE)
        if post.author_id != identity.user_id:
            logger.warning(
                f"User {identity.user_id} attempted to modify post {post_id} "
                f"owned by {post.author_id}"
            )
            raise ForbiddenError("Only the author can modify this post")
        return post

    def _check_category(self, category_id: Optional[str]) -> None:
        if category_id and repository.get_category(self.db, category_id) is None:
            raise ValidationError("Selected category does not exist")
