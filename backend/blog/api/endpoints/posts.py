from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from blog.api.validation import (
    decode_json_body,
    ensure_valid,
    read_json_body,
    validate_comment_create,
    validate_pagination,
    validate_post_create,
    validate_post_update,
)
from blog.core.auth import SessionIdentity, get_current_identity
from blog.core.database import get_db
from blog.core.errors import ForbiddenError
from blog.core.logging_config import log_request_event
from blog.schemas import (
    Comment as CommentSchema,
    CommentEnvelope,
    MessageResponse,
    Post as PostSchema,
    PostDetail,
    PostDetailEnvelope,
    PostEnvelope,
    PostList,
)
from blog.services.posts import PostService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("", response_model=PostList)
def list_posts(
    page: Optional[str] = Query(None, description="Page number, starting at 1"),
    limit: Optional[str] = Query(None, description="Posts per page (max 100)"),
    category_id: Optional[str] = Query(
        None, alias="categoryId", description="Only posts in this category"
    ),
    db: Session = Depends(get_db),
):
    """Published posts, newest first, with author and category attached."""
    params = ensure_valid(validate_pagination(page, limit, category_id))

    result = PostService(db).list_published(
        page=params["page"], limit=params["limit"], category_id=params["category_id"]
    )
    return PostList(
        posts=[PostSchema.model_validate(post) for post in result["posts"]],
        pagination=result["pagination"],
    )


@router.post("", response_model=PostEnvelope, status_code=status.HTTP_201_CREATED)
async def create_post(
    request: Request,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Create a post owned by the caller."""
    data = ensure_valid(validate_post_create(await read_json_body(request)))

    post = PostService(db).create(identity, data)

    log_request_event(
        request,
        event_type="post.created",
        message="Post created",
        user_id=identity.user_id,
        event_category="content",
        post_id=post.id,
    )

    return PostEnvelope(post=PostSchema.model_validate(post))


@router.get("/{post_id}", response_model=PostDetailEnvelope)
def get_post(post_id: str, db: Session = Depends(get_db)):
    """A single live post with its comments, newest comment first."""
    post = PostService(db).get_detail(post_id)
    return PostDetailEnvelope(post=PostDetail.model_validate(post))


@router.put("/{post_id}", response_model=PostEnvelope)
async def update_post(
    post_id: str,
    request: Request,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Partially update a post.

    Existence and authorship are checked before the body is decoded.
    """
    raw_body = await request.body()

    try:
        post = PostService(db).update(
            identity,
            post_id,
            lambda: validate_post_update(decode_json_body(raw_body)),
        )
    except ForbiddenError:
        _log_forbidden(request, identity, post_id)
        raise

    log_request_event(
        request,
        event_type="post.updated",
        message="Post updated",
        user_id=identity.user_id,
        event_category="content",
        post_id=post_id,
    )

    return PostEnvelope(post=PostSchema.model_validate(post))


@router.delete("/{post_id}", response_model=MessageResponse)
def delete_post(
    post_id: str,
    request: Request,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Soft delete a post. The row is kept; it just stops being readable."""
    try:
        PostService(db).soft_delete(identity, post_id)
    except ForbiddenError:
        _log_forbidden(request, identity, post_id)
        raise

    log_request_event(
        request,
        event_type="post.deleted",
        message="Post soft-deleted",
        user_id=identity.user_id,
        event_category="content",
        post_id=post_id,
    )

    return MessageResponse(message="Post deleted successfully")


@router.post(
    "/{post_id}/comments",
    response_model=CommentEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: str,
    request: Request,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Comment on a live post."""
    data = ensure_valid(validate_comment_create(await read_json_body(request)))

    comment = PostService(db).add_comment(identity, post_id, data["content"])
    logger.info(f"User {identity.user_id} commented on post {post_id}")

    return CommentEnvelope(comment=CommentSchema.model_validate(comment))


def _log_forbidden(request: Request, identity: SessionIdentity, post_id: str):
    log_request_event(
        request,
        event_type="post.forbidden",
        message="Attempt to modify a post owned by another user",
        level=logging.WARNING,
        user_id=identity.user_id,
        event_category="authorization",
        post_id=post_id,
    )
