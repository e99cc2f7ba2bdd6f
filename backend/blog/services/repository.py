"""
Data access for users, categories, posts and comments.

Every function takes the request's ``Session`` as its first argument. Related
objects are only loaded when the caller names them in ``relations``; anything
not requested is set to ``raiseload`` so it can never be fetched lazily behind
the caller's back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, raiseload, selectinload

from blog.core.errors import ConflictError
from blog.models.category import Category
from blog.models.comment import Comment
from blog.models.post import Post
from blog.models.user import User

logger = logging.getLogger(__name__)

POST_LIST_RELATIONS = frozenset({"author", "category"})
POST_DETAIL_RELATIONS = frozenset({"author", "category", "comments.author"})

# relation name -> loader option factory
_POST_LOADERS = {
    "author": lambda: joinedload(Post.author),
    "category": lambda: joinedload(Post.category),
    "comments": lambda: selectinload(Post.comments),
    "comments.author": lambda: selectinload(Post.comments).joinedload(
        Comment.author
    ),
}
_COMMENT_LOADERS = {
    "author": lambda: joinedload(Comment.author),
}

UPDATABLE_POST_FIELDS = ("title", "content", "category_id", "published")


@dataclass
class Page:
    """One page of results plus the total number of matching rows."""

    items: List[Any]
    total: int


def loader_options(loaders: Dict[str, Any], relations: Iterable[str]) -> list:
    """Translate relation names into SQLAlchemy loader options."""
    relations = set(relations or ())
    unknown = relations - set(loaders)
    if unknown:
        raise ValueError(f"Unknown relation(s): {', '.join(sorted(unknown))}")

    # "comments.author" already implies "comments"
    if "comments.author" in relations:
        relations.discard("comments")

    options = [loaders[name]() for name in sorted(relations)]
    options.append(raiseload("*"))
    return options


def _commit(db: Session, conflict_message: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.info(f"Unique constraint violation: {e.orig}")
        raise ConflictError(conflict_message)


# Users


def get_user(db: Session, user_id: str) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def create_user(db: Session, email: str, password_digest: str, name: str) -> User:
    user = User(email=email, password=password_digest, name=name)
    db.add(user)
    _commit(db, "This email is already registered")
    db.refresh(user)
    return user


# Categories


def get_category(db: Session, category_id: str) -> Optional[Category]:
    return db.query(Category).filter(Category.id == category_id).first()


def list_categories_with_counts(db: Session) -> List[Tuple[Category, int]]:
    """All categories by name, each paired with its number of live posts."""
    rows = (
        db.query(Category, func.count(Post.id))
        .outerjoin(
            Post,
            and_(Post.category_id == Category.id, Post.deleted_at.is_(None)),
        )
        .group_by(Category.id)
        .order_by(Category.name.asc())
        .all()
    )
    return [(category, count) for category, count in rows]


def create_category(db: Session, name: str, slug: str) -> Category:
    category = Category(name=name, slug=slug)
    db.add(category)
    _commit(db, "A category with this name or slug already exists")
    db.refresh(category)
    return category


# Posts


def get_post(
    db: Session,
    post_id: str,
    relations: Iterable[str] = (),
    include_deleted: bool = False,
) -> Optional[Post]:
    """
    Load a post by id.

    Soft-deleted posts are only returned with ``include_deleted=True``, for
    callers that inspect ``deleted_at`` themselves.
    """
    query = (
        db.query(Post)
        .options(*loader_options(_POST_LOADERS, relations))
        .execution_options(populate_existing=True)
        .filter(Post.id == post_id)
    )
    if not include_deleted:
        query = query.filter(Post.deleted_at.is_(None))
    return query.first()


def find_posts(
    db: Session,
    published: Optional[bool] = True,
    include_deleted: bool = False,
    category_id: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    relations: Iterable[str] = POST_LIST_RELATIONS,
) -> Page:
    """Filtered, newest-first, offset-paginated posts with the total count."""
    query = db.query(Post)

    if published is not None:
        query = query.filter(Post.published == published)
    if not include_deleted:
        query = query.filter(Post.deleted_at.is_(None))
    if category_id:
        query = query.filter(Post.category_id == category_id)

    total = query.order_by(None).count()

    items = (
        query.options(*loader_options(_POST_LOADERS, relations))
        .order_by(Post.created_at.desc(), Post.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return Page(items=items, total=total)


def create_post(
    db: Session,
    author_id: str,
    title: str,
    content: str,
    published: bool,
    category_id: Optional[str] = None,
) -> Post:
    post = Post(
        author_id=author_id,
        title=title,
        content=content,
        published=published,
        category_id=category_id,
    )
    db.add(post)
    db.commit()
    return post


def update_post(db: Session, post: Post, fields: Dict[str, Any]) -> Post:
    """Apply a partial update. Only whitelisted fields are touched."""
    for key, value in fields.items():
        if key not in UPDATABLE_POST_FIELDS:
            raise ValueError(f"Field '{key}' cannot be updated")
        setattr(post, key, value)

    post.updated_at = datetime.utcnow()
    db.commit()
    return post


def soft_delete_post(db: Session, post: Post) -> Post:
    """Mark ``post`` deleted; the row itself is kept."""
    post.deleted_at = datetime.utcnow()
    db.commit()
    return post


# Comments


def create_comment(db: Session, post_id: str, author_id: str, content: str) -> Comment:
    comment = Comment(post_id=post_id, author_id=author_id, content=content)
    db.add(comment)
    db.commit()
    return comment


def get_comment(
    db: Session, comment_id: str, relations: Iterable[str] = ()
) -> Optional[Comment]:
    return (
        db.query(Comment)
        .options(*loader_options(_COMMENT_LOADERS, relations))
        .execution_options(populate_existing=True)
        .filter(Comment.id == comment_id)
        .first()
    )
