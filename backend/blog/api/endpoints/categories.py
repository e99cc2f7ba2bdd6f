from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from blog.api.validation import ensure_valid, read_json_body, validate_category_create
from blog.core.auth import SessionIdentity, get_current_identity
from blog.core.database import get_db
from blog.core.logging_config import log_request_event
from blog.schemas import (
    Category as CategorySchema,
    CategoryEnvelope,
    CategoryList,
    CategoryWithCount,
)
from blog.services import repository

router = APIRouter()


@router.get("", response_model=CategoryList)
def get_categories(db: Session = Depends(get_db)):
    """All categories alphabetically, each with its number of live posts."""
    categories = [
        CategoryWithCount(
            **CategorySchema.model_validate(category).model_dump(),
            post_count=post_count,
        )
        for category, post_count in repository.list_categories_with_counts(db)
    ]
    return CategoryList(categories=categories)


@router.post("", response_model=CategoryEnvelope, status_code=status.HTTP_201_CREATED)
async def create_category(
    request: Request,
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """
    Create a category.

    The slug is derived from the name when omitted. Duplicate names or slugs
    are rejected by the unique constraints with 409.
    """
    data = ensure_valid(validate_category_create(await read_json_body(request)))

    category = repository.create_category(db, name=data["name"], slug=data["slug"])

    log_request_event(
        request,
        event_type="category.created",
        message=f"Category '{category.slug}' created",
        user_id=identity.user_id,
        event_category="content",
    )

    return CategoryEnvelope(category=CategorySchema.model_validate(category))
