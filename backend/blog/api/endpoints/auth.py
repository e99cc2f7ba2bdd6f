from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session
import logging

from blog.api.validation import (
    ensure_valid,
    read_json_body,
    validate_login,
    validate_register,
)
from blog.core.auth import (
    SessionIdentity,
    attach_session_cookie,
    clear_session_cookie,
    get_current_identity,
    get_session_identity,
)
from blog.core.config import settings
from blog.core.database import get_db
from blog.core.errors import ConflictError, UnauthorizedError
from blog.core.logging_config import log_request_event
from blog.core.rate_limit import limiter
from blog.schemas import (
    MessageResponse,
    UserEnvelope,
    UserProfile,
    UserProfileEnvelope,
    UserPublic,
)
from blog.services.accounts import AccountService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/register", response_model=UserEnvelope, status_code=status.HTTP_201_CREATED
)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def register(request: Request, response: Response, db: Session = Depends(get_db)):
    """Create an account and start a session for it."""
    data = ensure_valid(validate_register(await read_json_body(request)))

    try:
        user, token = AccountService(db).register(
            email=data["email"], password=data["password"], name=data["name"]
        )
    except ConflictError:
        log_request_event(
            request,
            event_type="auth.register.conflict",
            message="Registration attempted with an existing email",
            username=data["email"],
            event_category="authentication",
        )
        raise

    attach_session_cookie(response, token)

    log_request_event(
        request,
        event_type="auth.register.success",
        message="New user account created",
        user_id=user.id,
        username=user.email,
        event_category="authentication",
    )

    return UserEnvelope(user=UserPublic.model_validate(user))


@router.post("/login", response_model=UserEnvelope)
@limiter.limit(settings.AUTH_RATE_LIMIT)
async def login(request: Request, response: Response, db: Session = Depends(get_db)):
    """Exchange email + password for a session cookie."""
    data = ensure_valid(validate_login(await read_json_body(request)))

    try:
        user, token = AccountService(db).login(
            email=data["email"], password=data["password"]
        )
    except UnauthorizedError:
        log_request_event(
            request,
            event_type="auth.login.failure",
            message="Login failed: invalid credentials",
            level=logging.WARNING,
            username=data["email"],
            event_category="authentication",
        )
        raise

    attach_session_cookie(response, token)

    log_request_event(
        request,
        event_type="auth.login.success",
        message="User logged in successfully",
        user_id=user.id,
        username=user.email,
        event_category="authentication",
    )

    return UserEnvelope(user=UserPublic.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response):
    """Clear the session cookie. Succeeds with or without a session."""
    identity = get_session_identity(request)
    if identity is not None:
        log_request_event(
            request,
            event_type="auth.logout.success",
            message="User logged out successfully",
            user_id=identity.user_id,
            username=identity.email,
            event_category="authentication",
        )

    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserProfileEnvelope)
def get_current_user_info(
    identity: SessionIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    """Get current user information."""
    user = AccountService(db).get_profile(identity)
    return UserProfileEnvelope(user=UserProfile.model_validate(user))
