from fastapi import Depends, Request, Response
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from dataclasses import dataclass
from typing import Optional
from datetime import datetime, timedelta, timezone
import logging
import uuid

from blog.core.config import settings
from blog.core.errors import UnauthorizedError

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)

# JWT settings
ALGORITHM = "HS256"
TOKEN_TYPE = "access"

SESSION_COOKIE_NAME = "blog-token"
SESSION_MAX_AGE = settings.SESSION_TTL_HOURS * 60 * 60  # seconds


@dataclass(frozen=True)
class SessionIdentity:
    """Identity carried inside a session token."""

    user_id: str
    email: str


def create_access_token(
    identity: SessionIdentity, expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a signed session token for ``identity``.

    Args:
        identity: Subject embedded in the token
        expires_delta: Optional custom lifetime (default: SESSION_TTL_HOURS)

    Returns:
        Encoded JWT token
    """
    now = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(hours=settings.SESSION_TTL_HOURS)

    to_encode = {
        "sub": str(identity.user_id),
        "email": identity.email,
        "exp": now + expires_delta,
        "iat": now,
        "jti": str(uuid.uuid4()),
        "type": TOKEN_TYPE,
    }

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=ALGORITHM)


def verify_token(token) -> Optional[SessionIdentity]:
    """
    Verify signature and expiry of a session token.

    Returns the embedded identity, or None for any failure; the caller cannot
    tell an expired token from a forged one.
    """
    if not token or not isinstance(token, str):
        return None

    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Session token rejected: {type(e).__name__}")
        return None
    except Exception as e:
        # jose can raise outside its own hierarchy on garbage input
        logger.debug(f"Session token could not be parsed: {type(e).__name__}")
        return None

    if payload.get("type") != TOKEN_TYPE:
        logger.debug("Session token rejected: wrong token type")
        return None

    user_id = payload.get("sub")
    email = payload.get("email")
    if not isinstance(user_id, str) or not user_id or not isinstance(email, str):
        logger.debug("Session token rejected: missing identity claims")
        return None

    return SessionIdentity(user_id=user_id, email=email)


def attach_session_cookie(response: Response, token: str) -> None:
    """Set the session cookie on ``response``."""
    cookie_kwargs = {
        "httponly": True,  # XSS protection
        "secure": settings.session_cookie_secure,  # HTTPS only in production
        "samesite": "lax",  # CSRF protection
        "max_age": SESSION_MAX_AGE,
        "path": "/",
    }
    if settings.COOKIE_DOMAIN:
        cookie_kwargs["domain"] = settings.COOKIE_DOMAIN

    response.set_cookie(key=SESSION_COOKIE_NAME, value=token, **cookie_kwargs)


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie. Safe to call when none is set."""
    response.delete_cookie(
        key=SESSION_COOKIE_NAME,
        path="/",
        domain=settings.COOKIE_DOMAIN,
        secure=settings.session_cookie_secure,
        httponly=True,
        samesite="lax",
    )


def get_session_identity(request: Request) -> Optional[SessionIdentity]:
    """Identity from the request's session cookie, if it verifies."""
    return verify_token(request.cookies.get(SESSION_COOKIE_NAME))


async def get_current_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> SessionIdentity:
    """Resolve the caller's identity from the session cookie (or bearer header)."""
    token = request.cookies.get(SESSION_COOKIE_NAME)

    # Fall back to Authorization header if no cookie
    if not token and credentials:
        token = credentials.credentials

    identity = verify_token(token)
    if identity is None:
        raise UnauthorizedError(
            "Authentication required", headers={"WWW-Authenticate": "Bearer"}
        )

    return identity
