"""
Account service - registration, login and profile lookup.
"""

import logging
from typing import Tuple

from sqlalchemy.orm import Session

from blog.core.auth import SessionIdentity, create_access_token
from blog.core.errors import ConflictError, UnauthorizedError
from blog.core.security import hash_password, verify_password
from blog.models.user import User
from blog.services import repository

logger = logging.getLogger(__name__)

EMAIL_TAKEN_MESSAGE = "This email is already registered"
# Same message for unknown email and wrong password
INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AccountService:
    """Service for user accounts and session issuance."""

    def __init__(self, db: Session):
        self.db = db

    def register(self, email: str, password: str, name: str) -> Tuple[User, str]:
        """
        Create a user and issue a session token for it.

        Raises:
            ConflictError: If the email is already registered
        """
        if repository.get_user_by_email(self.db, email) is not None:
            raise ConflictError(EMAIL_TAKEN_MESSAGE)

        # The unique index still guards against a concurrent registration
        user = repository.create_user(
            self.db, email=email, password_digest=hash_password(password), name=name
        )
        logger.info(f"New user registered: {user.id}")

        return user, self.issue_token(user)

    def login(self, email: str, password: str) -> Tuple[User, str]:
        """
        Check credentials and issue a session token.

        Raises:
            UnauthorizedError: If the user is unknown or the password is wrong
        """
        user = repository.get_user_by_email(self.db, email)
        if user is None or not verify_password(password, user.password):
            raise UnauthorizedError(INVALID_CREDENTIALS_MESSAGE)

        return user, self.issue_token(user)

    def get_profile(self, identity: SessionIdentity) -> User:
        user = repository.get_user(self.db, identity.user_id)
        if user is None:
            # Token outlived the account it was issued for
            raise UnauthorizedError("Authentication required")
        return user

    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token(SessionIdentity(user_id=user.id, email=user.email))
