from datetime import datetime
from .base import ApiModel


class UserPublic(ApiModel):
    """Fields safe to show next to a post or comment."""

    id: str
    email: str
    name: str


class UserProfile(UserPublic):
    created_at: datetime


class UserEnvelope(ApiModel):
    user: UserPublic


class UserProfileEnvelope(ApiModel):
    user: UserProfile
