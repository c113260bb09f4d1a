"""User, invitation and social-graph models"""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from .post import utcnow


class Invitation(BaseModel):
    """Allow-list entry; only invited emails may sign up or log in."""

    email: EmailStr
    school: str
    cohort_year: Optional[str] = None
    referring_username: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class User(BaseModel):
    """Account record. password_hash is None for OAuth-only accounts."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    email: EmailStr
    username: str
    name: Optional[str] = None
    school: Optional[str] = None
    cohort_year: Optional[str] = None
    image: Optional[str] = None
    password_hash: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Session(BaseModel):
    """Opaque session token record"""

    id: str = Field(default_factory=lambda: str(uuid4()))
    user_id: str
    token: str
    expires_at: datetime


class Favorite(BaseModel):
    user_email: str
    favorited_username: str
    favorited_at: datetime = Field(default_factory=utcnow)


class ProfileView(BaseModel):
    user_email: str
    viewed_username: str
    viewed_user_name: str
    viewed_user_image: Optional[str] = None
    viewed_at: datetime = Field(default_factory=utcnow)
