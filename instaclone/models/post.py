"""Post data models"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ..core.policy import as_aware, is_publicly_visible


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Post(BaseModel):
    """A photo post. Only deletion follows creation; fields never change."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex)
    owner_username: str
    owner_email: str
    caption: Optional[str] = None
    media_ref: str
    created_at: datetime = Field(default_factory=utcnow)
    public_release_time: datetime

    @field_validator("created_at", "public_release_time")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return as_aware(value)

    @model_validator(mode="after")
    def _release_not_before_creation(self) -> "Post":
        if self.public_release_time < self.created_at:
            raise ValueError("public_release_time must not precede created_at")
        return self

    def is_public(self, now: datetime) -> bool:
        return is_publicly_visible(self.public_release_time, now)
