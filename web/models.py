"""API request/response models"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from instaclone.models.post import Post
from instaclone.models.user import Invitation, ProfileView, User


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1)


class UserPublic(BaseModel):
    """User fields safe to expose (never the password hash)"""
    id: str
    email: str
    username: str
    name: Optional[str] = None
    school: Optional[str] = None
    cohort_year: Optional[str] = None
    image: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(**user.model_dump(exclude={"password_hash"}))


class UserSummary(BaseModel):
    """Search result entry"""
    name: Optional[str] = None
    username: str


class AuthResponse(BaseModel):
    token: str
    user: UserPublic


class PostResponse(BaseModel):
    id: str
    username: str
    caption: Optional[str] = None
    image_url: str
    created_at: datetime
    public_release_time: datetime
    scheduled: bool = False

    @classmethod
    def from_post(cls, post: Post, now: datetime) -> "PostResponse":
        return cls(
            id=post.id,
            username=post.owner_username,
            caption=post.caption,
            image_url=post.media_ref,
            created_at=post.created_at,
            public_release_time=post.public_release_time,
            scheduled=not post.is_public(now),
        )


class CreatePostResponse(BaseModel):
    post: PostResponse
    stats: Dict[str, Any] = Field(default_factory=dict)
    evicted_post_id: Optional[str] = None


class FeedResponse(BaseModel):
    label: str
    posts: List[PostResponse]


class ProfileResponse(BaseModel):
    user: UserPublic
    posts: List[PostResponse]
    is_own_profile: bool
    is_favorite: bool = False


class FavoriteRequest(BaseModel):
    username: str


class PermitUserRequest(BaseModel):
    email: Optional[str] = None
    school: Optional[str] = None
    cohort_year: Optional[str] = None


class InvitationResponse(BaseModel):
    email: str
    school: str
    cohort_year: Optional[str] = None
    referring_username: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_invitation(cls, invitation: Invitation) -> "InvitationResponse":
        return cls(**invitation.model_dump())


class ViewRequest(BaseModel):
    viewed_username: str


class ProfileViewResponse(BaseModel):
    viewed_username: str
    viewed_user_name: str
    viewed_user_image: Optional[str] = None
    viewed_at: datetime

    @classmethod
    def from_view(cls, view: ProfileView) -> "ProfileViewResponse":
        return cls(**view.model_dump(exclude={"user_email"}))
