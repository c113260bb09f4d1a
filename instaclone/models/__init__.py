"""Data models for InstaClone"""

from .post import Post
from .user import Favorite, Invitation, ProfileView, Session, User

__all__ = ["Post", "User", "Invitation", "Session", "Favorite", "ProfileView"]
