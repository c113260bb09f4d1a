"""Favorites, profile view history and user search"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, List, Optional

from ..models.post import utcnow
from ..models.user import ProfileView, User
from ..stores.favorites import FavoriteStore
from ..stores.users import UserStore
from ..stores.viewing_history import ViewingHistoryStore
from ..utils.config import Settings, get_settings
from ..utils.exceptions import NotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SEARCH_RESULT_LIMIT = 5


class SocialService:
    def __init__(
        self,
        users: Optional[UserStore] = None,
        favorites: Optional[FavoriteStore] = None,
        history: Optional[ViewingHistoryStore] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.users = users or UserStore()
        self.favorites = favorites or FavoriteStore()
        self.history = history or ViewingHistoryStore()
        self.settings = settings or get_settings()
        self.clock = clock

    # Favorites

    def add_favorite(self, user: User, username: str) -> None:
        if not username:
            raise ValueError("username is required")
        if username == user.username:
            raise ValueError("You cannot favorite yourself")
        self.favorites.upsert(user.email, username)

    def remove_favorite(self, user: User, username: str) -> None:
        self.favorites.remove(user.email, username)

    def list_favorites(self, user: User) -> List[User]:
        """Favorited users that still exist, most recently favorited first."""
        usernames = self.favorites.list_usernames(user.email)
        by_username = {u.username: u for u in self.users.find_by_usernames(usernames)}
        return [by_username[name] for name in usernames if name in by_username]

    # Viewing history

    def record_view(self, viewer: User, viewed_username: str) -> Optional[ProfileView]:
        """Record viewer looking at a profile. Own profile is not recorded (returns None)."""
        if viewer.username == viewed_username:
            return None
        viewed = self.users.find_by_username(viewed_username)
        if not viewed:
            raise NotFoundError("User not found")
        view = ProfileView(
            user_email=viewer.email,
            viewed_username=viewed_username,
            viewed_user_name=viewed.name or viewed_username,
            viewed_user_image=viewed.image,
            viewed_at=self.clock(),
        )
        return self.history.record(view)

    def viewing_history(self, viewer: User) -> List[ProfileView]:
        cfg = self.settings.viewing_history
        since = self.clock() - timedelta(days=cfg.max_age_days)
        return self.history.list_since(viewer.email, since, cfg.max_entries)

    # Search

    def search_users(self, query: Optional[str]) -> List[User]:
        query = (query or "").strip()
        if not query:
            return []
        return self.users.search_by_name(query, limit=SEARCH_RESULT_LIMIT)
