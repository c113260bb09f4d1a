"""Users collection"""

from __future__ import annotations

from typing import Iterable, List, Optional

from ..models.user import User
from ..utils.exceptions import DuplicateError
from .document_store import JsonCollection


class UserStore:
    def __init__(self, collection: Optional[JsonCollection] = None):
        self.collection = collection or JsonCollection("users")

    def find_by_email(self, email: str) -> Optional[User]:
        wanted = email.lower()
        doc = self.collection.find_one(lambda d: (d.get("email") or "").lower() == wanted)
        return User.model_validate(doc) if doc else None

    def find_by_username(self, username: str) -> Optional[User]:
        doc = self.collection.find_one(lambda d: d.get("username") == username)
        return User.model_validate(doc) if doc else None

    def find_by_id(self, user_id: str) -> Optional[User]:
        doc = self.collection.find_one(lambda d: d.get("id") == user_id)
        return User.model_validate(doc) if doc else None

    def find_by_usernames(self, usernames: Iterable[str]) -> List[User]:
        wanted = set(usernames)
        return [User.model_validate(d) for d in self.collection.find(lambda d: d.get("username") in wanted)]

    def username_exists(self, username: str) -> bool:
        return self.collection.count(lambda d: d.get("username") == username) > 0

    def create(self, user: User) -> User:
        """Insert a user; email and username must both be unique."""
        with self.collection.lock:
            if self.find_by_email(user.email):
                raise DuplicateError("Email already exists")
            if self.username_exists(user.username):
                raise DuplicateError(f"Username '{user.username}' already exists")
            self.collection.insert_one(user.model_dump(mode="json"))
        return user

    def search_by_name(self, query: str, limit: int = 5) -> List[User]:
        """Case-insensitive substring match on display name."""
        needle = query.lower()
        docs = self.collection.find(
            lambda d: needle in (d.get("name") or "").lower(),
            limit=limit,
        )
        return [User.model_validate(d) for d in docs]
