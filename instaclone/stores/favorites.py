"""Favorites (follow edges): follower email -> favorited username"""

from __future__ import annotations

from typing import List, Optional

from ..models.post import utcnow
from ..models.user import Favorite
from .document_store import JsonCollection


class FavoriteStore:
    def __init__(self, collection: Optional[JsonCollection] = None):
        self.collection = collection or JsonCollection("favorites")

    def upsert(self, user_email: str, username: str) -> Favorite:
        def edge(d):
            return d.get("user_email") == user_email and d.get("favorited_username") == username

        doc = self.collection.update_one(
            edge,
            {"favorited_at": utcnow().isoformat()},
            upsert=True,
            defaults={"user_email": user_email, "favorited_username": username},
        )
        return Favorite.model_validate(doc)

    def remove(self, user_email: str, username: str) -> bool:
        return self.collection.delete_one(
            lambda d: d.get("user_email") == user_email and d.get("favorited_username") == username
        )

    def list_usernames(self, user_email: str) -> List[str]:
        docs = self.collection.find(
            lambda d: d.get("user_email") == user_email,
            sort_key=lambda d: d.get("favorited_at") or "",
            reverse=True,
        )
        return [d["favorited_username"] for d in docs]

    def is_favorite(self, user_email: str, username: str) -> bool:
        return self.collection.count(
            lambda d: d.get("user_email") == user_email and d.get("favorited_username") == username
        ) > 0
