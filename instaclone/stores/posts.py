"""Posts collection. Owners are identified by email."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from ..models.post import Post
from .document_store import JsonCollection


class PostStore:
    def __init__(self, collection: Optional[JsonCollection] = None):
        self.collection = collection or JsonCollection("posts")

    def _owned_by(self, owner_email: str) -> List[Post]:
        owner = owner_email.lower()
        docs = self.collection.find(lambda d: (d.get("owner_email") or "").lower() == owner)
        return [Post.model_validate(d) for d in docs]

    def insert(self, post: Post) -> Post:
        self.collection.insert_one(post.model_dump(mode="json"))
        return post

    def get(self, post_id: str) -> Optional[Post]:
        doc = self.collection.find_one(lambda d: d.get("id") == post_id)
        return Post.model_validate(doc) if doc else None

    def delete_by_id(self, post_id: str) -> bool:
        return self.collection.delete_one(lambda d: d.get("id") == post_id)

    def count_for_owner(
        self,
        owner_email: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> int:
        """Posts by owner, optionally with created_at in [start, end)."""
        return sum(
            1
            for p in self._owned_by(owner_email)
            if (start is None or p.created_at >= start) and (end is None or p.created_at < end)
        )

    def find_oldest_for_owner(self, owner_email: str) -> Optional[Post]:
        posts = self._owned_by(owner_email)
        return min(posts, key=lambda p: p.created_at) if posts else None

    def list_for_owner(self, owner_email: str, released_by: Optional[datetime] = None) -> List[Post]:
        """Owner's posts newest first; with released_by, only those public at that instant."""
        posts = self._owned_by(owner_email)
        if released_by is not None:
            posts = [p for p in posts if p.is_public(released_by)]
        return sorted(posts, key=lambda p: p.created_at, reverse=True)

    def list_released_between(self, start: datetime, end: datetime) -> List[Post]:
        """Posts whose public_release_time lies in [start, end], newest first."""
        posts = [Post.model_validate(d) for d in self.collection.find()]
        posts = [p for p in posts if start <= p.public_release_time <= end]
        return sorted(posts, key=lambda p: (p.public_release_time, p.created_at), reverse=True)
