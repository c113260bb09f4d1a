"""Profile view records"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from ..models.user import ProfileView
from .document_store import JsonCollection


class ViewingHistoryStore:
    def __init__(self, collection: Optional[JsonCollection] = None):
        self.collection = collection or JsonCollection("viewing_history")

    def record(self, view: ProfileView) -> ProfileView:
        self.collection.insert_one(view.model_dump(mode="json"))
        return view

    def list_since(self, user_email: str, since: datetime, limit: int) -> List[ProfileView]:
        """Views by user_email at or after `since`, newest first."""
        views = [
            ProfileView.model_validate(d)
            for d in self.collection.find(lambda d: d.get("user_email") == user_email)
        ]
        views = [v for v in views if v.viewed_at >= since]
        views.sort(key=lambda v: v.viewed_at, reverse=True)
        return views[:limit]
