"""Sessions collection (opaque tokens)"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..models.user import Session
from .document_store import JsonCollection


class SessionStore:
    def __init__(self, collection: Optional[JsonCollection] = None):
        self.collection = collection or JsonCollection("sessions")

    def create(self, session: Session) -> Session:
        self.collection.insert_one(session.model_dump(mode="json"))
        return session

    def get(self, token: str) -> Optional[Session]:
        doc = self.collection.find_one(lambda d: d.get("token") == token)
        return Session.model_validate(doc) if doc else None

    def delete(self, token: str) -> bool:
        return self.collection.delete_one(lambda d: d.get("token") == token)

    def purge_expired(self, now: datetime) -> int:
        return self.collection.delete_many(
            lambda d: Session.model_validate(d).expires_at <= now
        )
