"""Allow-list (allowed_emails) collection"""

from __future__ import annotations

from typing import List, Optional

from ..models.user import Invitation
from ..utils.exceptions import DuplicateError
from .document_store import JsonCollection


class InvitationStore:
    def __init__(self, collection: Optional[JsonCollection] = None):
        self.collection = collection or JsonCollection("allowed_emails")

    def find_by_email(self, email: str) -> Optional[Invitation]:
        wanted = email.lower()
        doc = self.collection.find_one(lambda d: (d.get("email") or "").lower() == wanted)
        return Invitation.model_validate(doc) if doc else None

    def create(self, invitation: Invitation) -> Invitation:
        with self.collection.lock:
            if self.find_by_email(invitation.email):
                raise DuplicateError("Email already has permission")
            self.collection.insert_one(invitation.model_dump(mode="json"))
        return invitation

    def list_by_referrer(self, username: str) -> List[Invitation]:
        invitations = [
            Invitation.model_validate(d)
            for d in self.collection.find(lambda d: d.get("referring_username") == username)
        ]
        return sorted(invitations, key=lambda i: i.created_at, reverse=True)

    def distinct_schools(self) -> List[str]:
        return sorted(self.collection.distinct("school"))
