"""Document-store collections for InstaClone"""

from .document_store import JsonCollection
from .favorites import FavoriteStore
from .invitations import InvitationStore
from .posts import PostStore
from .sessions import SessionStore
from .users import UserStore
from .viewing_history import ViewingHistoryStore

__all__ = [
    "JsonCollection",
    "FavoriteStore",
    "InvitationStore",
    "PostStore",
    "SessionStore",
    "UserStore",
    "ViewingHistoryStore",
]
