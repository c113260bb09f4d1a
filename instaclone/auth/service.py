"""
Authentication service layer.

- Invite-gated signup with bcrypt password hashes
- Credential login and OAuth sign-in, both restricted to allow-listed emails
- Opaque session tokens with a fixed expiry (auth.session_days)
"""

from __future__ import annotations

import re
import secrets
from datetime import timedelta
from typing import Optional

import bcrypt

from ..models.post import utcnow
from ..models.user import Session, User
from ..stores.invitations import InvitationStore
from ..stores.sessions import SessionStore
from ..stores.users import UserStore
from ..utils.config import get_settings
from ..utils.exceptions import DuplicateError, InvalidCredentialsError, NotInvitedError
from ..utils.logger import get_logger

logger = get_logger(__name__)

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9 ]")


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def to_camel_case(name: str) -> str:
    """'Jane  O'Neil-Smith' -> 'janeOneilsmith'"""
    words = [w for w in _NON_ALNUM.sub("", name.lower()).split(" ") if w]
    return "".join(w if i == 0 else w[0].upper() + w[1:] for i, w in enumerate(words))


class AuthService:
    def __init__(
        self,
        users: Optional[UserStore] = None,
        invitations: Optional[InvitationStore] = None,
        sessions: Optional[SessionStore] = None,
    ):
        self.users = users or UserStore()
        self.invitations = invitations or InvitationStore()
        self.sessions = sessions or SessionStore()

    def generate_username(self, display_name: str) -> str:
        """camelCase of display_name, suffixed 1, 2, ... until unused."""
        base = to_camel_case(display_name) or "user"
        username = base
        count = 1
        while self.users.username_exists(username):
            username = f"{base}{count}"
            count += 1
        return username

    def signup(self, email: str, password: str, name: str) -> User:
        """
        Register an invited email.

        Raises NotInvitedError when the email is not allow-listed and
        DuplicateError when it is already registered.
        """
        invitation = self.invitations.find_by_email(email)
        if not invitation:
            logger.info("Signup refused for uninvited email", email=email)
            raise NotInvitedError("Email is not allowed to register.")

        with self.users.collection.lock:
            if self.users.find_by_email(email):
                raise DuplicateError("Email already exists")
            user = User(
                email=email,
                username=self.generate_username(name),
                name=name,
                school=invitation.school,
                cohort_year=invitation.cohort_year,
                password_hash=hash_password(password),
            )
            self.users.create(user)

        logger.info("User signed up", username=user.username, school=user.school)
        return user

    def authenticate(self, email: str, password: str) -> User:
        """Credential login. Raises NotInvitedError or InvalidCredentialsError."""
        if not self.invitations.find_by_email(email):
            raise NotInvitedError("Email not authorized")
        user = self.users.find_by_email(email)
        if not user:
            raise InvalidCredentialsError("No user found")
        if not user.password_hash or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError("Incorrect password")
        return user

    def sign_in_with_oauth(self, email: str, name: Optional[str] = None, image: Optional[str] = None) -> User:
        """
        OAuth sign-in for a provider-verified email.

        Uninvited emails are refused. First sign-in creates the account with a
        username generated from the display name (or the email's local part).
        """
        if not self.invitations.find_by_email(email):
            logger.warning("Blocked OAuth login for unapproved email", email=email)
            raise NotInvitedError("Email not authorized")

        with self.users.collection.lock:
            existing = self.users.find_by_email(email)
            if existing:
                return existing
            invitation = self.invitations.find_by_email(email)
            user = User(
                email=email,
                username=self.generate_username(name or email.split("@")[0]),
                name=name,
                image=image,
                school=invitation.school if invitation else None,
                cohort_year=invitation.cohort_year if invitation else None,
            )
            self.users.create(user)

        logger.info("User created from OAuth sign-in", username=user.username)
        return user

    def create_session(self, user_id: str) -> str:
        """Create a new session and return its opaque token."""
        now = utcnow()
        self.sessions.purge_expired(now)
        token = secrets.token_urlsafe(32)
        expires_at = now + timedelta(days=get_settings().auth.session_days)
        self.sessions.create(Session(user_id=user_id, token=token, expires_at=expires_at))
        return token

    def validate_session(self, token: str) -> Optional[User]:
        """Return the session's user, or None if the token is unknown or expired."""
        if not token:
            return None
        session = self.sessions.get(token)
        if not session:
            return None
        if utcnow() > session.expires_at:
            self.sessions.delete(token)
            return None
        user = self.users.find_by_id(session.user_id)
        if not user:
            # Stale session pointing to missing user
            self.sessions.delete(token)
            return None
        return user

    def logout(self, token: str) -> None:
        """Invalidate a session token (idempotent)."""
        if token:
            self.sessions.delete(token)


auth_service = AuthService()
