"""
FastAPI dependencies for authentication and service wiring.

Services are process-wide singletons created on first use; tests replace
them through app.dependency_overrides.
"""

from typing import Optional

from fastapi import Depends, HTTPException, Request, status

from instaclone.auth.service import AuthService, auth_service
from instaclone.models.user import User
from instaclone.services.invitation_service import InvitationService
from instaclone.services.posting_service import PostingService
from instaclone.services.social_service import SocialService

SESSION_COOKIE = "session_token"

_posting_service: Optional[PostingService] = None
_invitation_service: Optional[InvitationService] = None
_social_service: Optional[SocialService] = None


def get_auth_service() -> AuthService:
    return auth_service


def get_posting_service() -> PostingService:
    global _posting_service
    if _posting_service is None:
        _posting_service = PostingService()
    return _posting_service


def get_invitation_service() -> InvitationService:
    global _invitation_service
    if _invitation_service is None:
        _invitation_service = InvitationService()
    return _invitation_service


def get_social_service() -> SocialService:
    global _social_service
    if _social_service is None:
        _social_service = SocialService()
    return _social_service


def get_session_token(request: Request) -> Optional[str]:
    """Extract session token from request (Authorization header or cookie)"""
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return request.cookies.get(SESSION_COOKIE)


def get_current_user(
    request: Request,
    auth: AuthService = Depends(get_auth_service),
) -> User:
    """Dependency to get current authenticated user"""
    token = get_session_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    user = auth.validate_session(token)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


require_auth = get_current_user
