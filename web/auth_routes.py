"""
FastAPI routes for signup, credential login, logout and Google OAuth.

Every path that creates or resumes an account requires the email to be on
the invitation allow-list.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse

from instaclone.auth import google
from instaclone.auth.service import AuthService
from instaclone.auth.state import create_state, validate_state
from instaclone.models.user import User
from instaclone.utils.config import get_settings
from instaclone.utils.exceptions import NotInvitedError, OAuthError
from instaclone.utils.logger import get_logger

from .auth_deps import SESSION_COOKIE, get_auth_service, get_current_user, get_session_token
from .models import AuthResponse, SignupRequest, UserPublic

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        key=SESSION_COOKIE,
        value=token,
        max_age=settings.auth.session_days * 24 * 60 * 60,
        httponly=True,
        secure=settings.app.environment.lower() == "production",
        samesite="lax",
    )


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, auth: AuthService = Depends(get_auth_service)) -> Dict[str, Any]:
    """
    Register an invited email.

    403 if the email is not allow-listed, 400 if it is already registered.
    """
    user = auth.signup(email=payload.email, password=payload.password, name=payload.name)
    return {"message": "User created", "user": UserPublic.from_user(user).model_dump(mode="json")}


@router.post("/auth/login", response_model=AuthResponse)
def login(
    email: str = Form(...),
    password: str = Form(...),
    auth: AuthService = Depends(get_auth_service),
) -> Any:
    try:
        user = auth.authenticate(email=email, password=password)
    except NotInvitedError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    token = auth.create_session(user.id)
    logger.info("User logged in", username=user.username)
    response = JSONResponse(
        content=AuthResponse(token=token, user=UserPublic.from_user(user)).model_dump(mode="json")
    )
    _set_session_cookie(response, token)
    return response


@router.post("/auth/logout")
def logout(request: Request, auth: AuthService = Depends(get_auth_service)) -> Any:
    token = get_session_token(request)
    if token:
        auth.logout(token)
    response = JSONResponse({"status": "success"})
    response.delete_cookie(SESSION_COOKIE)
    return response


@router.get("/auth/me", response_model=UserPublic)
def me(current_user: User = Depends(get_current_user)) -> UserPublic:
    return UserPublic.from_user(current_user)


def _google_redirect_uri(request: Request) -> str:
    configured = get_settings().auth.google_redirect_uri
    if configured:
        return configured
    return str(request.url_for("google_callback"))


@router.get("/auth/google/login")
def google_login(request: Request, next: Optional[str] = None) -> RedirectResponse:
    """Start the Google OAuth flow."""
    state = create_state(redirect_next=next)
    url = google.build_authorize_url(redirect_uri=_google_redirect_uri(request), state=state)
    return RedirectResponse(url=url, status_code=status.HTTP_302_FOUND)


@router.get("/auth/google/callback", name="google_callback")
async def google_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    auth: AuthService = Depends(get_auth_service),
) -> Any:
    """Finish Google OAuth: verify state, exchange the code, sign in, set the session cookie."""
    if error:
        raise OAuthError(f"Google sign-in was cancelled: {error}", code="access_denied")
    if not code or not state:
        raise OAuthError("Missing code or state", code="bad_callback")
    payload = validate_state(state)

    redirect_uri = _google_redirect_uri(request)
    access_token = await run_in_threadpool(google.exchange_code_for_token, code, redirect_uri)
    profile = await run_in_threadpool(google.fetch_profile, access_token)
    user = await run_in_threadpool(
        auth.sign_in_with_oauth, profile.email, profile.name, profile.picture
    )
    token = await run_in_threadpool(auth.create_session, user.id)
    logger.info("User logged in with Google", username=user.username)

    next_path = payload.get("next") or "/"
    if not next_path.startswith("/") or next_path.startswith("//"):
        next_path = "/"
    response = RedirectResponse(url=next_path, status_code=status.HTTP_302_FOUND)
    _set_session_cookie(response, token)
    return response
