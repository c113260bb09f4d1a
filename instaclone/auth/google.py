"""
Google OAuth (authorization code flow).

Config (settings.yaml auth section, usually via env):
- google_client_id / google_client_secret (required)
- google_redirect_uri (optional; falls back to the callback route URL)

Only the verified email, display name and picture are used; account
creation and the allow-list check happen in AuthService.sign_in_with_oauth.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..utils.config import get_settings
from ..utils.exceptions import OAuthError
from ..utils.logger import get_logger

logger = get_logger(__name__)

AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"
SCOPES = ["openid", "email", "profile"]


@dataclass(frozen=True)
class GoogleProfile:
    email: str
    name: Optional[str]
    picture: Optional[str]


def _client_credentials() -> tuple:
    auth = get_settings().auth
    if not auth.google_client_id or not auth.google_client_secret:
        raise OAuthError(
            "Google OAuth is not configured (google_client_id / google_client_secret).",
            code="not_configured",
        )
    return auth.google_client_id, auth.google_client_secret


def build_authorize_url(redirect_uri: str, state: str) -> str:
    client_id, _ = _client_credentials()
    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": " ".join(SCOPES),
        "state": state,
        "prompt": "select_account",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


class _TransientGoogleError(OAuthError):
    pass


def _json_or_raise(r: requests.Response) -> Dict[str, Any]:
    if r.status_code >= 500:
        raise _TransientGoogleError(f"Google returned HTTP {r.status_code}", code="google_unavailable")
    try:
        data = r.json()
    except ValueError:
        raise OAuthError("Google returned a non-JSON response.")
    if r.status_code >= 400 or "error" in data:
        detail = data.get("error_description") or data.get("error") or f"HTTP {r.status_code}"
        raise OAuthError(f"Google OAuth error: {detail}")
    return data


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type((_TransientGoogleError, requests.exceptions.ConnectionError, requests.exceptions.Timeout)),
    reraise=True,
)
def exchange_code_for_token(code: str, redirect_uri: str) -> str:
    client_id, client_secret = _client_credentials()
    r = requests.post(
        TOKEN_URL,
        data={
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": redirect_uri,
            "grant_type": "authorization_code",
        },
        timeout=30,
    )
    data = _json_or_raise(r)
    token = data.get("access_token")
    if not token:
        raise OAuthError("Google did not return an access_token.")
    return token


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type((_TransientGoogleError, requests.exceptions.ConnectionError, requests.exceptions.Timeout)),
    reraise=True,
)
def fetch_profile(access_token: str) -> GoogleProfile:
    r = requests.get(
        USERINFO_URL,
        headers={"Authorization": f"Bearer {access_token}"},
        timeout=30,
    )
    data = _json_or_raise(r)
    email = data.get("email")
    if not email or not data.get("email_verified", False):
        raise OAuthError("Google account has no verified email.", code="email_unverified")
    return GoogleProfile(email=email, name=data.get("name"), picture=data.get("picture"))
