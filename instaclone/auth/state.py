"""
OAuth state/CSRF protection.

The state payload is signed with itsdangerous (HMAC), so it cannot be forged
and it expires (max_age).

Secret: auth.state_secret in settings (env OAUTH_STATE_SECRET).
"""

from __future__ import annotations

import secrets
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from ..utils.config import get_settings
from ..utils.exceptions import OAuthError


def _serializer() -> URLSafeTimedSerializer:
    secret = get_settings().auth.state_secret or ""
    if not secret:
        raise OAuthError("auth.state_secret must be set for OAuth CSRF protection.", code="not_configured")
    return URLSafeTimedSerializer(secret_key=secret, salt="instaclone-google-oauth")


def create_state(redirect_next: Optional[str] = None) -> str:
    payload: Dict[str, Any] = {
        "nonce": secrets.token_urlsafe(16),
        "next": redirect_next or "/",
    }
    return _serializer().dumps(payload)


def validate_state(state: str, max_age_seconds: int = 15 * 60) -> Dict[str, Any]:
    try:
        data = _serializer().loads(state, max_age=max_age_seconds)
    except SignatureExpired:
        raise OAuthError("OAuth state expired. Please try signing in again.", code="state_expired")
    except BadSignature:
        raise OAuthError("Invalid OAuth state. Please try signing in again.", code="state_invalid")
    if not isinstance(data, dict) or "nonce" not in data:
        raise OAuthError("Invalid OAuth state payload.", code="state_invalid")
    return data
