"""Custom exceptions for InstaClone"""

from typing import Any, Dict, Optional


class InstaCloneError(Exception):
    """Base exception for InstaClone"""
    pass


class ConfigError(InstaCloneError):
    """Configuration error"""
    pass


class StorageError(InstaCloneError):
    """A collection file could not be read or written"""
    pass


class QuotaError(InstaCloneError):
    """Upload refused by the post quota"""

    code = "quota_error"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self)}


class DailyLimitExceeded(QuotaError):
    """Owner already uploaded daily_limit posts today. Retry tomorrow."""

    code = "daily_limit_exceeded"

    def __init__(self, daily_limit: int, today_uploads: int):
        self.daily_limit = daily_limit
        self.today_uploads = today_uploads
        super().__init__(
            f"Daily upload limit reached ({today_uploads}/{daily_limit}). Try again tomorrow."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "daily_limit": self.daily_limit,
            "today_uploads": self.today_uploads,
        }


class TotalLimitReachedNeedsConfirmation(QuotaError):
    """Owner holds max_total_posts posts; resubmit with confirmation to evict the oldest."""

    code = "total_limit_needs_confirmation"

    def __init__(self, max_total_posts: int, current_total: int):
        self.max_total_posts = max_total_posts
        self.current_total = current_total
        super().__init__(
            f"You have reached the maximum of {max_total_posts} posts. "
            "Uploading will delete your oldest post. Confirm to continue."
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "max_total_posts": self.max_total_posts,
            "current_total": self.current_total,
            "requires_confirmation": True,
        }


class AuthError(InstaCloneError):
    """Authentication failure"""
    pass


class NotInvitedError(AuthError):
    """Email is not on the allow-list"""
    pass


class InvalidCredentialsError(AuthError):
    """Unknown user or wrong password"""
    pass


class OAuthError(AuthError):
    """OAuth state or token exchange failure"""

    def __init__(self, message: str, code: str = "oauth_error"):
        super().__init__(message)
        self.code = code


class DuplicateError(InstaCloneError):
    """Record already exists"""
    pass


class NotFoundError(InstaCloneError):
    """Record does not exist"""
    pass


class PermissionDeniedError(InstaCloneError):
    """Caller does not own the record"""
    pass


class MediaUploadError(InstaCloneError):
    """Image could not be stored or transformed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class LockTimeoutError(InstaCloneError, TimeoutError):
    """Another unit of work held the owner's lock for longer than the wait timeout"""
    pass
