"""
Posting service: quota-gated, release-scheduled photo posts.

create_post runs as one unit of work per owner (file lock on
lock:owner:{email}:posting): count, upload, evict and insert cannot
interleave with another upload by the same owner.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.locks import acquire_lock, lock_key_posting
from ..core.policy import (
    QuotaCounts,
    QuotaDecision,
    QuotaLimits,
    ReleaseSchedule,
    as_aware,
    compute_release_time,
    evaluate_upload_quota,
    quota_day_window,
    recent_release_window,
)
from ..models.post import Post, utcnow
from ..models.user import User
from ..stores.posts import PostStore
from ..utils.config import Settings, get_settings
from ..utils.exceptions import NotFoundError, PermissionDeniedError, StorageError
from ..utils.logger import get_logger
from .media_service import MediaUploader, get_uploader, validate_image

logger = get_logger(__name__)


@dataclass
class CreatedPost:
    post: Post
    stats: Dict[str, Any] = field(default_factory=dict)
    evicted_post_id: Optional[str] = None


def release_schedule_from(settings: Settings) -> ReleaseSchedule:
    v = settings.post_visibility
    return ReleaseSchedule(release_hour=v.release_hour, release_minute=v.release_minute, use_utc=v.use_utc)


def quota_limits_from(settings: Settings) -> QuotaLimits:
    u = settings.upload_limits
    return QuotaLimits(
        daily_limit=u.daily_limit,
        max_total_posts=u.max_total_posts,
        quota_time_zone=u.quota_time_zone,
    )


class PostingService:
    """Post creation, deletion and visibility-aware listing."""

    def __init__(
        self,
        posts: Optional[PostStore] = None,
        uploader: Optional[MediaUploader] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
        schedule: Optional[ReleaseSchedule] = None,
        limits: Optional[QuotaLimits] = None,
    ):
        self.settings = settings or get_settings()
        self.posts = posts or PostStore()
        self._uploader = uploader
        self.clock = clock
        self.schedule = schedule or release_schedule_from(self.settings)
        self.limits = limits or quota_limits_from(self.settings)

    @property
    def uploader(self) -> MediaUploader:
        if self._uploader is None:
            self._uploader = get_uploader(self.settings.media)
        return self._uploader

    def _now(self) -> datetime:
        return as_aware(self.clock())

    def _counts(self, owner_email: str, now: datetime) -> QuotaCounts:
        start, end = quota_day_window(now, self.limits)
        total = self.posts.count_for_owner(owner_email)
        oldest = None
        if total >= self.limits.max_total_posts:
            oldest = self.posts.find_oldest_for_owner(owner_email)
        return QuotaCounts(
            today_count=self.posts.count_for_owner(owner_email, start, end),
            total_count=total,
            oldest_post_id=oldest.id if oldest else None,
        )

    def check_quota(self, owner_email: str, now: datetime, confirm_eviction: bool = False) -> QuotaDecision:
        return evaluate_upload_quota(
            owner_email, now, self.limits, confirm_eviction, self._counts(owner_email, now)
        )

    def upload_status(self, owner: User) -> Dict[str, Any]:
        """Current counts against both ceilings, for display before uploading."""
        now = self._now()
        counts = self._counts(owner.email, now)
        return {
            "daily_limit": self.limits.daily_limit,
            "today_uploads": counts.today_count,
            "remaining_uploads": max(0, self.limits.daily_limit - counts.today_count),
            "total_posts": counts.total_count,
            "max_total_posts": self.limits.max_total_posts,
            "at_total_limit": counts.total_count >= self.limits.max_total_posts,
        }

    def create_post(
        self,
        owner: User,
        image: bytes,
        filename: str,
        content_type: Optional[str] = None,
        caption: Optional[str] = None,
        confirm_eviction: bool = False,
    ) -> CreatedPost:
        """
        Create a post for owner.

        Raises DailyLimitExceeded, TotalLimitReachedNeedsConfirmation (resubmit
        with confirm_eviction=True) or MediaUploadError. Nothing is deleted
        unless the image upload succeeded.
        """
        validate_image(image, filename, content_type, self.settings.media.max_upload_bytes)
        with acquire_lock(lock_key_posting(owner.email)):
            now = self._now()
            decision = self.check_quota(owner.email, now, confirm_eviction)
            if not decision.allowed:
                logger.info(
                    "Upload rejected by quota",
                    owner=owner.username,
                    outcome=decision.outcome.value,
                    **decision.stats,
                )
                decision.raise_for_rejection()

            media_ref = self.uploader.upload(image, filename, content_type)

            try:
                if decision.evict_post_id:
                    self.posts.delete_by_id(decision.evict_post_id)
                    logger.info("Evicted oldest post", owner=owner.username, post_id=decision.evict_post_id)

                post = Post(
                    owner_username=owner.username,
                    owner_email=owner.email,
                    caption=(caption or "").strip() or None,
                    media_ref=media_ref,
                    created_at=now,
                    public_release_time=compute_release_time(now, self.schedule),
                )
                self.posts.insert(post)
            except StorageError as e:
                # The uploaded image has no post pointing at it
                logger.error(
                    "Post not saved, uploaded media orphaned",
                    owner=owner.username,
                    media_ref=media_ref,
                    evicted_post_id=decision.evict_post_id,
                    error=str(e),
                )
                raise

        logger.info(
            "Post created",
            post_id=post.id,
            owner=owner.username,
            public_release_time=post.public_release_time.isoformat(),
        )
        return CreatedPost(post=post, stats=decision.stats, evicted_post_id=decision.evict_post_id)

    def delete_post(self, owner: User, post_id: str) -> None:
        post = self.posts.get(post_id)
        if not post:
            raise NotFoundError("Post not found")
        if post.owner_email.lower() != owner.email.lower():
            raise PermissionDeniedError("You can only delete your own posts")
        with acquire_lock(lock_key_posting(owner.email)):
            self.posts.delete_by_id(post_id)
        logger.info("Post deleted", post_id=post_id, owner=owner.username)

    def list_own_posts(self, owner: User) -> List[Post]:
        """All of the owner's posts, scheduled ones included, newest first."""
        return self.posts.list_for_owner(owner.email)

    def list_profile_posts(self, profile: User, viewer: Optional[User]) -> List[Post]:
        """Owners see everything; other viewers only released posts."""
        if viewer is not None and viewer.email.lower() == profile.email.lower():
            return self.posts.list_for_owner(profile.email)
        return self.posts.list_for_owner(profile.email, released_by=self._now())

    def recent_feed(self) -> Tuple[str, List[Post]]:
        """Posts released in the last N daily releases, newest first, with the feed label."""
        releases = self.settings.recent_activity.past_releases_displayed
        earliest, latest = recent_release_window(self._now(), self.schedule, releases)
        label = self.settings.recent_activity.feed_label.format(past_releases_displayed=releases)
        return label, self.posts.list_released_between(earliest, latest)
