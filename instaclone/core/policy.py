"""
Post publication & quota policy.

Two rule sets decide what happens when an owner uploads a photo:

- Publication scheduling: a new post becomes visible to other users only at
  the next daily release instant (release_hour:release_minute), giving the
  feed a once-a-day edition.
- Upload quota: an owner may create at most daily_limit posts per quota day
  and hold at most max_total_posts posts; at the total ceiling the oldest
  post is evicted, but only when the owner confirms.

Everything here is pure. Counts come in, decisions go out; the posting
service owns storage, the clock and the per-owner lock.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..utils.exceptions import (
    ConfigError,
    DailyLimitExceeded,
    TotalLimitReachedNeedsConfirmation,
)


@dataclass(frozen=True)
class ReleaseSchedule:
    """Daily release instant. local_tz=None means the server's local zone."""
    release_hour: int = 9
    release_minute: int = 0
    use_utc: bool = True
    local_tz: Optional[tzinfo] = None

    def __post_init__(self) -> None:
        if not 0 <= self.release_hour <= 23:
            raise ConfigError(f"release_hour must be 0-23, got {self.release_hour}")
        if not 0 <= self.release_minute <= 59:
            raise ConfigError(f"release_minute must be 0-59, got {self.release_minute}")


@dataclass(frozen=True)
class QuotaLimits:
    """Upload ceilings and the zone whose midnight starts a quota day."""
    daily_limit: int = 3
    max_total_posts: int = 50
    quota_time_zone: str = "local"
    local_tz: Optional[tzinfo] = None

    def __post_init__(self) -> None:
        if self.daily_limit <= 0:
            raise ConfigError(f"daily_limit must be positive, got {self.daily_limit}")
        if self.max_total_posts <= 0:
            raise ConfigError(f"max_total_posts must be positive, got {self.max_total_posts}")
        if self.quota_time_zone not in ("local", "utc"):
            raise ConfigError(f"quota_time_zone must be 'local' or 'utc', got {self.quota_time_zone!r}")


def as_aware(moment: datetime) -> datetime:
    # Naive datetimes are UTC throughout the code base
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def _zone_date(moment: datetime, use_utc: bool, local_tz: Optional[tzinfo]) -> date:
    if use_utc:
        return moment.astimezone(timezone.utc).date()
    return moment.astimezone(local_tz).date()


def _wall_clock(day: date, hour: int, minute: int, use_utc: bool, local_tz: Optional[tzinfo]) -> datetime:
    t = time(hour, minute)
    if use_utc:
        return datetime.combine(day, t, tzinfo=timezone.utc)
    if local_tz is not None:
        return datetime.combine(day, t, tzinfo=local_tz)
    return datetime.combine(day, t).astimezone()


# --- Publication scheduling -------------------------------------------------


def compute_release_time(submitted_at: datetime, schedule: ReleaseSchedule) -> datetime:
    """
    Instant at which a post submitted at submitted_at becomes public.

    The candidate is submitted_at's calendar date at the release time. A
    submission at or after the candidate rolls over to the next day's
    release, so the result is never earlier than submitted_at.
    """
    submitted_at = as_aware(submitted_at)
    day = _zone_date(submitted_at, schedule.use_utc, schedule.local_tz)
    candidate = _wall_clock(
        day, schedule.release_hour, schedule.release_minute, schedule.use_utc, schedule.local_tz
    )
    if submitted_at >= candidate:
        candidate = _wall_clock(
            day + timedelta(days=1),
            schedule.release_hour,
            schedule.release_minute,
            schedule.use_utc,
            schedule.local_tz,
        )
    return candidate


def last_release_time(now: datetime, schedule: ReleaseSchedule) -> datetime:
    """Most recent release instant that is not after now."""
    now = as_aware(now)
    day = _zone_date(now, schedule.use_utc, schedule.local_tz)
    candidate = _wall_clock(
        day, schedule.release_hour, schedule.release_minute, schedule.use_utc, schedule.local_tz
    )
    if candidate > now:
        candidate = _wall_clock(
            day - timedelta(days=1),
            schedule.release_hour,
            schedule.release_minute,
            schedule.use_utc,
            schedule.local_tz,
        )
    return candidate


def recent_release_window(now: datetime, schedule: ReleaseSchedule, releases: int) -> Tuple[datetime, datetime]:
    """[earliest, latest] release instants covering the last `releases` daily releases."""
    if releases <= 0:
        raise ValueError("releases must be positive")
    latest = last_release_time(now, schedule)
    latest_day = _zone_date(latest, schedule.use_utc, schedule.local_tz)
    earliest = _wall_clock(
        latest_day - timedelta(days=releases - 1),
        schedule.release_hour,
        schedule.release_minute,
        schedule.use_utc,
        schedule.local_tz,
    )
    return earliest, latest


def is_publicly_visible(public_release_time: datetime, now: datetime) -> bool:
    return as_aware(public_release_time) <= as_aware(now)


# --- Upload quota -----------------------------------------------------------


class QuotaOutcome(str, Enum):
    ALLOW = "allow"
    REJECT_DAILY = "reject_daily"
    REJECT_TOTAL_NEEDS_CONFIRMATION = "reject_total_needs_confirmation"


@dataclass(frozen=True)
class QuotaCounts:
    """Snapshot of an owner's posts, read inside the owner's unit of work."""
    today_count: int
    total_count: int
    oldest_post_id: Optional[str] = None


@dataclass(frozen=True)
class QuotaDecision:
    outcome: QuotaOutcome
    owner_id: str
    stats: Dict[str, Any] = field(default_factory=dict)
    evict_post_id: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is QuotaOutcome.ALLOW

    def raise_for_rejection(self) -> None:
        """Turn a rejection into its exception; no-op when allowed."""
        if self.outcome is QuotaOutcome.REJECT_DAILY:
            raise DailyLimitExceeded(self.stats["daily_limit"], self.stats["today_uploads"])
        if self.outcome is QuotaOutcome.REJECT_TOTAL_NEEDS_CONFIRMATION:
            raise TotalLimitReachedNeedsConfirmation(
                self.stats["max_total_posts"], self.stats["current_total"]
            )


def quota_day_window(now: datetime, limits: QuotaLimits) -> Tuple[datetime, datetime]:
    """[start, end) of the quota day containing now."""
    use_utc = limits.quota_time_zone == "utc"
    day = _zone_date(as_aware(now), use_utc, limits.local_tz)
    start = _wall_clock(day, 0, 0, use_utc, limits.local_tz)
    end = _wall_clock(day + timedelta(days=1), 0, 0, use_utc, limits.local_tz)
    return start, end


def evaluate_upload_quota(
    owner_id: str,
    now: datetime,
    limits: QuotaLimits,
    confirm_eviction: bool,
    counts: QuotaCounts,
) -> QuotaDecision:
    """
    Decide whether owner_id may create a post right now.

    Rules are checked in order: the daily ceiling always wins, then the
    total ceiling (soft: it asks for confirmation), then an eviction of the
    oldest post when the owner confirmed. `counts` must describe the quota
    day containing `now` (see quota_day_window).
    """
    if counts.today_count >= limits.daily_limit:
        return QuotaDecision(
            outcome=QuotaOutcome.REJECT_DAILY,
            owner_id=owner_id,
            stats={"daily_limit": limits.daily_limit, "today_uploads": counts.today_count},
        )

    evict_post_id = None
    at_ceiling = counts.total_count >= limits.max_total_posts
    if at_ceiling and not confirm_eviction:
        return QuotaDecision(
            outcome=QuotaOutcome.REJECT_TOTAL_NEEDS_CONFIRMATION,
            owner_id=owner_id,
            stats={"max_total_posts": limits.max_total_posts, "current_total": counts.total_count},
        )
    if at_ceiling:
        evict_post_id = counts.oldest_post_id

    today_uploads = counts.today_count + 1
    total_after = counts.total_count - (1 if evict_post_id else 0) + 1
    return QuotaDecision(
        outcome=QuotaOutcome.ALLOW,
        owner_id=owner_id,
        stats={
            "daily_limit": limits.daily_limit,
            "today_uploads": today_uploads,
            "remaining_uploads": limits.daily_limit - today_uploads,
            "total_posts": total_after,
            "max_total_posts": limits.max_total_posts,
        },
        evict_post_id=evict_post_id,
    )
