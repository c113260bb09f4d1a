"""Tests for quota-gated post creation and release visibility"""

import threading
from datetime import datetime, timedelta, timezone

import pytest
from structlog.testing import capture_logs

from instaclone.core.locks import _lock_path, lock_key_posting
from instaclone.models.post import Post
from instaclone.utils.exceptions import (
    DailyLimitExceeded,
    MediaUploadError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
    TotalLimitReachedNeedsConfirmation,
)

from conftest import FakeUploader, FixedClock

UTC = timezone.utc
IMAGE = b"\x89PNG fake image"


def seed_posts(posting, owner, count, start):
    """Insert `count` released posts for owner, one per day ending before `start`."""
    ids = []
    for i in range(count):
        created = start - timedelta(days=count - i)
        post = Post(
            owner_username=owner.username,
            owner_email=owner.email,
            media_ref=f"https://media.test/seed-{i}.jpg",
            created_at=created,
            public_release_time=created + timedelta(hours=1),
        )
        posting.posts.insert(post)
        ids.append(post.id)
    return ids


@pytest.fixture
def alice(make_user):
    return make_user("alice@school.edu", name="Alice Smith")


@pytest.fixture
def bob(make_user):
    return make_user("bob@school.edu", name="Bob Jones")


def test_create_post_schedules_next_release(posting, alice, uploader):
    created = posting.create_post(alice, IMAGE, "photo.png", "image/png", caption="  first day  ")
    post = created.post
    assert post.created_at == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)
    assert post.public_release_time == datetime(2024, 1, 1, 18, 0, tzinfo=UTC)
    assert post.caption == "first day"
    assert post.media_ref == uploader.uploaded[0]
    assert created.stats["today_uploads"] == 1
    assert created.stats["remaining_uploads"] == 2
    assert created.evicted_post_id is None
    assert posting.posts.get(post.id) == post


def test_post_after_cutoff_releases_next_day(posting, alice, clock):
    clock.now = datetime(2024, 1, 1, 19, 0, tzinfo=UTC)
    post = posting.create_post(alice, IMAGE, "photo.jpg").post
    assert post.public_release_time == datetime(2024, 1, 2, 18, 0, tzinfo=UTC)


def test_daily_limit_rejects_fourth_upload(posting, alice, uploader):
    for _ in range(3):
        posting.create_post(alice, IMAGE, "photo.jpg")
    with pytest.raises(DailyLimitExceeded) as exc_info:
        posting.create_post(alice, IMAGE, "photo.jpg")
    assert exc_info.value.daily_limit == 3
    assert exc_info.value.today_uploads == 3
    assert len(uploader.uploaded) == 3
    assert posting.posts.count_for_owner(alice.email) == 3


def test_daily_limit_resets_next_quota_day(posting, alice, clock):
    for _ in range(3):
        posting.create_post(alice, IMAGE, "photo.jpg")
    clock.now = datetime(2024, 1, 2, 0, 0, tzinfo=UTC)
    created = posting.create_post(alice, IMAGE, "photo.jpg")
    assert created.stats["today_uploads"] == 1


def test_daily_limit_is_per_owner(posting, alice, bob):
    for _ in range(3):
        posting.create_post(alice, IMAGE, "photo.jpg")
    assert posting.create_post(bob, IMAGE, "photo.jpg").post.owner_username == bob.username


def test_total_limit_needs_confirmation(posting, alice, clock, uploader):
    seed_posts(posting, alice, 50, clock.now)
    with pytest.raises(TotalLimitReachedNeedsConfirmation) as exc_info:
        posting.create_post(alice, IMAGE, "photo.jpg")
    assert exc_info.value.max_total_posts == 50
    assert exc_info.value.current_total == 50
    assert uploader.uploaded == []
    assert posting.posts.count_for_owner(alice.email) == 50


def test_confirmed_upload_evicts_oldest(posting, alice, clock):
    ids = seed_posts(posting, alice, 50, clock.now)
    created = posting.create_post(alice, IMAGE, "photo.jpg", confirm_eviction=True)
    assert created.evicted_post_id == ids[0]
    assert posting.posts.get(ids[0]) is None
    assert posting.posts.get(ids[1]) is not None
    assert posting.posts.count_for_owner(alice.email) == 50
    assert created.stats["total_posts"] == 50


def test_failed_upload_does_not_evict(posting, alice, clock):
    ids = seed_posts(posting, alice, 50, clock.now)
    posting._uploader = FakeUploader(fail=MediaUploadError("boom", status_code=502))
    with pytest.raises(MediaUploadError):
        posting.create_post(alice, IMAGE, "photo.jpg", confirm_eviction=True)
    assert posting.posts.get(ids[0]) is not None
    assert posting.posts.count_for_owner(alice.email) == 50


def test_upload_status(posting, alice):
    posting.create_post(alice, IMAGE, "photo.jpg")
    status = posting.upload_status(alice)
    assert status == {
        "daily_limit": 3,
        "today_uploads": 1,
        "remaining_uploads": 2,
        "total_posts": 1,
        "max_total_posts": 50,
        "at_total_limit": False,
    }


def test_profile_hides_scheduled_posts_from_others(posting, alice, bob, clock):
    post = posting.create_post(alice, IMAGE, "photo.jpg").post
    assert posting.list_profile_posts(alice, alice) == [post]
    assert posting.list_profile_posts(alice, bob) == []
    clock.now = post.public_release_time
    assert posting.list_profile_posts(alice, bob) == [post]


def test_own_posts_newest_first(posting, alice, clock):
    first = posting.create_post(alice, IMAGE, "a.jpg").post
    clock.advance(minutes=5)
    second = posting.create_post(alice, IMAGE, "b.jpg").post
    assert [p.id for p in posting.list_own_posts(alice)] == [second.id, first.id]


def test_recent_feed_window(posting, alice, bob, clock):
    old = Post(
        owner_username=bob.username,
        owner_email=bob.email,
        media_ref="https://media.test/old.jpg",
        created_at=datetime(2023, 12, 20, 8, 0, tzinfo=UTC),
        public_release_time=datetime(2023, 12, 20, 18, 0, tzinfo=UTC),
    )
    recent = Post(
        owner_username=bob.username,
        owner_email=bob.email,
        media_ref="https://media.test/recent.jpg",
        created_at=datetime(2023, 12, 31, 8, 0, tzinfo=UTC),
        public_release_time=datetime(2023, 12, 31, 18, 0, tzinfo=UTC),
    )
    posting.posts.insert(old)
    posting.posts.insert(recent)
    scheduled = posting.create_post(alice, IMAGE, "photo.jpg").post

    label, posts = posting.recent_feed()
    assert label == "Last 3 days"
    assert [p.id for p in posts] == [recent.id]

    clock.now = scheduled.public_release_time
    _, posts = posting.recent_feed()
    assert [p.id for p in posts] == [scheduled.id, recent.id]


def test_delete_post(posting, alice, bob):
    post = posting.create_post(alice, IMAGE, "photo.jpg").post
    with pytest.raises(PermissionDeniedError):
        posting.delete_post(bob, post.id)
    posting.delete_post(alice, post.id)
    assert posting.posts.get(post.id) is None
    with pytest.raises(NotFoundError):
        posting.delete_post(alice, post.id)


def test_concurrent_uploads_respect_daily_limit(posting, alice):
    results = []

    def upload():
        try:
            posting.create_post(alice, IMAGE, "photo.jpg")
            results.append("ok")
        except DailyLimitExceeded:
            results.append("rejected")

    threads = [threading.Thread(target=upload) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert results.count("ok") == 3
    assert results.count("rejected") == 3
    assert posting.posts.count_for_owner(alice.email) == 3


def test_upload_succeeds_after_holder_crashed(posting, alice, dead_pid):
    _lock_path(lock_key_posting(alice.email)).write_text(str(dead_pid))
    created = posting.create_post(alice, IMAGE, "photo.jpg")
    assert posting.posts.get(created.post.id) is not None
    assert not _lock_path(lock_key_posting(alice.email)).exists()


def test_failed_insert_logs_orphaned_media(posting, alice, uploader, monkeypatch):
    def broken_insert(post):
        raise StorageError("disk full")

    monkeypatch.setattr(posting.posts, "insert", broken_insert)
    with capture_logs() as logs:
        with pytest.raises(StorageError):
            posting.create_post(alice, IMAGE, "photo.jpg")

    orphaned = [e for e in logs if e["event"] == "Post not saved, uploaded media orphaned"]
    assert len(orphaned) == 1
    assert orphaned[0]["media_ref"] == uploader.uploaded[0]
    assert orphaned[0]["log_level"] == "error"
    assert posting.posts.count_for_owner(alice.email) == 0


def test_failed_eviction_logs_orphaned_media(posting, alice, clock, uploader, monkeypatch):
    ids = seed_posts(posting, alice, 50, clock.now)

    def broken_delete(post_id):
        raise StorageError("disk full")

    monkeypatch.setattr(posting.posts, "delete_by_id", broken_delete)
    with capture_logs() as logs:
        with pytest.raises(StorageError):
            posting.create_post(alice, IMAGE, "photo.jpg", confirm_eviction=True)

    orphaned = [e for e in logs if e["event"] == "Post not saved, uploaded media orphaned"]
    assert orphaned[0]["media_ref"] == uploader.uploaded[0]
    assert orphaned[0]["evicted_post_id"] == ids[0]


def test_naive_clock_is_read_as_utc(posting, alice, bob):
    posting.clock = FixedClock(datetime(2024, 1, 1, 10, 0))
    created = posting.create_post(alice, IMAGE, "photo.jpg")
    assert created.post.created_at == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)
    assert created.post.public_release_time == datetime(2024, 1, 1, 18, 0, tzinfo=UTC)
    assert posting.upload_status(alice)["today_uploads"] == 1
    assert posting.list_profile_posts(alice, viewer=bob) == []


def test_post_accepts_naive_datetimes_as_utc():
    post = Post(
        owner_username="aliceSmith",
        owner_email="alice@school.edu",
        media_ref="https://media.test/a.jpg",
        created_at=datetime(2024, 1, 1, 10, 0),
        public_release_time=datetime(2024, 1, 1, 18, 0, tzinfo=UTC),
    )
    assert post.created_at == datetime(2024, 1, 1, 10, 0, tzinfo=UTC)

    with pytest.raises(ValueError, match="must not precede"):
        Post(
            owner_username="aliceSmith",
            owner_email="alice@school.edu",
            media_ref="https://media.test/a.jpg",
            created_at=datetime(2024, 1, 1, 19, 0, tzinfo=UTC),
            public_release_time=datetime(2024, 1, 1, 18, 0),
        )
