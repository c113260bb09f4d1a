import subprocess
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

import pytest

from instaclone.auth.service import AuthService
from instaclone.core.policy import QuotaLimits, ReleaseSchedule
from instaclone.models.user import Invitation
from instaclone.services.posting_service import PostingService
from instaclone.stores.invitations import InvitationStore
from instaclone.utils.config import Settings


class FixedClock:
    """Callable clock that tests move by hand."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeUploader:
    def __init__(self, fail: Optional[Exception] = None):
        self.fail = fail
        self.uploaded: List[str] = []

    def upload(self, data: bytes, filename: str, content_type: Optional[str] = None) -> str:
        if self.fail:
            raise self.fail
        url = f"https://media.test/{len(self.uploaded)}-{filename}"
        self.uploaded.append(url)
        return url


@pytest.fixture(autouse=True)
def data_dir(monkeypatch, tmp_path) -> Path:
    """Every test gets its own document store directory."""
    path = tmp_path / "data"
    monkeypatch.setenv("INSTACLONE_DATA_DIR", str(path))
    return path


@pytest.fixture
def dead_pid() -> int:
    """PID of a process that has already exited and been reaped."""
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    return proc.pid


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def uploader() -> FakeUploader:
    return FakeUploader()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def posting(uploader, clock, settings) -> PostingService:
    return PostingService(
        uploader=uploader,
        settings=settings,
        clock=clock,
        schedule=ReleaseSchedule(release_hour=18, release_minute=0, use_utc=True),
        limits=QuotaLimits(daily_limit=3, max_total_posts=50, quota_time_zone="utc"),
    )


@pytest.fixture
def auth() -> AuthService:
    return AuthService()


def invite(email: str, school: str = "Northside High", cohort_year: Optional[str] = "2023/24") -> Invitation:
    invitation = Invitation(email=email, school=school, cohort_year=cohort_year, referring_username="founder")
    return InvitationStore().create(invitation)


@pytest.fixture
def make_user(auth):
    """Invite and sign up a user in one step."""

    def _make(email: str, name: str = "Test User", password: str = "password123", **invite_kwargs):
        invite(email, **invite_kwargs)
        return auth.signup(email=email, password=password, name=name)

    return _make
