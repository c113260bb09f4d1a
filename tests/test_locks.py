import os
import threading
import time

import pytest

from instaclone.core import locks
from instaclone.core.locks import _lock_path, acquire_lock, lock_key_posting
from instaclone.utils.exceptions import InstaCloneError, LockTimeoutError


def test_lock_key_is_case_insensitive():
    assert lock_key_posting("Jane@School.edu") == "lock:owner:jane@school.edu:posting"


def test_lock_released_after_block(data_dir):
    key = lock_key_posting("a@school.edu")
    with acquire_lock(key):
        assert list((data_dir / "locks").iterdir())
    assert not list((data_dir / "locks").iterdir())
    with acquire_lock(key):
        pass


def test_lock_times_out_while_held():
    key = lock_key_posting("a@school.edu")
    with acquire_lock(key):
        with pytest.raises(TimeoutError):
            with acquire_lock(key, timeout_seconds=0.1):
                pass


def test_timeout_does_not_release_the_holder(data_dir):
    key = lock_key_posting("a@school.edu")
    with acquire_lock(key):
        with pytest.raises(TimeoutError):
            with acquire_lock(key, timeout_seconds=0.1):
                pass
        assert list((data_dir / "locks").iterdir())


def test_lock_serialises_threads():
    key = lock_key_posting("a@school.edu")
    inside = []
    overlaps = []

    def worker():
        with acquire_lock(key, timeout_seconds=5):
            if inside:
                overlaps.append(True)
            inside.append(True)
            time.sleep(0.02)
            inside.pop()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert overlaps == []


def test_different_owners_do_not_block():
    with acquire_lock(lock_key_posting("a@school.edu")):
        with acquire_lock(lock_key_posting("b@school.edu"), timeout_seconds=0.1):
            pass


def test_timeout_is_a_domain_error():
    key = lock_key_posting("a@school.edu")
    with acquire_lock(key):
        with pytest.raises(LockTimeoutError) as exc_info:
            with acquire_lock(key, timeout_seconds=0.1):
                pass
    assert isinstance(exc_info.value, InstaCloneError)


def test_lock_left_by_dead_process_is_broken(data_dir, dead_pid):
    key = lock_key_posting("a@school.edu")
    _lock_path(key).write_text(str(dead_pid))
    with acquire_lock(key, timeout_seconds=0.1):
        assert _lock_path(key).read_text() == str(os.getpid())
    assert not list((data_dir / "locks").iterdir())


def test_lock_older_than_stale_age_is_broken():
    key = lock_key_posting("a@school.edu")
    path = _lock_path(key)
    path.write_text("")
    old = time.time() - locks.LOCK_STALE_SECONDS - 10
    os.utime(path, (old, old))
    with acquire_lock(key, timeout_seconds=0.1):
        pass


def test_fresh_lock_of_live_process_is_respected():
    key = lock_key_posting("a@school.edu")
    path = _lock_path(key)
    path.write_text(str(os.getpid()))
    with pytest.raises(LockTimeoutError):
        with acquire_lock(key, timeout_seconds=0.1):
            pass
    assert path.read_text() == str(os.getpid())


def test_default_timeout_read_at_call_time(monkeypatch):
    monkeypatch.setattr(locks, "LOCK_TIMEOUT_SECONDS", 0.1)
    key = lock_key_posting("a@school.edu")
    with acquire_lock(key):
        with pytest.raises(LockTimeoutError):
            with acquire_lock(key):
                pass
