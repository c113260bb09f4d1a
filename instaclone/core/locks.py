"""
Per-owner locking for the post creation unit of work.

Keys: lock:owner:{email}:posting
File-based locks under <data_dir>/locks, so every uvicorn worker process
sharing the data directory serialises on the same key. The lock file holds
the holder's PID; a lock whose holder is gone, or that is older than
LOCK_STALE_SECONDS, is broken by the next waiter.
"""

from __future__ import annotations

import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional, Tuple
from uuid import uuid4

from ..utils.config import data_dir
from ..utils.exceptions import LockTimeoutError
from ..utils.logger import get_logger

logger = get_logger(__name__)

LOCK_TIMEOUT_SECONDS = 30
LOCK_POLL_INTERVAL = 0.05
LOCK_STALE_SECONDS = 300

# (pid text, inode, mtime_ns)
Holder = Tuple[str, int, int]


def _lock_path(key: str) -> Path:
    safe = "".join(c if c.isalnum() or c in "-_" else "_" for c in key)
    locks_dir = data_dir() / "locks"
    locks_dir.mkdir(parents=True, exist_ok=True)
    return locks_dir / f"{safe}.lock"


def _read_holder(path: Path) -> Optional[Holder]:
    try:
        st = path.stat()
        raw = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    return raw, st.st_ino, st.st_mtime_ns


def _process_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists, owned by another user
        return True
    return True


def _is_stale(holder: Holder) -> bool:
    raw, _, mtime_ns = holder
    if time.time() - mtime_ns / 1e9 >= LOCK_STALE_SECONDS:
        return True
    if raw.isdigit():
        return not _process_alive(int(raw))
    # Empty while the holder is between create and write
    return False


def _break_if_stale(path: Path, key: str) -> bool:
    """Remove path if its holder is stale. True when the caller should retry at once."""
    holder = _read_holder(path)
    if holder is None:
        return True
    if not _is_stale(holder):
        return False

    # Rename first so two waiters cannot both delete a freshly taken lock
    tombstone = path.with_name(f"{path.name}.stale-{uuid4().hex}")
    try:
        os.rename(path, tombstone)
    except FileNotFoundError:
        return True
    if _read_holder(tombstone) != holder:
        try:
            os.link(tombstone, path)
        except FileExistsError:
            logger.warning("Could not restore lock taken during stale check", key=key)
        tombstone.unlink()
        return False
    tombstone.unlink()
    logger.warning(
        "Broke stale lock",
        key=key,
        holder_pid=holder[0] or None,
        age_seconds=round(time.time() - holder[2] / 1e9, 1),
    )
    return True


@contextmanager
def acquire_lock(key: str, timeout_seconds: Optional[float] = None) -> Generator[None, None, None]:
    """
    Acquire a named lock (e.g. lock:owner:{email}:posting).
    Blocks until acquired; raises LockTimeoutError after timeout_seconds
    (default LOCK_TIMEOUT_SECONDS).
    """
    if timeout_seconds is None:
        timeout_seconds = LOCK_TIMEOUT_SECONDS
    path = _lock_path(key)
    start = time.monotonic()
    while True:
        try:
            fd = os.open(str(path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            if _break_if_stale(path, key):
                continue
            if (time.monotonic() - start) >= timeout_seconds:
                logger.warning("Lock wait timed out", key=key, timeout=timeout_seconds)
                raise LockTimeoutError(f"Could not acquire lock {key} within {timeout_seconds}s")
            time.sleep(LOCK_POLL_INTERVAL)
            continue
        try:
            os.write(fd, str(os.getpid()).encode())
        finally:
            os.close(fd)
        break

    try:
        yield
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Lock file vanished before release", key=key)


def lock_key_posting(owner_email: str) -> str:
    return f"lock:owner:{owner_email.lower()}:posting"
