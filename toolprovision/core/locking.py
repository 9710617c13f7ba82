"""
Concurrent access control for toolprovision.

File-based locks keep several processes (or threads) from racing on the
shared cache: one lock for the registry file and one per (name, version)
key so only one acquisition of a given tool runs at a time.

Usage:
    from toolprovision.core.locking import LockManager

    lock_manager = LockManager(cache_dir / "lock")
    with lock_manager.tool_lock("compiler@4.0.5"):
        # Only this process downloads compiler 4.0.5
        ...
"""

import logging
import re
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from toolprovision.core.exceptions import CacheLockTimeout

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_TIMEOUT = 30
DEFAULT_TOOL_TIMEOUT = 900

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class LockManager:
    """
    Hands out file locks stored under a single lock directory.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Path):
        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def registry_lock(self, timeout: int = DEFAULT_REGISTRY_TIMEOUT):
        """
        Acquire the registry lock.

        Raises:
            CacheLockTimeout: If lock can't be acquired within timeout
        """
        with self._acquire(self.lock_dir / "registry.lock", timeout, "registry"):
            yield

    @contextmanager
    def tool_lock(self, key: str, timeout: int = DEFAULT_TOOL_TIMEOUT):
        """
        Acquire the in-flight lock for one cache key.

        A long timeout is used because the holder may be sleeping through
        download backoff.

        Raises:
            CacheLockTimeout: If lock can't be acquired within timeout
        """
        lock_name = _UNSAFE_CHARS.sub("_", key)
        with self._acquire(self.lock_dir / f"{lock_name}.lock", timeout, key):
            yield

    @contextmanager
    def _acquire(self, lock_path: Path, timeout: int, label: str):
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired lock: {label}")
                yield
            logger.debug(f"Released lock: {label}")
        except Timeout as e:
            logger.error(f"Failed to acquire lock for {label} within {timeout}s")
            raise CacheLockTimeout(
                f"Could not acquire lock for {label} within {timeout} seconds"
            ) from e


__all__ = ["LockManager", "DEFAULT_REGISTRY_TIMEOUT", "DEFAULT_TOOL_TIMEOUT"]
