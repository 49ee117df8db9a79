"""Per-resource file locks."""
import asyncio
import fcntl
import hashlib
import os
import re
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from mcp_env_provisioner.errors import LockTimeout
from mcp_env_provisioner.logging import get_logger
from mcp_env_provisioner.types import LockHandle

logger = get_logger(__name__)

T = TypeVar("T")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def lock_filename(key: str) -> str:
    """Map a resource key onto a lock file name.

    The readable prefix is lossy, so a digest of the raw key keeps distinct
    keys on distinct files.
    """
    if not key:
        raise ValueError("Lock key cannot be empty")
    digest = hashlib.sha256(key.encode()).hexdigest()[:16]
    return f"{_UNSAFE_CHARS.sub('_', key)[:64]}-{digest}.lock"


class ResourceLock:
    """Exclusive, retrying file lock keyed by resource identifier.

    Locks are ``flock`` claims on a descriptor opened per acquisition, so
    they exclude each other inside one process as well as across processes,
    and the kernel drops them if the holder dies.
    """

    def __init__(
        self,
        lock_dir: Path,
        retries: int = 10,
        min_delay: float = 0.1,
        factor: float = 2.0,
        max_delay: float = 2.0,
    ):
        self.lock_dir = Path(lock_dir)
        self.retries = retries
        self.min_delay = min_delay
        self.factor = factor
        self.max_delay = max_delay

    def path_for(self, key: str) -> Path:
        return self.lock_dir / lock_filename(key)

    def _delays(self):
        delay = self.min_delay
        for _ in range(self.retries):
            yield delay
            delay = min(delay * self.factor, self.max_delay)

    async def _acquire(self, key: str, path: Path) -> int:
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        delays = self._delays()
        attempts = 0
        while True:
            attempts += 1
            fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o600)
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            except OSError as e:
                os.close(fd)
                if not isinstance(e, BlockingIOError):
                    raise
            else:
                return fd

            delay = next(delays, None)
            if delay is None:
                logger.warning("lock_timeout", key=key, attempts=attempts)
                raise LockTimeout(key, attempts)
            logger.debug("lock_busy", key=key, attempt=attempts, retry_in=delay)
            await asyncio.sleep(delay)

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[LockHandle]:
        """Hold the lock for ``key`` for the duration of the block."""
        path = self.path_for(key)
        fd = await self._acquire(key, path)
        handle = LockHandle(key=key, path=path, acquired_at=datetime.now(timezone.utc))
        logger.debug("lock_acquired", key=key, path=str(path))
        try:
            yield handle
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            os.close(fd)
            logger.debug("lock_released", key=key)

    async def with_lock(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` while holding the lock for ``key``."""
        async with self.hold(key):
            return await fn()
