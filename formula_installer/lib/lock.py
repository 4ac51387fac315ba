from __future__ import annotations

import fcntl
import logging
import os
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..errors import FilesystemError, InstallLockedError

logger = logging.getLogger(__name__)


def lock_path(lock_dir: Path, package: str) -> Path:
    safe = re.sub(r"[^A-Za-z0-9._-]", "_", package)
    return lock_dir / f"{safe}.lock"


@contextmanager
def package_lock(lock_dir: Path, package: str) -> Iterator[Path]:
    """Hold an exclusive, non-blocking process lock for ``package``.

    A second run for the same package (from this or another process) fails
    fast with InstallLockedError instead of waiting.
    """

    path = lock_path(lock_dir, package)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(str(path), os.O_RDWR | os.O_CREAT, 0o644)
    except OSError as e:
        raise FilesystemError(f"cannot open lock file {path}: {e}") from e

    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise InstallLockedError(
                f"another install of {package} is in progress (lock {path})",
                package=package,
            ) from e

        try:
            os.ftruncate(fd, 0)
            os.write(fd, f"{os.getpid()}\n".encode("ascii"))
        except OSError as e:
            raise FilesystemError(f"cannot write lock file {path}: {e}", package=package) from e
        logger.debug("Acquired lock %s", path)
        try:
            yield path
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Released lock %s", path)
    finally:
        os.close(fd)
