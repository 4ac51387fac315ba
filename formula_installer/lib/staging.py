from __future__ import annotations

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from ..errors import FilesystemError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedFile:
    tmp_path: Path
    dest: Path


def _temp_beside(dest: Path, tag: str) -> Path:
    # Same directory as dest so os.replace never crosses filesystems.
    fd, name = tempfile.mkstemp(prefix=f".{dest.name}.{tag}-", dir=str(dest.parent))
    os.close(fd)
    return Path(name)


def stage_file(dest: Path, data: bytes, *, executable: bool) -> StagedFile:
    """Write ``data`` to a hidden temp file next to ``dest``; dest is untouched."""

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        tmp = _temp_beside(dest, "staged")
    except OSError as e:
        raise FilesystemError(f"cannot stage {dest}: {e}") from e

    try:
        with open(tmp, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp, 0o755 if executable else 0o644)
    except OSError as e:
        _unlink_quiet(tmp)
        raise FilesystemError(f"cannot stage {dest}: {e}") from e

    logger.debug("Staged %s -> %s", dest, tmp)
    return StagedFile(tmp_path=tmp, dest=dest)


def discard(staged: Sequence[StagedFile]) -> None:
    for s in staged:
        _unlink_quiet(s.tmp_path)


def _unlink_quiet(p: Path) -> None:
    try:
        p.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temporary file %s: %s", p, e)


def promote(staged: Sequence[StagedFile]) -> None:
    """Atomically move every staged file to its destination.

    Each destination is replaced with os.replace. If any replace fails, the
    destinations already promoted in this call are restored to their previous
    contents (or removed if they did not exist), so the run leaves the
    pre-run state behind.
    """

    backups: List[Optional[Path]] = []
    promoted: List[StagedFile] = []

    try:
        for s in staged:
            if s.dest.is_dir():
                raise FilesystemError(f"destination is a directory: {s.dest}")
            if s.dest.exists():
                backup = _temp_beside(s.dest, "backup")
                shutil.copy2(s.dest, backup)
                backups.append(backup)
            else:
                backups.append(None)

        for s in staged:
            os.replace(s.tmp_path, s.dest)
            promoted.append(s)
            logger.info("Installed %s", s.dest)
    except BaseException as e:
        # Interrupts included: a run never ends with a mix of old and new files.
        _rollback(promoted, backups)
        discard(staged)
        if isinstance(e, OSError):
            raise FilesystemError(f"cannot install {e.filename or 'files'}: {e}") from e
        raise
    finally:
        _discard_backups(backups)


def _rollback(promoted: Sequence[StagedFile], backups: Sequence[Optional[Path]]) -> None:
    for s, backup in zip(promoted, backups):
        try:
            if backup is not None:
                os.replace(backup, s.dest)
            else:
                s.dest.unlink()
            logger.warning("Rolled back %s", s.dest)
        except OSError as e:
            logger.error("Rollback of %s failed: %s", s.dest, e)


def _discard_backups(backups: Sequence[Optional[Path]]) -> None:
    for b in backups:
        if b is not None:
            _unlink_quiet(b)
