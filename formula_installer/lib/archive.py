from __future__ import annotations

import io
import logging
import posixpath
import stat
import tarfile
import zipfile
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple
from urllib.parse import unquote, urlsplit

from ..errors import ExtractionError

logger = logging.getLogger(__name__)

_ARCHIVE_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.bz2", ".tbz", ".tar.xz", ".txz", ".zip")


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    is_file: bool
    mode: int
    data: Optional[bytes] = None

    @property
    def executable(self) -> bool:
        return bool(self.mode & 0o111)


@dataclass(frozen=True)
class Archive:
    kind: str
    entries: Dict[str, ArchiveEntry]

    def get(self, source: str) -> ArchiveEntry:
        """Return the regular-file entry at ``source`` or raise ExtractionError."""
        key = posixpath.normpath(source)
        entry = self.entries.get(key)
        if entry is None:
            available = sorted(n for n, e in self.entries.items() if e.is_file)[:10]
            raise ExtractionError(
                f"entry {source!r} not found in {self.kind} archive (available: {', '.join(available) or 'none'})"
            )
        if not entry.is_file or entry.data is None:
            raise ExtractionError(f"entry {source!r} is not a regular file")
        return entry


def _normalize(name: str) -> str:
    name = name.replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]
    return posixpath.normpath(name) if name else "."


def _strip_single_root(entries: Iterable[ArchiveEntry]) -> Dict[str, ArchiveEntry]:
    """Homebrew-style unpack: a lone top-level directory is stepped into."""
    items = [e for e in entries if e.name not in {".", ""}]
    tops = {e.name.split("/", 1)[0] for e in items}
    if len(tops) == 1 and any("/" in e.name for e in items):
        root = tops.pop() + "/"
        stripped = {}
        for e in items:
            if e.name.startswith(root):
                rel = e.name[len(root):]
                stripped[rel] = ArchiveEntry(name=rel, is_file=e.is_file, mode=e.mode, data=e.data)
        logger.debug("Stripped single archive root %s", root)
        return stripped
    return {e.name: e for e in items}


def _read_tar(data: bytes) -> Tuple[ArchiveEntry, ...]:
    out = []
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
        for member in tar.getmembers():
            name = _normalize(member.name)
            if member.isfile():
                f = tar.extractfile(member)
                payload = f.read() if f is not None else b""
                out.append(ArchiveEntry(name=name, is_file=True, mode=member.mode, data=payload))
            else:
                out.append(ArchiveEntry(name=name, is_file=False, mode=member.mode))
    return tuple(out)


def _read_zip(data: bytes) -> Tuple[ArchiveEntry, ...]:
    out = []
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        for info in zf.infolist():
            name = _normalize(info.filename)
            mode = (info.external_attr >> 16) & 0o177777
            regular = not info.is_dir() and not stat.S_ISLNK(mode)
            out.append(
                ArchiveEntry(
                    name=name,
                    is_file=regular,
                    mode=mode & 0o777,
                    data=zf.read(info) if regular else None,
                )
            )
    return tuple(out)


def _basename_from_url(url: str) -> str:
    return posixpath.basename(unquote(urlsplit(url).path)) or "download"


def open_archive(data: bytes, url: str) -> Archive:
    """Index the entries of fetched (already verified) bytes.

    Tar (any compression) and zip are detected from content. A payload that
    is neither is a single raw file named after the URL basename.
    """

    basename = _basename_from_url(url)

    try:
        if tarfile.is_tarfile(io.BytesIO(data)):
            archive = Archive(kind="tar", entries=_strip_single_root(_read_tar(data)))
        elif zipfile.is_zipfile(io.BytesIO(data)):
            archive = Archive(kind="zip", entries=_strip_single_root(_read_zip(data)))
        elif basename.lower().endswith(_ARCHIVE_SUFFIXES):
            raise ExtractionError(f"{basename} is not a readable archive")
        else:
            archive = Archive(
                kind="raw",
                entries={basename: ArchiveEntry(name=basename, is_file=True, mode=0o755, data=data)},
            )
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as e:
        raise ExtractionError(f"cannot read archive {basename}: {e}") from e

    logger.info("Opened %s archive %s (%d entries)", archive.kind, basename, len(archive.entries))
    return archive
