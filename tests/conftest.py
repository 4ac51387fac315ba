"""
Pytest configuration and fixtures for formula-installer tests.
"""

import hashlib
import io
import tarfile
import zipfile
from pathlib import Path

import pytest
import yaml

MILYAI_SCRIPT = b"#!/bin/sh\necho 'MilyAI: Modular AI Assistant'\necho 'Usage: milyai [OPTIONS]'\n"


def make_tar_gz(entries, dirs=()):
    """Build a .tar.gz in memory from ``{name: (bytes, mode)}``."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for d in dirs:
            info = tarfile.TarInfo(d)
            info.type = tarfile.DIRTYPE
            info.mode = 0o755
            tar.addfile(info)
        for name, (data, mode) in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = mode
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def make_zip(entries):
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, (data, mode) in entries.items():
            info = zipfile.ZipInfo(name)
            info.external_attr = (0o100000 | mode) << 16
            zf.writestr(info, data)
    return buf.getvalue()


def sha256(data):
    return hashlib.sha256(data).hexdigest()


@pytest.fixture
def milyai_tarball():
    return make_tar_gz({"milyai": (MILYAI_SCRIPT, 0o755)})


@pytest.fixture
def prefix(tmp_path):
    p = tmp_path / "prefix"
    p.mkdir()
    return p


@pytest.fixture
def write_manifest(tmp_path):
    """Write a milyai manifest for ``artifact`` bytes served from a file:// URL."""

    def _write(artifact, *, checksum=None, name="milyai", **overrides):
        artifact_path = tmp_path / "dist" / "milyai-macos-universal.tar.gz"
        artifact_path.parent.mkdir(parents=True, exist_ok=True)
        artifact_path.write_bytes(artifact)

        data = {
            "name": name,
            "desc": "Modular AI assistant CLI",
            "homepage": "https://example.com/milyai",
            "version": "0.1.0",
            "url": artifact_path.as_uri(),
            "sha256": checksum or sha256(artifact),
            "install": [{"source": "milyai", "dest": "{bin}/milyai"}],
            "test": {"command": "milyai --help", "expect": "MilyAI"},
        }
        data.update(overrides)
        path = tmp_path / f"{name}.yaml"
        path.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def cli_args(prefix, tmp_path):
    """Global CLI flags that keep every write inside tmp_path."""
    return ["--prefix", str(prefix), "--log", str(tmp_path / "logs" / "install.log")]


@pytest.fixture
def repo_root():
    return Path(__file__).resolve().parents[1]
