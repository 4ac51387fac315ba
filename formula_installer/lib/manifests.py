from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

from ..errors import ManifestError

_SHA256_RE = re.compile(r"^[0-9a-fA-F]{64}$")
_VERSION_RE = re.compile(r"^\d+(\.\d+)*([-+][0-9A-Za-z.+-]+)?$")


@dataclass(frozen=True)
class InstallTarget:
    source: str
    dest: str


@dataclass(frozen=True)
class SmokeTest:
    command: str
    expect: str


@dataclass(frozen=True)
class Manifest:
    """Declarative description of one package: where it lives and how to check it."""

    name: str
    version: str
    url: str
    sha256: str
    install_targets: Tuple[InstallTarget, ...]
    smoke_test: SmokeTest
    desc: str = ""
    homepage: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "desc": self.desc,
            "homepage": self.homepage,
            "version": self.version,
            "url": self.url,
            "sha256": self.sha256,
            "install": [{"source": t.source, "dest": t.dest} for t in self.install_targets],
            "test": {"command": self.smoke_test.command, "expect": self.smoke_test.expect},
        }


def _require_str(data: Dict[str, Any], key: str, *, origin: str) -> str:
    value = data.get(key)
    if value is None or not str(value).strip():
        raise ManifestError(f"{origin}: missing required field '{key}'")
    return str(value).strip()


def _check_source(source: str, *, origin: str) -> str:
    norm = posixpath.normpath(source.strip())
    if not source.strip() or norm.startswith("/") or norm == ".." or norm.startswith("../"):
        raise ManifestError(f"{origin}: unsafe install source {source!r}")
    return norm


def _parse_targets(raw: Any, *, origin: str) -> Tuple[InstallTarget, ...]:
    if not isinstance(raw, list) or not raw:
        raise ManifestError(f"{origin}: 'install' must be a non-empty list")

    targets: list[InstallTarget] = []
    for item in raw:
        if isinstance(item, str):
            # bin.install "x" shorthand
            source = _check_source(item, origin=origin)
            targets.append(InstallTarget(source=source, dest="{bin}/" + posixpath.basename(source)))
        elif isinstance(item, dict):
            source = _check_source(_require_str(item, "source", origin=origin), origin=origin)
            dest = str(item.get("dest") or "{bin}/" + posixpath.basename(source))
            targets.append(InstallTarget(source=source, dest=dest))
        else:
            raise ManifestError(f"{origin}: install entries must be strings or mappings")
    return tuple(targets)


def build_manifest(data: Dict[str, Any], *, origin: str = "<manifest>") -> Manifest:
    """Validate a raw mapping and freeze it into a Manifest."""

    name = _require_str(data, "name", origin=origin)
    version = _require_str(data, "version", origin=origin)
    if not _VERSION_RE.match(version):
        raise ManifestError(f"{origin}: version {version!r} is not a semantic version")

    sha256 = _require_str(data, "sha256", origin=origin)
    if not _SHA256_RE.match(sha256):
        raise ManifestError(f"{origin}: sha256 must be 64 hex characters")

    test = data.get("test")
    if not isinstance(test, dict):
        raise ManifestError(f"{origin}: 'test' must be a mapping with command/expect")

    return Manifest(
        name=name,
        version=version,
        url=_require_str(data, "url", origin=origin),
        sha256=sha256.lower(),
        install_targets=_parse_targets(data.get("install"), origin=origin),
        smoke_test=SmokeTest(
            command=_require_str(test, "command", origin=origin),
            expect=_require_str(test, "expect", origin=origin),
        ),
        desc=str(data.get("desc") or ""),
        homepage=str(data.get("homepage") or ""),
    )


def load_manifest(path: str) -> Manifest:
    """Load a manifest from YAML or from a Homebrew formula (.rb)."""

    p = Path(path)
    if not p.is_file():
        raise ManifestError(f"manifest not found: {path}")

    text = p.read_text(encoding="utf-8")
    ext = p.suffix.lower()

    if ext == ".rb":
        from .formula_rb import parse_formula

        data = parse_formula(text, origin=str(p))
    elif ext in {".yaml", ".yml"}:
        import yaml

        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as e:
            raise ManifestError(f"{p}: invalid YAML: {e}") from e
    else:
        raise ManifestError(f"{p}: unsupported manifest format (expected .yaml, .yml or .rb)")

    if not isinstance(data, dict):
        raise ManifestError(f"Manifest must be a mapping/dict: {p}")
    return build_manifest(data, origin=str(p))


_PLACEHOLDER_RE = re.compile(r"\{(bin|prefix|name|version)\}")


def render(template: str, values: Dict[str, str]) -> str:
    """Expand {bin}/{prefix}/{name}/{version}; other braces are left alone."""
    return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], template)
