"""Read the declarative subset of a Homebrew formula.

Only what a prebuilt-binary formula needs is understood:

    class Milyai < Formula
      desc "..."
      homepage "..."
      version "0.1.0"
      url "https://.../milyai-0.1.0.tar.gz"
      sha256 "..."
      def install
        bin.install "milyai"
      end
      test do
        assert_match "MilyAI", shell_output("#{bin}/milyai --help")
      end
    end

Ruby is not evaluated; anything outside this subset is ignored.
"""

from __future__ import annotations

import re
from typing import Any, Dict

from ..errors import ManifestError

_CLASS_RE = re.compile(r"^\s*class\s+([A-Z][A-Za-z0-9]*)\s*<\s*Formula\b", re.MULTILINE)
_FIELD_RE = r'^\s*{key}\s+"([^"]*)"'
_BIN_INSTALL_RE = re.compile(r'^\s*bin\.install\s+"([^"]+)"(?:\s*=>\s*"([^"]+)")?', re.MULTILINE)
_ASSERT_MATCH_RE = re.compile(
    r'assert_match\s+"([^"]*)"\s*,\s*shell_output\(\s*"([^"]*)"',
    re.MULTILINE,
)
_URL_VERSION_RE = re.compile(r"(\d+(?:\.\d+)+)")


def formula_name(class_name: str) -> str:
    """Homebrew's class-to-name rule: ``FooBar`` -> ``foo-bar``."""
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"-\1", class_name).lower()


def _field(text: str, key: str) -> str | None:
    m = re.search(_FIELD_RE.format(key=key), text, re.MULTILINE)
    return m.group(1) if m else None


def _interpolate(value: str) -> str:
    # "#{bin}/x" -> "{bin}/x"
    return re.sub(r"#\{(bin|prefix)\}", r"{\1}", value)


def parse_formula(text: str, *, origin: str = "<formula>") -> Dict[str, Any]:
    m = _CLASS_RE.search(text)
    if not m:
        raise ManifestError(f"{origin}: no 'class X < Formula' declaration")

    url = _field(text, "url")
    version = _field(text, "version")
    if version is None and url:
        vm = _URL_VERSION_RE.search(url.rsplit("/", 1)[-1]) or _URL_VERSION_RE.search(url)
        version = vm.group(1) if vm else None

    install = []
    for src, renamed in _BIN_INSTALL_RE.findall(text):
        install.append({"source": src, "dest": "{bin}/" + (renamed or src.rsplit("/", 1)[-1])})

    test: Dict[str, Any] = {}
    tm = _ASSERT_MATCH_RE.search(text)
    if tm:
        test = {"command": _interpolate(tm.group(2)), "expect": tm.group(1)}

    return {
        "name": formula_name(m.group(1)),
        "desc": _field(text, "desc") or "",
        "homepage": _field(text, "homepage") or "",
        "version": version,
        "url": url,
        "sha256": _field(text, "sha256"),
        "install": install,
        "test": test,
    }
