from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Paths:
    prefix_default: str = "~/.local"
    lock_subdir: str = "var/formula-installer/locks"
    log_subdir: str = "var/log/formula-installer.log"


PATHS = Paths()
