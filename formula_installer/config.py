from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import ConfigError
from .lib.env import PATHS


@dataclass(frozen=True)
class InstallerConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def prefix(self) -> Path:
        return Path(str(self.raw.get("prefix") or PATHS.prefix_default)).expanduser()

    @property
    def bin_dir(self) -> Path:
        value = self.raw.get("bin_dir")
        return Path(str(value)).expanduser() if value else self.prefix / "bin"

    @property
    def lock_dir(self) -> Path:
        value = self.raw.get("lock_dir")
        return Path(str(value)).expanduser() if value else self.prefix / PATHS.lock_subdir

    @property
    def log_path(self) -> str:
        return str(self.raw.get("log_path") or (self.prefix / PATHS.log_subdir))

    @property
    def fetch_timeout_s(self) -> float:
        return float(((self.raw.get("fetch") or {}).get("timeout_s")) or 60.0)

    @property
    def fetch_retries(self) -> int:
        value = (self.raw.get("fetch") or {}).get("retries")
        return 3 if value is None else max(0, int(value))

    @property
    def fetch_backoff_s(self) -> float:
        value = (self.raw.get("fetch") or {}).get("backoff_s")
        return 1.0 if value is None else float(value)

    @property
    def smoke_timeout_s(self) -> float:
        return float(((self.raw.get("smoke_test") or {}).get("timeout_s")) or 30.0)

    def with_overrides(self, **overrides: Any) -> "InstallerConfig":
        """Return a copy with non-None overrides (e.g. CLI flags) applied."""
        raw = dict(self.raw)
        raw.update({k: v for k, v in overrides.items() if v is not None})
        return replace(self, raw=raw)


def load_config(path: Optional[str]) -> InstallerConfig:
    if path is None:
        return InstallerConfig()

    p = Path(path)
    if not p.exists():
        raise ConfigError(f"config file not found: {path}")

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ConfigError("config must be YAML")

    import yaml

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")

    return InstallerConfig(raw=raw)
