from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import httpx

from .config import InstallerConfig
from .errors import InstallerError
from .lib.manifests import InstallTarget, Manifest, render

logger = logging.getLogger(__name__)


class Phase(str, enum.Enum):
    PENDING = "pending"
    FETCHED = "fetched"
    VERIFIED = "verified"
    INSTALLED = "installed"
    TESTED = "tested"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class InstallCtx:
    manifest: Manifest
    cfg: InstallerConfig
    transport: Optional[httpx.BaseTransport] = None

    @property
    def placeholders(self) -> Dict[str, str]:
        return {
            "bin": str(self.cfg.bin_dir),
            "prefix": str(self.cfg.prefix),
            "name": self.manifest.name,
            "version": self.manifest.version,
        }

    def dest_for(self, target: InstallTarget) -> Path:
        p = Path(render(target.dest, self.placeholders)).expanduser()
        return p if p.is_absolute() else self.cfg.prefix / p

    def destinations(self) -> List[Tuple[InstallTarget, Path]]:
        return [(t, self.dest_for(t)) for t in self.manifest.install_targets]


class Step(Protocol):
    """A single pipeline step; reaching ``phase`` on success."""

    step_id: str
    phase: Phase

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    phase: Phase


def new_state() -> Dict[str, Any]:
    return {
        "execution": {
            "phase": Phase.PENDING.value,
            "current_step": None,
            "completed_steps": [],
            "errors": [],
        }
    }


def run_pipeline(
    *,
    ctx: InstallCtx,
    steps: Sequence[Step],
    state: Optional[Dict[str, Any]] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps strictly in order; the first failure moves the run to FAILED."""

    state = state if state is not None else new_state()
    exe = state.setdefault("execution", {})
    ran: List[str] = []
    m = ctx.manifest

    for step in steps:
        exe["current_step"] = step.step_id
        logger.info("[%s %s] Running step %s", m.name, m.version, step.step_id)
        try:
            state = step.run(ctx, state)
        except InstallerError as e:
            e.with_context(package=m.name, version=m.version, step=step.step_id)
            exe.setdefault("errors", []).append(
                {"step": step.step_id, "kind": type(e).__name__, "error": e.message}
            )
            exe["phase"] = Phase.FAILED.value
            raise
        except Exception as e:
            exe.setdefault("errors", []).append(
                {"step": step.step_id, "kind": type(e).__name__, "error": str(e)}
            )
            exe["phase"] = Phase.FAILED.value
            logger.exception("[%s %s] Step %s crashed", m.name, m.version, step.step_id)
            raise

        exe.setdefault("completed_steps", []).append(step.step_id)
        exe["phase"] = step.phase.value
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break
    else:
        exe["phase"] = Phase.DONE.value

    exe["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, phase=Phase(exe["phase"]))
