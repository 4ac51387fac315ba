from __future__ import annotations

import logging
from typing import Any, Dict, List

from ..lib.archive import open_archive
from ..lib.digest import verify_sha256
from ..lib.lock import package_lock
from ..lib.staging import StagedFile, discard, promote, stage_file
from ..pipeline import InstallCtx, Phase

logger = logging.getLogger(__name__)


class InstallStep:
    step_id = "30_install"
    phase = Phase.INSTALLED

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        artifact = state.get("artifact") or {}
        if "data" not in artifact:
            raise RuntimeError("artifact missing; 10_fetch must run first")

        data: bytes = artifact["data"]
        # Hard gate: nothing touches the filesystem unless these exact bytes verified.
        if not artifact.get("verified"):
            artifact["sha256"] = verify_sha256(data, ctx.manifest.sha256)
            artifact["verified"] = True

        archive = open_archive(data, ctx.manifest.url)

        installed: List[str] = []
        with package_lock(ctx.cfg.lock_dir, ctx.manifest.name):
            staged: List[StagedFile] = []
            try:
                for target, dest in ctx.destinations():
                    entry = archive.get(target.source)
                    staged.append(stage_file(dest, entry.data or b"", executable=entry.executable))
                promote(staged)
            except BaseException:
                discard(staged)
                raise
            installed = [str(s.dest) for s in staged]

        state["installed"] = installed
        logger.info("Installed %s %s: %s", ctx.manifest.name, ctx.manifest.version, ", ".join(installed))
        return state
