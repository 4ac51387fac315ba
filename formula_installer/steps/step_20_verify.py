from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.digest import verify_sha256
from ..pipeline import InstallCtx, Phase

logger = logging.getLogger(__name__)


class VerifyStep:
    step_id = "20_verify"
    phase = Phase.VERIFIED

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        artifact = state.get("artifact") or {}
        if "data" not in artifact:
            raise RuntimeError("artifact missing; 10_fetch must run first")

        artifact["sha256"] = verify_sha256(artifact["data"], ctx.manifest.sha256)
        artifact["verified"] = True
        logger.info("Checksum OK (sha256=%s)", artifact["sha256"])
        return state
