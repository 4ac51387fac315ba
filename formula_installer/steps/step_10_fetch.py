from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.net import fetch_artifact
from ..pipeline import InstallCtx, Phase

logger = logging.getLogger(__name__)


class FetchStep:
    step_id = "10_fetch"
    phase = Phase.FETCHED

    def run(self, ctx: InstallCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        cfg = ctx.cfg
        data = fetch_artifact(
            ctx.manifest.url,
            timeout_s=cfg.fetch_timeout_s,
            retries=cfg.fetch_retries,
            backoff_s=cfg.fetch_backoff_s,
            transport=ctx.transport,
        )
        # A fresh fetch is never trusted; verification flips this.
        state["artifact"] = {"data": data, "size": len(data), "verified": False}
        return state
