from __future__ import annotations

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import httpx

from .config import load_config
from .errors import InstallerError
from .lib.manifests import load_manifest
from .logging_utils import configure_logging
from .pipeline import InstallCtx, Step, run_pipeline
from .steps import FetchStep, InstallStep, SmokeTestStep, VerifyStep

logger = logging.getLogger(__name__)


def build_steps(command: str = "install") -> List[Step]:
    if command == "install":
        return [FetchStep(), VerifyStep(), InstallStep(), SmokeTestStep()]
    if command == "fetch":
        return [FetchStep(), VerifyStep()]
    if command == "test":
        return [SmokeTestStep()]
    raise ValueError(f"unknown command: {command}")


def run(
    manifest_path: str,
    *,
    command: str = "install",
    config_path: Optional[str] = None,
    prefix: Optional[str] = None,
    bin_dir: Optional[str] = None,
    log_path: Optional[str] = None,
    verbose: bool = False,
    transport: Optional[httpx.BaseTransport] = None,
) -> Dict[str, Any]:
    """Run one command of the install pipeline for a single manifest."""

    cfg = load_config(config_path).with_overrides(prefix=prefix, bin_dir=bin_dir, log_path=log_path)
    actual_log_path = configure_logging(
        log_path=cfg.log_path, level=logging.DEBUG if verbose else logging.INFO
    )

    manifest = load_manifest(manifest_path)
    logger.info("%s %s: %s (%s)", command, manifest.name, manifest.version, manifest.url)

    ctx = InstallCtx(manifest=manifest, cfg=cfg, transport=transport)
    result = run_pipeline(ctx=ctx, steps=build_steps(command))

    state = result.state
    state["execution"]["ran_steps"] = result.ran_steps
    state["execution"]["log_path"] = actual_log_path
    logger.info("%s %s %s: %s", command, manifest.name, manifest.version, result.phase.value)
    return state


def _info(manifest_path: str) -> None:
    import yaml

    manifest = load_manifest(manifest_path)
    sys.stdout.write(yaml.safe_dump(manifest.to_dict(), sort_keys=False))


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="formula-installer")
    p.add_argument("--config", default=None, help="Path to installer config (yaml)")
    p.add_argument("--prefix", default=None, help="Install prefix (default ~/.local)")
    p.add_argument("--bin-dir", default=None, help="Directory for {bin} (default <prefix>/bin)")
    p.add_argument("--log", default=None, help="Path to installer log")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    sub = p.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("install", "Fetch, verify, install and smoke-test a package"),
        ("fetch", "Fetch and verify the artifact only"),
        ("test", "Run the smoke test against an existing install"),
        ("info", "Print the parsed manifest"),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("manifest", help="Manifest path (.yaml, .yml or Homebrew .rb)")

    args = p.parse_args(argv)

    try:
        if args.command == "info":
            _info(args.manifest)
            return 0

        run(
            args.manifest,
            command=args.command,
            config_path=args.config,
            prefix=args.prefix,
            bin_dir=args.bin_dir,
            log_path=args.log,
            verbose=bool(args.verbose),
        )
    except InstallerError as e:
        logger.error("%s", e)
        return e.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
