from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

FALLBACK_LOG_NAME = "formula-installer.log"

FILE_HANDLER_NAME = "formula_installer.file"
CONSOLE_HANDLER_NAME = "formula_installer.console"

_FORMAT = logging.Formatter(
    fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S%z",
)


def _find_handler(root: logging.Logger, name: str) -> Optional[logging.Handler]:
    for h in root.handlers:
        if h.get_name() == name:
            return h
    return None


def _drop_handler(root: logging.Logger, handler: Optional[logging.Handler]) -> None:
    if handler is not None:
        root.removeHandler(handler)
        handler.close()


def _open_log_file(log_path: str) -> tuple[logging.FileHandler, str]:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str,
    level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Route the root logger to ``log_path`` and, optionally, stderr.

    The file always receives DEBUG records so a run's full decision trail
    (fetch attempts, checksum, staged and promoted paths, smoke test command)
    is kept; ``level`` only governs the console.

    Calling this again reconfigures in place: a different ``log_path`` swaps
    the file handler, and the console follows the new ``level``. If the
    requested file cannot be opened (prefix not created yet, read-only home)
    a file in the working directory is used instead.

    Returns the file path actually in use.
    """

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    log = logging.getLogger(__name__)

    file_handler = _find_handler(root, FILE_HANDLER_NAME)
    current = getattr(file_handler, "requested_path", None)
    if file_handler is None or current != log_path:
        _drop_handler(root, file_handler)
        file_handler, chosen_path = _open_log_file(log_path)
        file_handler.set_name(FILE_HANDLER_NAME)
        file_handler.setFormatter(_FORMAT)
        file_handler.setLevel(logging.DEBUG)
        file_handler.requested_path = log_path  # type: ignore[attr-defined]
        root.addHandler(file_handler)
        if current is not None:
            log.info("Log file moved from %s to %s", current, chosen_path)
    chosen_path = file_handler.baseFilename  # type: ignore[attr-defined]

    console = _find_handler(root, CONSOLE_HANDLER_NAME)
    if also_console:
        if console is None:
            console = logging.StreamHandler()
            console.set_name(CONSOLE_HANDLER_NAME)
            console.setFormatter(_FORMAT)
            root.addHandler(console)
        console.setLevel(level)
    else:
        _drop_handler(root, console)

    log.debug(
        "Logging configured (requested=%s, actual=%s, console=%s)",
        log_path,
        chosen_path,
        logging.getLevelName(level) if also_console else "off",
    )
    return chosen_path
