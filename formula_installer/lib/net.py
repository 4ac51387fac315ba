from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, urlsplit

import httpx

from .. import __version__
from ..errors import HTTPError, NetworkError

logger = logging.getLogger(__name__)

USER_AGENT = f"formula-installer/{__version__}"

# Worth another attempt along with every 5xx; other non-2xx statuses are final.
RETRY_STATUSES = frozenset({408, 429})


def _retryable(status_code: int) -> bool:
    return status_code >= 500 or status_code in RETRY_STATUSES


def _read_local(path: str) -> bytes:
    p = Path(path).expanduser()
    logger.info("Reading local artifact %s", p)
    try:
        return p.read_bytes()
    except OSError as e:
        raise NetworkError(f"cannot read {p}: {e}") from e


def fetch_artifact(
    url: str,
    *,
    timeout_s: float = 60.0,
    retries: int = 3,
    backoff_s: float = 1.0,
    transport: Optional[httpx.BaseTransport] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> bytes:
    """Return the raw bytes behind ``url``.

    - http(s) is fetched with httpx, following redirects, with a bounded
      timeout per attempt.
    - Transport errors, timeouts and 408/429/5xx are retried up to
      ``retries`` times with exponential backoff; the last failure is raised.
    - file:// URLs and plain paths are read from disk (offline installs).
    """

    parts = urlsplit(url)
    scheme = parts.scheme.lower()

    if scheme == "file":
        return _read_local(unquote(parts.path))
    if scheme == "":
        return _read_local(url)
    if scheme not in {"http", "https"}:
        raise NetworkError(f"unsupported URL scheme {scheme!r}: {url}")

    attempts = max(1, retries + 1)
    last_error: NetworkError | HTTPError | None = None

    with httpx.Client(
        timeout=timeout_s,
        follow_redirects=True,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    ) as client:
        for attempt in range(1, attempts + 1):
            logger.info("GET %s (attempt %d/%d)", url, attempt, attempts)
            try:
                resp = client.get(url)
            except httpx.TimeoutException as e:
                last_error = NetworkError(f"timed out after {timeout_s}s fetching {url}: {e}")
            except httpx.TransportError as e:
                last_error = NetworkError(f"cannot reach {url}: {e}")
            else:
                if resp.is_success:
                    logger.info("Fetched %s (%d bytes)", url, len(resp.content))
                    return resp.content
                error = HTTPError(
                    f"GET {url} returned HTTP {resp.status_code}",
                    status_code=resp.status_code,
                )
                if not _retryable(resp.status_code):
                    raise error
                last_error = error

            if attempt < attempts:
                delay = backoff_s * (2 ** (attempt - 1))
                logger.warning("Fetch failed (%s); retrying in %.1fs", last_error.message, delay)
                sleep(delay)

    raise last_error
