import logging
import time
from dataclasses import dataclass

import requests

from .errors import Unreachable

logger = logging.getLogger(__name__)

clock = time.monotonic

HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,image/avif,image/webp,image/*,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


@dataclass
class FetchResult:
    """One HTTP response: final URL, status, content type and body.

    `oversized` is set (and `content` left empty) when the body went past the
    caller's byte limit.
    """

    url: str
    status: int
    content_type: str
    content: bytes
    oversized: bool = False

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_image(self) -> bool:
        return self.content_type.split(";")[0].strip().lower().startswith("image/")

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


def _read_body(resp, max_bytes: int | None, deadline: float) -> bytes | None:
    chunks = []
    total = 0
    for chunk in resp.iter_content(chunk_size=64 * 1024):
        if clock() > deadline:
            raise requests.Timeout("body not received before the attempt deadline")
        total += len(chunk)
        if max_bytes is not None and total > max_bytes:
            return None
        chunks.append(chunk)
    return b"".join(chunks)


def fetch_with_retry(
    url: str,
    timeout: float = 5.0,
    attempts: int = 1,
    backoff: float = 1.0,
    stage: str = "fetch",
    max_bytes: int | None = None,
) -> FetchResult:
    """GET `url`, retrying only when no response arrives.

    Any HTTP status is returned to the caller. Timeouts and connection errors
    are retried after `backoff * attempt` seconds; once `attempts` are used up
    `Unreachable` is raised with the last error.

    `timeout` bounds each socket read and also the whole body download of an
    attempt, so a server trickling bytes cannot hold an attempt open past it.
    """
    attempts = max(1, attempts)
    last_error = "no attempt made"
    for attempt in range(1, attempts + 1):
        try:
            deadline = clock() + timeout
            resp = requests.get(url, headers=HEADERS, timeout=timeout, stream=True)
            try:
                content = _read_body(resp, max_bytes, deadline)
            finally:
                resp.close()
            if content is None:
                logger.warning("[%s] %s exceeded %d bytes", stage, url, max_bytes)
            return FetchResult(
                url=resp.url or url,
                status=resp.status_code,
                content_type=resp.headers.get("Content-Type") or "",
                content=content or b"",
                oversized=content is None,
            )
        except requests.Timeout as exc:
            last_error = f"timed out after {timeout}s ({exc.__class__.__name__})"
        except requests.RequestException as exc:
            last_error = str(exc) or exc.__class__.__name__
        logger.warning(
            "[%s] attempt %d/%d for %s failed: %s", stage, attempt, attempts, url, last_error
        )
        if attempt < attempts:
            time.sleep(backoff * attempt)
    raise Unreachable(url, last_error)


def is_reachable(url: str, timeout: float = 3.0, attempts: int = 1, backoff: float = 1.0) -> bool:
    """Standalone reachability check: 2xx means reachable, anything else does not.

    resolve_icon_url does not call this; it reuses its single page GET as the
    reachability check so the site is only fetched once.
    """
    try:
        result = fetch_with_retry(url, timeout, attempts, backoff, stage="reachability")
    except Unreachable:
        return False
    return result.ok


def probe_image(
    url: str,
    timeout: float = 3.0,
    attempts: int = 1,
    backoff: float = 1.0,
    max_bytes: int | None = None,
) -> bool:
    """True when `url` answers 2xx with an image/* content type."""
    try:
        result = fetch_with_retry(url, timeout, attempts, backoff, stage="probe", max_bytes=max_bytes)
    except Unreachable:
        return False
    if not result.ok:
        logger.info("[probe] %s answered HTTP %s", url, result.status)
        return False
    if not result.is_image:
        logger.info("[probe] %s is not an image (Content-Type=%s)", url, result.content_type)
        return False
    return True
