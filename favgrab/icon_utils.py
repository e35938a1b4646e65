import logging
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from .config import IconConfig
from .errors import InvalidInput, ResolutionFailed, Unreachable
from .http_utils import fetch_with_retry, probe_image
from .url_utils import favicon_service_url, is_http_url, normalize_site_url, site_root

logger = logging.getLogger(__name__)

ROOT_ICON_PATHS = (
    "/favicon.ico",
    "/favicon.png",
    "/apple-touch-icon.png",
    "/apple-touch-icon-precomposed.png",
)
ICON_RELS = {"icon", "shortcut icon"}
HTML_TYPES = ("text/html", "application/xhtml+xml")


@dataclass
class Resolution:
    icon_url: str
    source: str  # "candidate" or "service"
    candidates: list[str] = field(default_factory=list)


def conventional_candidates(site_url: str) -> list[str]:
    base = site_root(site_url)
    return [urljoin(base, path) for path in ROOT_ICON_PATHS]


def extract_link_icons(html: str, page_url: str) -> list[str]:
    """<link rel="icon"|"shortcut icon"> hrefs, absolute, in document order."""
    if not html:
        return []
    soup = BeautifulSoup(html, "html.parser")
    found = []
    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = rel.split()
        if " ".join(rel).lower() not in ICON_RELS:
            continue
        href = link["href"].strip()
        absolute = urljoin(page_url, href)
        if not is_http_url(absolute):
            logger.info("Skipping icon link %r on %s", href, page_url)
            continue
        found.append(absolute)
    return found


def build_candidates(site_url: str, html: str = "", page_url: str | None = None) -> list[str]:
    candidates = conventional_candidates(site_url)
    for icon in extract_link_icons(html, page_url or site_url):
        if icon not in candidates:
            candidates.append(icon)
    return candidates


def _looks_like_html(content_type: str) -> bool:
    ctype = content_type.split(";")[0].strip().lower()
    return not ctype or ctype in HTML_TYPES


def resolve_icon_url(raw: str, config: IconConfig | None = None) -> Resolution:
    """Best icon URL for a site, falling back to the favicon-by-domain service.

    Only an unusable input raises (ResolutionFailed); network trouble of any
    kind ends in the service URL.
    """
    config = config or IconConfig()
    try:
        site_url = normalize_site_url(raw)
    except InvalidInput as exc:
        raise ResolutionFailed(str(exc)) from exc

    fallback = favicon_service_url(site_url, config)
    try:
        page = fetch_with_retry(
            site_url,
            timeout=config.site_timeout,
            attempts=config.site_attempts,
            backoff=config.retry_backoff,
            stage="site",
            max_bytes=config.max_icon_bytes,
        )
    except Unreachable as exc:
        logger.info("Site %s unreachable (%s), using favicon service", site_url, exc.reason)
        return Resolution(icon_url=fallback, source="service")
    if not page.ok:
        logger.info("Site %s answered HTTP %s, using favicon service", site_url, page.status)
        return Resolution(icon_url=fallback, source="service")

    html = page.text if _looks_like_html(page.content_type) else ""
    candidates = build_candidates(site_url, html, page.url)
    logger.info("Found %d icon candidates for %s", len(candidates), site_url)

    for candidate in candidates:
        if probe_image(
            candidate,
            timeout=config.probe_timeout,
            attempts=config.probe_attempts,
            backoff=config.retry_backoff,
            max_bytes=config.max_icon_bytes,
        ):
            logger.info("Valid icon found: %s", candidate)
            return Resolution(icon_url=candidate, source="candidate", candidates=candidates)

    logger.info("No valid icons found for %s, using favicon service", site_url)
    return Resolution(icon_url=fallback, source="service", candidates=candidates)
