import re
from urllib.parse import urlencode, urlparse

from .config import IconConfig
from .errors import InvalidInput

SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*)://")


def normalize_site_url(raw: str) -> str:
    """Return an absolute http(s) URL for a user-supplied site reference."""
    if raw is None or not str(raw).strip():
        raise InvalidInput("URL is required")
    url = str(raw).strip()
    m = SCHEME_RE.match(url)
    if not m:
        url = "https://" + url
    elif m.group(1).lower() not in ("http", "https"):
        raise InvalidInput(f"Unsupported URL scheme: {m.group(1)}")

    try:
        p = urlparse(url)
        host = p.hostname
        _ = p.port  # ValueError on a malformed port
    except ValueError as exc:
        raise InvalidInput(f"Invalid URL: {raw}") from exc
    if not host or any(c.isspace() for c in p.netloc):
        raise InvalidInput(f"Invalid URL: {raw}")
    return url


def site_root(url: str) -> str:
    p = urlparse(url)
    return f"{p.scheme}://{p.netloc}"


def hostname_of(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def is_http_url(url: str) -> bool:
    p = urlparse(url)
    return p.scheme in ("http", "https") and bool(p.hostname)


def favicon_service_url(url: str, config: IconConfig) -> str:
    """Favicon-by-domain lookup URL for the host of `url`."""
    query = urlencode({"domain": hostname_of(url), "sz": config.service_size})
    return f"{config.service_base}?{query}"
