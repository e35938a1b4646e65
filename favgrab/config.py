"""Runtime settings for the resolver and converter pipelines."""

import os
from dataclasses import dataclass, fields

from dotenv import load_dotenv

ENV_PREFIX = "FAVGRAB_"


@dataclass(frozen=True)
class IconConfig:
    """Defaults used when a request or the environment does not say otherwise.

    `default_size=None` keeps the source dimensions. Attempt counts are total
    attempts per URL, so `1` means no retry.
    """

    default_format: str = "png"
    default_size: int | None = None
    default_transparent: bool = True
    max_size: int = 1024

    site_timeout: float = 5.0
    site_attempts: int = 1
    probe_timeout: float = 3.0
    probe_attempts: int = 1
    direct_timeout: float = 5.0
    direct_attempts: int = 1
    service_timeout: float = 8.0
    service_attempts: int = 2
    retry_backoff: float = 1.0
    max_icon_bytes: int = 10 * 1024 * 1024

    service_base: str = "https://www.google.com/s2/favicons"
    service_size: int = 64

    jpeg_quality: int = 90
    webp_quality: int = 90


def _coerce(raw: str, kind, name: str):
    if kind is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if kind is int:
        return int(raw)
    if kind is float:
        return float(raw)
    if name == "default_size":
        return int(raw) if raw.strip() else None
    return raw


def load_config(environ=None) -> IconConfig:
    """Build an IconConfig from FAVGRAB_* variables (a .env file is honoured)."""
    if environ is None:
        load_dotenv()
        environ = os.environ

    overrides = {}
    defaults = IconConfig()
    for f in fields(IconConfig):
        raw = environ.get(ENV_PREFIX + f.name.upper())
        if raw is None:
            continue
        try:
            overrides[f.name] = _coerce(raw, type(getattr(defaults, f.name)), f.name)
        except ValueError as exc:
            raise ValueError(f"{ENV_PREFIX}{f.name.upper()}={raw!r}: {exc}") from exc
    return IconConfig(**overrides)
