"""Reading legacy multi-resolution ICO containers.

Only the directory is parsed here; pixel decoding of the chosen entry is left to
Pillow. Among entries of equal width the first one in directory order is
chosen.
"""

import logging
import struct
from dataclasses import dataclass
from io import BytesIO

import filetype
from PIL import Image

logger = logging.getLogger(__name__)

ICO_CONTENT_TYPES = {
    "image/x-icon",
    "image/vnd.microsoft.icon",
    "image/ico",
    "image/icon",
}
GENERIC_CONTENT_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

HEADER = struct.Struct("<HHH")
DIR_ENTRY = struct.Struct("<BBBBHHII")
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

DECODE_ERRORS = (OSError, SyntaxError, ValueError, EOFError, struct.error, Image.DecompressionBombError)


@dataclass(frozen=True)
class IcoEntry:
    index: int
    width: int
    height: int
    color_count: int
    planes: int
    bit_count: int
    size: int
    offset: int

    @property
    def dim(self) -> tuple[int, int]:
        return (self.width, self.height)


def _base_type(content_type: str | None) -> str:
    return (content_type or "").split(";")[0].strip().lower()


def is_ico_content_type(content_type: str | None) -> bool:
    return _base_type(content_type) in ICO_CONTENT_TYPES


def looks_like_ico(data: bytes) -> bool:
    kind = filetype.guess(data[:262]) if data else None
    return bool(kind and kind.mime in ICO_CONTENT_TYPES)


def should_decode_as_ico(content_type: str | None, data: bytes) -> bool:
    """Declared ICO, or an undeclared body carrying the ICO signature."""
    if is_ico_content_type(content_type):
        return True
    return _base_type(content_type) in GENERIC_CONTENT_TYPES and looks_like_ico(data)


def read_ico_directory(data: bytes) -> list[IcoEntry]:
    """Parse the ICO header and image directory; raises ValueError if malformed."""
    if len(data) < HEADER.size:
        raise ValueError("truncated ICO header")
    reserved, kind, count = HEADER.unpack_from(data, 0)
    if reserved != 0 or kind != 1:
        raise ValueError("not an ICO container")
    if len(data) < HEADER.size + count * DIR_ENTRY.size:
        raise ValueError("truncated ICO directory")

    entries = []
    for i in range(count):
        w, h, colors, _, planes, bits, size, offset = DIR_ENTRY.unpack_from(
            data, HEADER.size + i * DIR_ENTRY.size
        )
        if size == 0 or offset + size > len(data):
            raise ValueError(f"ICO entry {i} points outside the file")
        entries.append(IcoEntry(i, w or 256, h or 256, colors, planes, bits, size, offset))
    return entries


def select_largest(entries: list[IcoEntry]) -> IcoEntry | None:
    best = None
    for entry in entries:
        if best is None or entry.width > best.width:
            best = entry
    return best


def _decode_entry(data: bytes, entry: IcoEntry) -> Image.Image:
    payload = data[entry.offset:entry.offset + entry.size]
    if payload.startswith(PNG_SIGNATURE):
        img = Image.open(BytesIO(payload))
    else:
        # BMP payloads need the container context (AND mask, halved height)
        container = getattr(Image.open(BytesIO(data)), "ico", None)
        if container is None:
            raise ValueError("no ICO container to read the bitmap from")
        img = container.getimage(entry.dim)
    img.load()
    return img.convert("RGBA")


def decode_ico(data: bytes) -> Image.Image | None:
    """Largest raster in an ICO container, or None if it cannot be decoded."""
    try:
        entries = read_ico_directory(data)
    except (ValueError, struct.error) as exc:
        logger.info("Not decodable as ICO container: %s", exc)
        return None
    entry = select_largest(entries)
    if entry is None:
        logger.info("ICO container has no entries")
        return None
    try:
        img = _decode_entry(data, entry)
    except DECODE_ERRORS as exc:
        logger.info("Failed to decode ICO entry %d (%dx%d): %s", entry.index, entry.width, entry.height, exc)
        return None
    logger.info("Using ICO entry %d of %d (%dx%d)", entry.index, len(entries), img.width, img.height)
    return img
