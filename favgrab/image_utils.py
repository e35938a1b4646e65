import logging
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, ImageOps

from .config import IconConfig
from .errors import DecodeFailed, EncodingFailed
from .http_utils import FetchResult
from .ico_utils import DECODE_ERRORS, decode_ico, should_decode_as_ico

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)
TRANSPARENT = (255, 255, 255, 0)

# requested format -> (Pillow format, content type, extension)
OUTPUT_FORMATS = {
    "png": ("PNG", "image/png", "png"),
    "jpg": ("JPEG", "image/jpeg", "jpg"),
    "jpeg": ("JPEG", "image/jpeg", "jpg"),
    "webp": ("WEBP", "image/webp", "webp"),
    "ico": ("PNG", "image/png", "png"),
}

CONTENT_TYPE_EXTENSIONS = {
    "image/x-icon": "ico",
    "image/vnd.microsoft.icon": "ico",
    "image/jpeg": "jpg",
    "image/svg+xml": "svg",
}

ENCODED = "encoded"
PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class ConversionRequest:
    source_url: str
    target_format: str = "png"
    target_size: int | None = None
    transparent_background: bool = True


@dataclass(frozen=True)
class ConversionResult:
    content: bytes
    content_type: str
    extension: str
    kind: str

    @property
    def filename(self) -> str:
        return f"icon.{self.extension}"


def normalize_format(fmt: str | None) -> str:
    fmt = fmt.strip().lower() if isinstance(fmt, str) else ""
    return fmt if fmt in OUTPUT_FORMATS else "png"


def extension_for(content_type: str | None) -> str:
    ctype = (content_type or "").split(";")[0].strip().lower()
    if ctype in CONTENT_TYPE_EXTENSIONS:
        return CONTENT_TYPE_EXTENSIONS[ctype]
    if "/" in ctype:
        ext = ctype.split("/", 1)[1]
        if ext.startswith("x-"):
            ext = ext[2:]
        return ext or "bin"
    return "bin"


def fit_square(img: Image.Image, size: int) -> Image.Image:
    """Scale into size x size keeping aspect ratio; pad with transparent pixels."""
    img = img.convert("RGBA")
    if img.size != (size, size):
        img = ImageOps.contain(img, (size, size), Image.Resampling.LANCZOS)
    if img.size == (size, size):
        return img
    canvas = Image.new("RGBA", (size, size), TRANSPARENT)
    canvas.paste(img, ((size - img.width) // 2, (size - img.height) // 2))
    return canvas


def flatten(img: Image.Image, color=WHITE) -> Image.Image:
    img = img.convert("RGBA")
    bg = Image.new("RGBA", img.size, color + (255,))
    return Image.alpha_composite(bg, img)


def encode_image(
    img: Image.Image,
    fmt: str | None = "png",
    size: int | None = None,
    transparent: bool = True,
    config: IconConfig | None = None,
) -> tuple[bytes, str, str]:
    """Re-encode a raster; returns (bytes, content type, extension)."""
    config = config or IconConfig()
    fmt = normalize_format(fmt)
    pil_format, content_type, extension = OUTPUT_FORMATS[fmt]
    try:
        img = fit_square(img, size) if size else img.convert("RGBA")
        buf = BytesIO()
        if pil_format == "JPEG":
            flatten(img).convert("RGB").save(buf, "JPEG", quality=config.jpeg_quality)
        else:
            if not transparent:
                img = flatten(img)
            if pil_format == "WEBP":
                img.save(buf, "WEBP", quality=config.webp_quality, method=4)
            else:
                img.save(buf, "PNG")
    except (*DECODE_ERRORS, KeyError) as exc:
        raise EncodingFailed(f"Image processing failed: {exc}") from exc
    return buf.getvalue(), content_type, extension


def decode_raster(fetched: FetchResult) -> Image.Image:
    """Open fetched bytes as a raster, unpacking ICO containers first."""
    if should_decode_as_ico(fetched.content_type, fetched.content):
        img = decode_ico(fetched.content)
        if img is not None:
            return img
        logger.info("Treating %s as a generic raster", fetched.url)
    try:
        img = Image.open(BytesIO(fetched.content))
        img.load()
    except DECODE_ERRORS as exc:
        raise DecodeFailed(f"Cannot decode image from {fetched.url}: {exc}") from exc
    return img


def passthrough(fetched: FetchResult) -> ConversionResult:
    content_type = fetched.content_type.split(";")[0].strip() or "image/x-icon"
    return ConversionResult(
        content=fetched.content,
        content_type=content_type,
        extension=extension_for(content_type),
        kind=PASSTHROUGH,
    )


def convert_icon(fetched: FetchResult, request: ConversionRequest, config: IconConfig | None = None) -> ConversionResult:
    """Convert fetched icon bytes; falls back to the original bytes on failure."""
    try:
        img = decode_raster(fetched)
        content, content_type, extension = encode_image(
            img,
            request.target_format,
            request.target_size,
            request.transparent_background,
            config,
        )
    except (DecodeFailed, EncodingFailed) as exc:
        logger.warning("Returning original bytes for %s: %s", request.source_url, exc)
        return passthrough(fetched)
    return ConversionResult(content=content, content_type=content_type, extension=extension, kind=ENCODED)
