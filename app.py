import logging
import os

from dotenv import load_dotenv
from flask import Flask, jsonify, make_response, request
from werkzeug.exceptions import HTTPException

from favgrab.config import load_config
from favgrab.errors import FetchFailed, InvalidInput
from favgrab.fetch_utils import fetch_icon_bytes
from favgrab.icon_utils import resolve_icon_url
from favgrab.image_utils import ConversionRequest, convert_icon, normalize_format
from favgrab.url_utils import normalize_site_url

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ENV = os.getenv("FLASK_ENV", "development")

app = Flask(__name__)
app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev")
app.config["ICON_CONFIG"] = load_config()


def icon_config():
    return app.config["ICON_CONFIG"]


def error_response(message: str, status: int, details: str | None = None):
    body = {"success": False, "error": message}
    if details:
        body["details"] = details
    return jsonify(body), status


@app.errorhandler(InvalidInput)
def handle_invalid_input(exc):
    return error_response(str(exc), 400)


@app.errorhandler(FetchFailed)
def handle_fetch_failed(exc):
    logger.error("Error fetching icon: %s", exc)
    return error_response(str(exc), 500, details="\n".join(exc.trail))


@app.errorhandler(Exception)
def handle_unexpected(exc):
    if isinstance(exc, HTTPException):
        return exc
    logger.exception("Unhandled error on %s", request.path)
    return error_response("Internal server error", 500)


def parse_size(value):
    if value is None or value == "":
        return icon_config().default_size
    if isinstance(value, bool):
        raise InvalidInput("size must be a positive integer")
    try:
        size = int(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidInput("size must be a positive integer") from None
    if size <= 0 or size != float(value):
        raise InvalidInput("size must be a positive integer")
    if size > icon_config().max_size:
        raise InvalidInput(f"size must be at most {icon_config().max_size}")
    return size


def parse_format(value) -> str:
    if value is None or value == "":
        return normalize_format(icon_config().default_format)
    if not isinstance(value, str):
        raise InvalidInput("format must be one of png, jpg, webp, ico")
    return normalize_format(value)


def parse_transparent(value) -> bool:
    if value is None:
        return icon_config().default_transparent
    if isinstance(value, str):
        return value.strip().lower() not in ("false", "0", "no", "off", "")
    return bool(value)


@app.get("/healthz")
def healthz():
    return "ok", 200


@app.get("/api/extract")
def extract():
    url = request.args.get("url", "").strip()
    if not url:
        return error_response("URL is required", 400)
    try:
        resolution = resolve_icon_url(url, icon_config())
    except InvalidInput:
        raise
    except Exception:
        logger.exception("Icon extraction failed for %s", url)
        return error_response("Unable to extract icon", 500)
    return jsonify(success=True, iconUrl=resolution.icon_url)


@app.post("/api/convert")
def convert():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return error_response("Request body must be a JSON object", 400)
    url = str(payload.get("url") or "").strip()
    if not url:
        return error_response("Icon URL is required", 400)

    cfg = icon_config()
    conversion = ConversionRequest(
        source_url=normalize_site_url(url),
        target_format=parse_format(payload.get("format")),
        target_size=parse_size(payload.get("size")),
        transparent_background=parse_transparent(payload.get("transparent")),
    )

    try:
        fetched = fetch_icon_bytes(conversion.source_url, cfg)
        result = convert_icon(fetched, conversion, cfg)
    except FetchFailed:
        raise
    except Exception as exc:
        logger.exception("Icon conversion failed for %s", url)
        return error_response("Error processing icon", 500, details=str(exc))

    response = make_response(result.content)
    response.headers["Content-Type"] = result.content_type
    response.headers["Content-Disposition"] = f"attachment; filename={result.filename}"
    response.headers["X-Favgrab-Result"] = result.kind
    return response


if __name__ == "__main__":
    app.run(debug=ENV == "development", host="0.0.0.0", port=int(os.getenv("PORT", "8080")))
