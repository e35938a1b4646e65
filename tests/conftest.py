"""
Pytest configuration and fixtures for favgrab tests.

No test touches the network: `fake_web` replaces requests.get with a lookup
table of canned responses, and retry back-off sleeps are disabled.
"""
import struct
from io import BytesIO
from unittest.mock import patch

import pytest
import requests
from PIL import Image

from app import app
from favgrab.config import IconConfig


class FakeResponse:
    """Just enough of requests.Response for favgrab.http_utils."""

    def __init__(self, status=200, content_type="image/png", content=b"", url=""):
        self.status_code = status
        self.headers = {"Content-Type": content_type} if content_type else {}
        self.content = content
        self.url = url
        self.closed = False

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.content), chunk_size):
            yield self.content[i:i + chunk_size]

    def close(self):
        self.closed = True


class FakeWeb:
    """URL -> FakeResponse (or exception) table; unknown URLs refuse to connect."""

    def __init__(self):
        self.routes = {}
        self.calls = []

    def add(self, url, status=200, content_type="image/png", content=b"", final_url=None):
        self.routes[url] = FakeResponse(status, content_type, content, final_url or url)

    def fail(self, url, exc):
        self.routes[url] = exc

    def get(self, url, **kwargs):
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"connection refused: {url}")
        if isinstance(route, Exception):
            raise route
        return route


@pytest.fixture
def fake_web():
    web = FakeWeb()
    with patch("favgrab.http_utils.requests.get", side_effect=web.get), \
            patch("favgrab.http_utils.time.sleep") as sleep:
        web.sleep = sleep
        yield web


@pytest.fixture
def config():
    return IconConfig()


@pytest.fixture
def client(config):
    """Flask test client running with default icon settings."""
    app.config["TESTING"] = True
    app.config["ICON_CONFIG"] = config
    with app.test_client() as client:
        yield client


def make_image(size=(100, 100), color=(200, 30, 30, 255)):
    return Image.new("RGBA", size, color)


def png_bytes(size=(100, 100), color=(200, 30, 30, 255)):
    buf = BytesIO()
    make_image(size, color).save(buf, "PNG")
    return buf.getvalue()


def ico_bytes(entries):
    """Build an ICO container of PNG payloads.

    `entries` is a list of (width, height, rgba) in directory order.
    """
    payloads = [png_bytes((w, h), color) for w, h, color in entries]
    header = struct.pack("<HHH", 0, 1, len(entries))
    offset = 6 + 16 * len(entries)
    directory = b""
    for (w, h, _), payload in zip(entries, payloads):
        directory += struct.pack("<BBBBHHII", w % 256, h % 256, 0, 0, 1, 32, len(payload), offset)
        offset += len(payload)
    return header + directory + b"".join(payloads)


def cur_bytes():
    """A cursor file: a Pillow BMP-format ICO whose header type is set to 2."""
    buf = BytesIO()
    Image.new("RGBA", (32, 32), (0, 255, 0, 255)).save(
        buf, "ICO", sizes=[(16, 16), (32, 32)], bitmap_format="bmp"
    )
    data = bytearray(buf.getvalue())
    data[2:4] = struct.pack("<H", 2)
    return bytes(data)
