"""
Unit tests for the ICO container reader.
"""
import struct

import pytest

from conftest import cur_bytes, ico_bytes, png_bytes
from favgrab.ico_utils import (
    decode_ico,
    is_ico_content_type,
    looks_like_ico,
    read_ico_directory,
    select_largest,
    should_decode_as_ico,
)

RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)


@pytest.mark.unit
class TestDirectory:

    def test_reads_entries_in_directory_order(self):
        data = ico_bytes([(16, 16, RED), (32, 32, GREEN), (48, 48, BLUE)])
        entries = read_ico_directory(data)

        assert [e.width for e in entries] == [16, 32, 48]
        assert [e.index for e in entries] == [0, 1, 2]
        assert entries[0].offset == 6 + 16 * 3

    def test_zero_width_means_256(self):
        data = ico_bytes([(256, 256, RED)])
        assert read_ico_directory(data)[0].dim == (256, 256)

    def test_rejects_non_ico(self):
        with pytest.raises(ValueError):
            read_ico_directory(png_bytes())

    def test_rejects_truncated_directory(self):
        data = struct.pack("<HHH", 0, 1, 3) + b"\x00" * 10
        with pytest.raises(ValueError):
            read_ico_directory(data)

    def test_rejects_entry_past_end_of_file(self):
        data = ico_bytes([(16, 16, RED)])
        with pytest.raises(ValueError):
            read_ico_directory(data[:-10])


@pytest.mark.unit
class TestSelection:

    def test_largest_width_wins(self):
        entries = read_ico_directory(ico_bytes([(16, 16, RED), (48, 48, BLUE), (32, 32, GREEN)]))
        assert select_largest(entries).width == 48

    def test_equal_widths_first_encountered_wins(self):
        entries = read_ico_directory(ico_bytes([(32, 32, RED), (32, 32, GREEN), (16, 16, BLUE)]))
        assert select_largest(entries).index == 0

    def test_no_entries(self):
        assert select_largest([]) is None


@pytest.mark.unit
class TestDecode:

    def test_decodes_48_wide_entry(self):
        img = decode_ico(ico_bytes([(16, 16, RED), (32, 32, GREEN), (48, 48, BLUE)]))

        assert img.size == (48, 48)
        assert img.mode == "RGBA"
        assert img.getpixel((0, 0)) == BLUE

    def test_tie_decodes_first_entry(self):
        img = decode_ico(ico_bytes([(32, 32, RED), (32, 32, GREEN)]))
        assert img.getpixel((5, 5)) == RED

    def test_decodes_bmp_entries_written_by_pillow(self):
        from io import BytesIO
        from PIL import Image

        buf = BytesIO()
        Image.new("RGBA", (64, 64), GREEN).save(buf, "ICO", sizes=[(16, 16), (32, 32)], bitmap_format="bmp")
        img = decode_ico(buf.getvalue())

        assert img is not None
        assert img.size == (32, 32)

    def test_zero_entries_is_not_decodable(self):
        assert decode_ico(struct.pack("<HHH", 0, 1, 0)) is None

    def test_garbage_is_not_decodable(self):
        assert decode_ico(b"definitely not an icon") is None

    def test_corrupt_payload_is_not_decodable(self):
        header = struct.pack("<HHH", 0, 1, 1)
        entry = struct.pack("<BBBBHHII", 16, 16, 0, 0, 1, 32, 8, 22)
        assert decode_ico(header + entry + b"\x89PNG\r\n\x1a\n") is None


@pytest.mark.unit
class TestDetection:

    @pytest.mark.parametrize("ctype", [
        "image/x-icon",
        "image/vnd.microsoft.icon",
        "IMAGE/X-ICON; charset=binary",
    ])
    def test_ico_content_types(self, ctype):
        assert is_ico_content_type(ctype)

    def test_other_content_types(self):
        assert not is_ico_content_type("image/png")
        assert not is_ico_content_type(None)

    def test_signature_sniffing(self):
        data = ico_bytes([(16, 16, RED)])
        assert looks_like_ico(data)
        assert not looks_like_ico(png_bytes())
        assert not looks_like_ico(b"")

    def test_generic_content_type_uses_signature(self):
        data = ico_bytes([(16, 16, RED)])
        assert should_decode_as_ico("application/octet-stream", data)
        assert should_decode_as_ico("", data)
        assert not should_decode_as_ico("image/png", data)


@pytest.mark.unit
class TestCursorFiles:

    def test_cursor_directory_is_rejected(self):
        with pytest.raises(ValueError):
            read_ico_directory(cur_bytes())

    def test_cursor_is_not_decodable_as_icon(self):
        assert decode_ico(cur_bytes()) is None

    def test_cursor_served_as_icon_does_not_raise(self):
        from favgrab.http_utils import FetchResult
        from favgrab.image_utils import ConversionRequest, convert_icon

        fetched = FetchResult(url="https://example.com/favicon.ico", status=200,
                              content_type="image/x-icon", content=cur_bytes())
        result = convert_icon(fetched, ConversionRequest("https://example.com/favicon.ico", "png", 16, True))

        assert result.kind in ("encoded", "passthrough")
        if result.kind == "passthrough":
            assert result.content == fetched.content
