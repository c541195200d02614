# tests/test_codecs.py
from __future__ import annotations

import base64
import gzip
import struct
import zlib

import pytest

from endaxis_core.io.png_meta import PNG_SIGNATURE, PngMetadataError, add_png_text_chunk, read_png_text_chunk
from endaxis_core.io.share_codec import ShareCodeError, compress_to_share_string, decompress_share_string

from test_project_io import tiny_png


def test_share_string_is_urlsafe_gzip_without_padding() -> None:
    text = '{"名称": "方案", "x": [1, 2, 3]}' * 5
    code = compress_to_share_string(text)
    assert set(code) <= set("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_")

    raw = base64.urlsafe_b64decode(code + "=" * (-len(code) % 4))
    assert gzip.decompress(raw).decode("utf-8") == text
    assert decompress_share_string(code) == text


def test_share_string_rejects_non_utf8_payload() -> None:
    code = base64.urlsafe_b64encode(gzip.compress(b"\xff\xfe")).decode("ascii").rstrip("=")
    with pytest.raises(ShareCodeError):
        decompress_share_string(code)


@pytest.mark.parametrize("code", ["", "   ", "aGVsbG8", "H4sI"])
def test_share_string_malformed(code: str) -> None:
    with pytest.raises(ShareCodeError):
        decompress_share_string(code)


def test_png_text_chunk_inserted_before_iend_with_crc() -> None:
    png = tiny_png()
    out = add_png_text_chunk(png, "endaxis", "abc-_123")

    iend = out.rfind(b"IEND") - 4
    body = b"endaxis\x00abc-_123"
    expected = struct.pack(">I", len(body)) + b"tEXt" + body + struct.pack(">I", zlib.crc32(b"tEXt" + body) & 0xFFFFFFFF)
    assert out[iend - len(expected):iend] == expected
    assert out[:iend - len(expected)] == png[:-12]

    assert read_png_text_chunk(out, "endaxis") == "abc-_123"
    assert read_png_text_chunk(out, "other") is None


def test_png_first_matching_key_wins() -> None:
    out = add_png_text_chunk(add_png_text_chunk(tiny_png(), "k", "one"), "k", "two")
    assert read_png_text_chunk(out, "k") == "one"


@pytest.mark.parametrize(
    "data",
    [
        b"",
        b"not a png at all",
        PNG_SIGNATURE + b"\x00\x00\x00\xffIHDR",
    ],
)
def test_png_invalid_inputs(data: bytes) -> None:
    with pytest.raises(PngMetadataError):
        add_png_text_chunk(data, "k", "v")


def test_png_without_iend() -> None:
    with pytest.raises(PngMetadataError):
        add_png_text_chunk(tiny_png()[:-12], "k", "v")


def test_png_value_must_be_latin1() -> None:
    with pytest.raises(PngMetadataError):
        add_png_text_chunk(tiny_png(), "k", "方案")
