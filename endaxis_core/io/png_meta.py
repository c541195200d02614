# endaxis_core/io/png_meta.py
from __future__ import annotations

import struct
import zlib
from typing import Iterator, Optional, Tuple

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class PngMetadataError(ValueError):
    """PNG 结构不合法（签名错误 / 块越界 / 找不到 IEND）。"""


def _iter_chunks(data: bytes) -> Iterator[Tuple[int, bytes, int, int]]:
    """
    逐块遍历 PNG：产出 (chunk_offset, chunk_type, data_offset, data_length)。
    """
    if not data.startswith(PNG_SIGNATURE):
        raise PngMetadataError("not a PNG file (bad signature)")

    offset = len(PNG_SIGNATURE)
    total = len(data)
    while offset < total:
        if offset + 8 > total:
            raise PngMetadataError(f"truncated chunk header at offset {offset}")
        (length,) = struct.unpack(">I", data[offset:offset + 4])
        ctype = data[offset + 4:offset + 8]
        data_offset = offset + 8
        if data_offset + length + 4 > total:
            raise PngMetadataError(f"chunk {ctype!r} exceeds file size")
        yield offset, ctype, data_offset, length
        if ctype == b"IEND":
            return
        offset = data_offset + length + 4


def add_png_text_chunk(png: bytes, key: str, value: str) -> bytes:
    """
    在 IEND 之前插入一个 tEXt 块：key + '\\0' + value，附 CRC-32（覆盖类型 + 数据）。

    tEXt 规定为 Latin-1；分享码本身是 ASCII，因此足够。
    """
    iend_offset = -1
    for chunk_offset, ctype, _d_off, _d_len in _iter_chunks(png):
        if ctype == b"IEND":
            iend_offset = chunk_offset
            break
    if iend_offset < 0:
        raise PngMetadataError("Invalid PNG: IEND chunk not found")

    try:
        body = key.encode("latin-1") + b"\x00" + value.encode("latin-1")
    except UnicodeEncodeError as e:
        raise PngMetadataError(f"tEXt key/value must be latin-1: {e}") from e

    ctype = b"tEXt"
    crc = zlib.crc32(ctype + body) & 0xFFFFFFFF
    chunk = struct.pack(">I", len(body)) + ctype + body + struct.pack(">I", crc)

    return png[:iend_offset] + chunk + png[iend_offset:]


def read_png_text_chunk(png: bytes, key: str) -> Optional[str]:
    """
    返回第一个 key 匹配的 tEXt 块的值；找不到返回 None。
    """
    for _c_off, ctype, d_off, d_len in _iter_chunks(png):
        if ctype != b"tEXt":
            continue
        body = png[d_off:d_off + d_len]
        sep = body.find(b"\x00")
        if sep < 0:
            continue
        if body[:sep].decode("latin-1") == key:
            return body[sep + 1:].decode("latin-1")
    return None
