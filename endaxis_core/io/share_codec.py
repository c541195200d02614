# endaxis_core/io/share_codec.py
from __future__ import annotations

import base64
import binascii
import gzip
import zlib


class ShareCodeError(ValueError):
    """分享码无法解码 / 解压 / 还原为文本。"""


def compress_to_share_string(text: str) -> str:
    """
    文本 -> gzip -> URL 安全 base64（'+' -> '-'，'/' -> '_'，去掉尾部 '='）。
    """
    raw = gzip.compress((text or "").encode("utf-8"))
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def decompress_share_string(code: str) -> str:
    """
    compress_to_share_string 的逆操作。

    任何格式问题（非法字符、截断、非 gzip、非 UTF-8）统一抛出 ShareCodeError。
    """
    s = (code or "").strip()
    if not s:
        raise ShareCodeError("empty share code")

    # 补齐 base64 padding
    s += "=" * (-len(s) % 4)

    try:
        raw = base64.urlsafe_b64decode(s.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError) as e:
        raise ShareCodeError(f"invalid base64: {e}") from e

    try:
        data = gzip.decompress(raw)
    except (OSError, EOFError, zlib.error) as e:
        raise ShareCodeError(f"invalid gzip payload: {e}") from e

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ShareCodeError(f"payload is not utf-8: {e}") from e
