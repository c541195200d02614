from .json_store import (
    JsonStoreError,
    JsonReadError,
    JsonWriteError,
    ensure_dir,
    read_json,
    atomic_write_json,
    dump_json_text,
    now_ms,
)
from .share_codec import ShareCodeError, compress_to_share_string, decompress_share_string
from .png_meta import PngMetadataError, add_png_text_chunk, read_png_text_chunk

__all__ = [
    "JsonStoreError",
    "JsonReadError",
    "JsonWriteError",
    "ensure_dir",
    "read_json",
    "atomic_write_json",
    "dump_json_text",
    "now_ms",
    "ShareCodeError",
    "compress_to_share_string",
    "decompress_share_string",
    "PngMetadataError",
    "add_png_text_chunk",
    "read_png_text_chunk",
]
