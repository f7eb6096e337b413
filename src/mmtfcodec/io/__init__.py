"""Serialization of wire maps to bytes and files."""

from mmtfcodec.io.serialization import (
    decode_from_bytes,
    encode_to_bytes,
    from_bytes,
    read_file,
    to_bytes,
    write_file,
)

__all__ = [
    "to_bytes",
    "from_bytes",
    "read_file",
    "write_file",
    "encode_to_bytes",
    "decode_from_bytes",
]
