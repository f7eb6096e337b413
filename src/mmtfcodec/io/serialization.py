"""MessagePack serialization of wire maps, with optional gzip compression.

Provides:
- Packing and unpacking of wire maps (msgpack with binary type support)
- Transparent gzip detection on read
- File helpers and one-step structure encode/decode to bytes
"""

from __future__ import annotations

import gzip
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import msgpack

from mmtfcodec.config import EncoderConfig
from mmtfcodec.data.structure import StructureData
from mmtfcodec.decoder.decoder import decode_structure
from mmtfcodec.encoder.encoder import encode_structure
from mmtfcodec.exceptions import WireFormatError

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


def to_bytes(wire: Dict[str, Any], compress: bool = False) -> bytes:
    """Pack a wire map with MessagePack.

    Args:
        wire: Map of field name to encoded bytes or plain values
        compress: Whether to gzip the packed bytes

    Returns:
        Serialized bytes
    """
    packed = msgpack.packb(wire, use_bin_type=True)
    if compress:
        packed = gzip.compress(packed)
    return packed


def from_bytes(data: bytes) -> Dict[str, Any]:
    """Unpack a wire map, decompressing first if the data is gzipped."""
    if data[:2] == GZIP_MAGIC:
        data = gzip.decompress(data)
    try:
        wire = msgpack.unpackb(data, raw=False)
    except (msgpack.UnpackException, ValueError) as e:
        raise WireFormatError(f"Not a MessagePack wire map: {e}") from e
    if not isinstance(wire, dict):
        raise WireFormatError(f"Expected a map at top level, got {type(wire).__name__}")
    return wire


def write_file(wire: Dict[str, Any], path: str | Path, compress: bool = False) -> None:
    """Serialize a wire map to ``path``."""
    data = to_bytes(wire, compress=compress)
    Path(path).write_bytes(data)
    logger.info(f"Wrote {len(data)} bytes to {path}")


def read_file(path: str | Path) -> Dict[str, Any]:
    """Read a wire map from ``path`` (plain or gzipped)."""
    return from_bytes(Path(path).read_bytes())


def encode_to_bytes(
    data: StructureData,
    config: Optional[EncoderConfig] = None,
    compress: bool = False,
) -> bytes:
    """Encode a structure and serialize it in one step."""
    return to_bytes(encode_structure(data, config), compress=compress)


def decode_from_bytes(data: bytes) -> StructureData:
    """Deserialize and decode a structure in one step."""
    return decode_structure(from_bytes(data))
