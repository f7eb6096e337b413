"""Decoder: wire map back to structure data."""

from mmtfcodec.decoder.decoder import (
    StructureDecoder,
    assert_consistency,
    check_version,
    decode_structure,
)

__all__ = [
    "StructureDecoder",
    "assert_consistency",
    "check_version",
    "decode_structure",
]
