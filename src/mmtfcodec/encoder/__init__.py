"""Encoders: full wire encoding and the reduced (trace-only) representation."""

from mmtfcodec.encoder.encoder import StructureEncoder, encode_structure
from mmtfcodec.encoder.reduced import (
    GroupKind,
    ReducedEncoder,
    classify_group,
    get_reduced,
)

__all__ = [
    "StructureEncoder",
    "encode_structure",
    "GroupKind",
    "ReducedEncoder",
    "classify_group",
    "get_reduced",
]
