"""mmtfcodec: binary codec for macromolecular structure data (MMTF).

This package provides tools for:
- Building flat, globally indexed structures through a producer contract
- Encoding structures into compact, field-specifically encoded wire maps
- Producing reduced (backbone trace only) representations
- Decoding wire maps back into structures
- MessagePack serialization with optional gzip compression
"""

from mmtfcodec.config import Config, EncoderConfig, ReducedConfig
from mmtfcodec.data import AdapterToStructureData, StructureData
from mmtfcodec.decoder import StructureDecoder, decode_structure
from mmtfcodec.encoder import (
    ReducedEncoder,
    StructureEncoder,
    encode_structure,
    get_reduced,
)

__version__ = "0.1.0"
__all__ = [
    "Config",
    "EncoderConfig",
    "ReducedConfig",
    "AdapterToStructureData",
    "StructureData",
    "StructureDecoder",
    "decode_structure",
    "ReducedEncoder",
    "StructureEncoder",
    "encode_structure",
    "get_reduced",
    "__version__",
]
