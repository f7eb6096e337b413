"""Array codec: wire-level encodings and the codec strategy table."""

from mmtfcodec.codec.arrays import (
    chars_to_ints,
    decode_fixed_strings,
    delta_decode,
    delta_encode,
    dequantize,
    encode_fixed_strings,
    ints_to_chars,
    merge_integers,
    pack_integers,
    quantize,
    recursive_index_decode,
    recursive_index_encode,
    run_length_decode,
    run_length_encode,
    split_integers,
    unpack_integers,
)
from mmtfcodec.codec.strategies import (
    Codec,
    Strategy,
    decode_array,
    encode_array,
    read_header,
)

__all__ = [
    # Array converters
    "chars_to_ints",
    "ints_to_chars",
    "pack_integers",
    "unpack_integers",
    "quantize",
    "dequantize",
    "delta_encode",
    "delta_decode",
    "run_length_encode",
    "run_length_decode",
    "split_integers",
    "merge_integers",
    "recursive_index_encode",
    "recursive_index_decode",
    "encode_fixed_strings",
    "decode_fixed_strings",
    # Strategies
    "Codec",
    "Strategy",
    "encode_array",
    "decode_array",
    "read_header",
]
