"""Codec strategies: the wire tags and the encode/decode chain behind each one.

Every encoded array is a byte buffer with a 12-byte big-endian header
``(codec, length, param)`` followed by the payload. ``length`` is the number
of decoded elements and ``param`` is codec specific (string length for
fixed-width strings, the multiplier for quantized floats, otherwise 0).
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, List, Tuple, Union

import numpy as np

from mmtfcodec.codec import arrays
from mmtfcodec.exceptions import UnknownCodecError, WireFormatError

HEADER = struct.Struct(">iii")


class Codec(IntEnum):
    """Wire codec tags.

    Tags 1-15 follow the MMTF 1.0 encoding table. Tag 16 stores quantized
    delta-encoded floats as split big/small integer streams.
    """
    FLOAT32 = 1
    INT8 = 2
    INT16 = 3
    INT32 = 4
    FIXED_STRING = 5
    RUN_LENGTH_CHAR = 6
    RUN_LENGTH_INT = 7
    DELTA_RUN_LENGTH_INT = 8
    RUN_LENGTH_FLOAT = 9
    DELTA_RECURSIVE_FLOAT = 10
    INT16_FLOAT = 11
    RECURSIVE_INT16_FLOAT = 12
    RECURSIVE_INT8_FLOAT = 13
    RECURSIVE_INT16 = 14
    RECURSIVE_INT8 = 15
    DELTA_SPLIT_FLOAT = 16

    @classmethod
    def from_tag(cls, tag: int) -> "Codec":
        """Look up a codec by its integer tag, rejecting unknown tags."""
        try:
            return cls(tag)
        except ValueError:
            raise UnknownCodecError(f"Unknown codec tag: {tag}") from None

    @property
    def is_float(self) -> bool:
        """Whether the codec decodes to floats."""
        return self in _FLOAT_CODECS

    @property
    def is_quantized(self) -> bool:
        """Whether the codec takes a multiplier parameter."""
        return self in _QUANTIZED_CODECS


_QUANTIZED_CODECS = frozenset({
    Codec.RUN_LENGTH_FLOAT,
    Codec.DELTA_RECURSIVE_FLOAT,
    Codec.INT16_FLOAT,
    Codec.RECURSIVE_INT16_FLOAT,
    Codec.RECURSIVE_INT8_FLOAT,
    Codec.DELTA_SPLIT_FLOAT,
})
_FLOAT_CODECS = _QUANTIZED_CODECS | {Codec.FLOAT32}


@dataclass(frozen=True)
class Strategy:
    """A codec tag together with its parameter."""
    codec: Codec
    param: int = 0

    def encode(self, values: Any) -> bytes:
        """Encode ``values`` into a framed buffer."""
        return encode_array(values, self.codec, self.param)


DecodedArray = Union[np.ndarray, List[str]]


# =============================================================================
# Payload encoding
# =============================================================================


def _encode_split(ints: np.ndarray) -> bytes:
    big, small = arrays.split_integers(ints)
    return (
        arrays.pack_integers([big.size], 4)
        + arrays.pack_integers(big, 4)
        + arrays.pack_integers(small, 2)
    )


def _decode_split(payload: bytes) -> np.ndarray:
    if len(payload) < 4:
        raise WireFormatError("Split payload is missing its big stream length")
    (num_big,) = arrays.unpack_integers(payload[:4], 4)
    end = 4 + 4 * int(num_big)
    if num_big < 0 or end > len(payload):
        raise WireFormatError(f"Split payload declares {num_big} big values")
    big = arrays.unpack_integers(payload[4:end], 4)
    small = arrays.unpack_integers(payload[end:], 2)
    return arrays.merge_integers(big, small)


def _check_param(codec: Codec, param: int) -> None:
    if (codec.is_quantized or codec is Codec.FIXED_STRING) and param <= 0:
        raise WireFormatError(f"Codec {codec.name} requires a positive parameter, got {param}")


def _encode_payload(values: Any, codec: Codec, param: int) -> bytes:
    if codec is Codec.FLOAT32:
        return arrays.pack_floats(values)
    if codec is Codec.INT8:
        return arrays.pack_integers(values, 1)
    if codec is Codec.INT16:
        return arrays.pack_integers(values, 2)
    if codec is Codec.INT32:
        return arrays.pack_integers(values, 4)
    if codec is Codec.FIXED_STRING:
        return arrays.encode_fixed_strings(values, param)
    if codec is Codec.RUN_LENGTH_CHAR:
        return arrays.pack_integers(
            arrays.run_length_encode(arrays.chars_to_ints(values)), 4
        )
    if codec is Codec.RUN_LENGTH_INT:
        return arrays.pack_integers(arrays.run_length_encode(values), 4)
    if codec is Codec.DELTA_RUN_LENGTH_INT:
        return arrays.pack_integers(
            arrays.run_length_encode(arrays.delta_encode(values)), 4
        )
    if codec is Codec.RUN_LENGTH_FLOAT:
        return arrays.pack_integers(
            arrays.run_length_encode(arrays.quantize(values, param)), 4
        )
    if codec is Codec.DELTA_RECURSIVE_FLOAT:
        ints = arrays.delta_encode(arrays.quantize(values, param))
        return arrays.pack_integers(arrays.recursive_index_encode(ints, 2), 2)
    if codec is Codec.INT16_FLOAT:
        return arrays.pack_integers(arrays.quantize(values, param), 2)
    if codec is Codec.RECURSIVE_INT16_FLOAT:
        ints = arrays.quantize(values, param)
        return arrays.pack_integers(arrays.recursive_index_encode(ints, 2), 2)
    if codec is Codec.RECURSIVE_INT8_FLOAT:
        ints = arrays.quantize(values, param)
        return arrays.pack_integers(arrays.recursive_index_encode(ints, 1), 1)
    if codec is Codec.RECURSIVE_INT16:
        return arrays.pack_integers(arrays.recursive_index_encode(values, 2), 2)
    if codec is Codec.RECURSIVE_INT8:
        return arrays.pack_integers(arrays.recursive_index_encode(values, 1), 1)
    if codec is Codec.DELTA_SPLIT_FLOAT:
        return _encode_split(arrays.delta_encode(arrays.quantize(values, param)))
    raise UnknownCodecError(f"No encoder for codec {codec!r}")


def _decode_payload(payload: bytes, codec: Codec, param: int) -> DecodedArray:
    if codec is Codec.FLOAT32:
        return arrays.unpack_floats(payload)
    if codec is Codec.INT8:
        return arrays.unpack_integers(payload, 1)
    if codec is Codec.INT16:
        return arrays.unpack_integers(payload, 2)
    if codec is Codec.INT32:
        return arrays.unpack_integers(payload, 4)
    if codec is Codec.FIXED_STRING:
        return arrays.decode_fixed_strings(payload, param)
    if codec is Codec.RUN_LENGTH_CHAR:
        return arrays.ints_to_chars(
            arrays.run_length_decode(arrays.unpack_integers(payload, 4))
        )
    if codec is Codec.RUN_LENGTH_INT:
        return arrays.run_length_decode(arrays.unpack_integers(payload, 4))
    if codec is Codec.DELTA_RUN_LENGTH_INT:
        return arrays.delta_decode(
            arrays.run_length_decode(arrays.unpack_integers(payload, 4))
        )
    if codec is Codec.RUN_LENGTH_FLOAT:
        return arrays.dequantize(
            arrays.run_length_decode(arrays.unpack_integers(payload, 4)), param
        )
    if codec is Codec.DELTA_RECURSIVE_FLOAT:
        ints = arrays.recursive_index_decode(arrays.unpack_integers(payload, 2), 2)
        return arrays.dequantize(arrays.delta_decode(ints), param)
    if codec is Codec.INT16_FLOAT:
        return arrays.dequantize(arrays.unpack_integers(payload, 2), param)
    if codec is Codec.RECURSIVE_INT16_FLOAT:
        ints = arrays.recursive_index_decode(arrays.unpack_integers(payload, 2), 2)
        return arrays.dequantize(ints, param)
    if codec is Codec.RECURSIVE_INT8_FLOAT:
        ints = arrays.recursive_index_decode(arrays.unpack_integers(payload, 1), 1)
        return arrays.dequantize(ints, param)
    if codec is Codec.RECURSIVE_INT16:
        return arrays.recursive_index_decode(arrays.unpack_integers(payload, 2), 2)
    if codec is Codec.RECURSIVE_INT8:
        return arrays.recursive_index_decode(arrays.unpack_integers(payload, 1), 1)
    if codec is Codec.DELTA_SPLIT_FLOAT:
        return arrays.dequantize(arrays.delta_decode(_decode_split(payload)), param)
    raise UnknownCodecError(f"No decoder for codec {codec!r}")


# =============================================================================
# Framed arrays
# =============================================================================


def encode_array(values: Any, codec: Union[Codec, int], param: int = 0) -> bytes:
    """Encode an array with the given codec and prepend the wire header.

    Args:
        values: Sequence of ints, floats, single characters or strings
        codec: Codec tag
        param: Codec parameter (string length or float multiplier)

    Returns:
        Header plus payload bytes

    Raises:
        UnknownCodecError: If ``codec`` is not a known tag
        CapacityError: If a value overflows the codec's integer width
    """
    codec = Codec.from_tag(int(codec))
    _check_param(codec, param)
    if not isinstance(values, np.ndarray):
        values = list(values)
    payload = _encode_payload(values, codec, param)
    return HEADER.pack(int(codec), len(values), param) + payload


def read_header(buffer: bytes) -> Tuple[Codec, int, int]:
    """Read ``(codec, length, param)`` from an encoded buffer."""
    if len(buffer) < HEADER.size:
        raise WireFormatError(
            f"Encoded array is {len(buffer)} bytes, shorter than its header"
        )
    tag, length, param = HEADER.unpack_from(buffer)
    return Codec.from_tag(tag), length, param


def decode_array(buffer: bytes) -> DecodedArray:
    """Decode a framed buffer produced by :func:`encode_array`.

    Returns:
        float32 array for float codecs, int32/int64 array for integer codecs,
        or a list of strings for character and string codecs

    Raises:
        UnknownCodecError: If the header names an unknown codec
        WireFormatError: If the payload is malformed or its length disagrees
            with the header
    """
    codec, length, param = read_header(buffer)
    _check_param(codec, param)
    decoded = _decode_payload(memoryview(buffer)[HEADER.size:].tobytes(), codec, param)
    if len(decoded) != length:
        raise WireFormatError(
            f"Codec {codec.name} decoded {len(decoded)} values, header declares {length}"
        )
    return decoded


def encoded_length(buffer: bytes) -> int:
    """Number of decoded elements declared in an encoded buffer's header."""
    return read_header(buffer)[1]


def strategy_for(codec: Union[Codec, int], param: int = 0) -> Strategy:
    """Build a validated :class:`Strategy`."""
    resolved = Codec.from_tag(int(codec))
    _check_param(resolved, param)
    return Strategy(resolved, param)
