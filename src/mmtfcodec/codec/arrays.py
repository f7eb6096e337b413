"""Array converters implementing every wire-level encoding and its inverse.

All functions are pure and deterministic. Integer results are returned as
int64 numpy arrays so that intermediate stages (quantization, delta
encoding) never wrap; the fixed-width packers are the only place where
values are narrowed, and they reject anything that does not fit.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from mmtfcodec.exceptions import CapacityError, WireFormatError

logger = logging.getLogger(__name__)

# Big-endian wire dtypes keyed by byte width
INT_DTYPES = {1: np.dtype(">i1"), 2: np.dtype(">i2"), 4: np.dtype(">i4")}
FLOAT_DTYPE = np.dtype(">f4")

INT_LIMITS = {
    nbytes: (int(np.iinfo(dtype).min), int(np.iinfo(dtype).max))
    for nbytes, dtype in INT_DTYPES.items()
}
INT16_MIN, INT16_MAX = INT_LIMITS[2]

# Quantized values beyond this magnitude cannot be represented exactly
_MAX_QUANTIZED = 2 ** 53

_EMPTY = np.zeros(0, dtype=np.int64)


def as_int_array(values: Iterable[int]) -> np.ndarray:
    """Convert a sequence of integers to an int64 array."""
    if isinstance(values, np.ndarray):
        return values.astype(np.int64, copy=False)
    try:
        return np.asarray(list(values), dtype=np.int64)
    except OverflowError as e:
        raise CapacityError(f"Integer value does not fit in 64 bits: {e}") from e


# =============================================================================
# Fixed-width Integers
# =============================================================================


def check_int_range(values: np.ndarray, nbytes: int) -> None:
    """Raise CapacityError if any value is outside the signed ``nbytes`` range."""
    lo, hi = INT_LIMITS[nbytes]
    if values.size == 0:
        return
    bad = np.flatnonzero((values < lo) | (values > hi))
    if bad.size:
        index = int(bad[0])
        value = int(values[index])
        raise CapacityError(
            f"Value {value} at index {index} does not fit in a "
            f"{nbytes * 8}-bit signed integer [{lo}, {hi}]",
            index=index,
            value=value,
        )


def pack_integers(values: Iterable[int], nbytes: int) -> bytes:
    """Pack integers big-endian using ``nbytes`` (1, 2 or 4) bytes each.

    Raises:
        CapacityError: If a value overflows the declared width
    """
    if nbytes not in INT_DTYPES:
        raise ValueError(f"Unsupported integer width: {nbytes}")
    arr = as_int_array(values)
    check_int_range(arr, nbytes)
    return arr.astype(INT_DTYPES[nbytes]).tobytes()


def unpack_integers(data: bytes, nbytes: int) -> np.ndarray:
    """Unpack big-endian integers of ``nbytes`` bytes each into int32."""
    if nbytes not in INT_DTYPES:
        raise ValueError(f"Unsupported integer width: {nbytes}")
    if len(data) % nbytes:
        raise WireFormatError(
            f"Buffer of {len(data)} bytes is not a multiple of {nbytes}"
        )
    return np.frombuffer(data, dtype=INT_DTYPES[nbytes]).astype(np.int32)


def pack_floats(values: Iterable[float]) -> bytes:
    """Pack floats as big-endian float32."""
    return np.asarray(values, dtype=np.float64).astype(FLOAT_DTYPE).tobytes()


def unpack_floats(data: bytes) -> np.ndarray:
    """Unpack big-endian float32 values."""
    if len(data) % 4:
        raise WireFormatError(f"Buffer of {len(data)} bytes is not a multiple of 4")
    return np.frombuffer(data, dtype=FLOAT_DTYPE).astype(np.float32)


# =============================================================================
# Quantization
# =============================================================================


def quantize(values: Iterable[float], multiplier: int) -> np.ndarray:
    """Convert floats to integers: ``round(value * multiplier)``.

    Halves round up (towards positive infinity), matching the reference
    encoder. This is a lossy transform with precision ``0.5 / multiplier``.

    Raises:
        CapacityError: For non-finite values or magnitudes too large to round
    """
    if multiplier <= 0:
        raise ValueError(f"Multiplier must be positive, got {multiplier}")
    scaled = np.asarray(values, dtype=np.float64) * multiplier
    bad = np.flatnonzero(~np.isfinite(scaled) | (np.abs(scaled) > _MAX_QUANTIZED))
    if bad.size:
        index = int(bad[0])
        value = float(np.asarray(values, dtype=np.float64)[index])
        raise CapacityError(
            f"Value {value} at index {index} cannot be quantized "
            f"with multiplier {multiplier}",
            index=index,
            value=value,
        )
    return np.floor(scaled + 0.5).astype(np.int64)


def dequantize(values: Iterable[int], multiplier: int) -> np.ndarray:
    """Convert quantized integers back to float32: ``value / multiplier``."""
    if multiplier <= 0:
        raise WireFormatError(f"Multiplier must be positive, got {multiplier}")
    return (np.asarray(values, dtype=np.float64) / multiplier).astype(np.float32)


# =============================================================================
# Delta and Run-length
# =============================================================================


def delta_encode(values: Iterable[int]) -> np.ndarray:
    """Replace each value (except the first) with its difference to the previous."""
    arr = as_int_array(values)
    out = arr.copy()
    out[1:] = arr[1:] - arr[:-1]
    return out


def delta_decode(values: Iterable[int]) -> np.ndarray:
    """Inverse of :func:`delta_encode` (running sum)."""
    return np.cumsum(as_int_array(values), dtype=np.int64)


def run_length_encode(values: Iterable[int]) -> np.ndarray:
    """Collapse runs of identical values into ``(value, count)`` pairs.

    Example:
        >>> run_length_encode([1, 1, 1, 2, 3, 3]).tolist()
        [1, 3, 2, 1, 3, 2]
    """
    arr = as_int_array(values)
    if arr.size == 0:
        return _EMPTY.copy()
    starts = np.concatenate(([0], np.flatnonzero(arr[1:] != arr[:-1]) + 1))
    counts = np.diff(np.concatenate((starts, [arr.size])))
    out = np.empty(2 * starts.size, dtype=np.int64)
    out[0::2] = arr[starts]
    out[1::2] = counts
    return out


def run_length_decode(pairs: Iterable[int]) -> np.ndarray:
    """Expand ``(value, count)`` pairs back into the full sequence."""
    arr = as_int_array(pairs)
    if arr.size % 2:
        raise WireFormatError(f"Run-length data has odd length {arr.size}")
    counts = arr[1::2]
    if np.any(counts < 0):
        raise WireFormatError("Run-length data contains a negative count")
    return np.repeat(arr[0::2], counts)


# =============================================================================
# Split Indexing (big/small streams)
# =============================================================================


def split_integers(values: Iterable[int]) -> Tuple[np.ndarray, np.ndarray]:
    """Split a sequence into a 4-byte "big" stream and a 2-byte "small" stream.

    The first value always goes to the big stream. Every later value that
    fits in int16 goes to the small stream; an out-of-range value closes the
    current run, writing the run length and then the value itself to the big
    stream. The final run length is always written, even when zero::

        big   = [first, run_0, outlier_0, run_1, outlier_1, ..., final_run]
        small = [in-range values in original order]

    Returns:
        Tuple of (big, small) int64 arrays. An empty input gives two empty
        arrays.
    """
    arr = as_int_array(values)
    if arr.size == 0:
        return _EMPTY.copy(), _EMPTY.copy()

    rest = arr[1:]
    outlier = (rest > INT16_MAX) | (rest < INT16_MIN)
    positions = np.flatnonzero(outlier)
    runs = np.diff(np.concatenate(([-1], positions, [rest.size]))) - 1

    big = np.empty(2 * positions.size + 2, dtype=np.int64)
    big[0] = arr[0]
    big[1:-1:2] = runs[:-1]
    big[2:-1:2] = rest[positions]
    big[-1] = runs[-1]
    return big, rest[~outlier]


def merge_integers(big: Sequence[int], small: Sequence[int]) -> np.ndarray:
    """Inverse of :func:`split_integers`."""
    big_arr = as_int_array(big)
    small_arr = as_int_array(small)
    if big_arr.size == 0:
        if small_arr.size:
            raise WireFormatError("Split data has small values but no big values")
        return _EMPTY.copy()
    if big_arr.size % 2:
        raise WireFormatError(f"Split big stream has odd length {big_arr.size}")

    pieces: List[np.ndarray] = [big_arr[:1]]
    position = 0
    for i in range(1, big_arr.size, 2):
        run = int(big_arr[i])
        if run < 0 or position + run > small_arr.size:
            raise WireFormatError(f"Split run length {run} overruns the small stream")
        pieces.append(small_arr[position:position + run])
        position += run
        if i + 1 < big_arr.size:
            pieces.append(big_arr[i + 1:i + 2])
    if position != small_arr.size:
        raise WireFormatError(
            f"Split small stream has {small_arr.size - position} unconsumed values"
        )
    return np.concatenate(pieces)


# =============================================================================
# Recursive Index Packing
# =============================================================================


def recursive_index_encode(values: Iterable[int], nbytes: int = 2) -> np.ndarray:
    """Pack integers into the ``nbytes`` range by emitting the limit repeatedly.

    A value ``v >= max`` is written as ``max`` followed by the encoding of
    ``v - max`` (likewise for ``min``), so every output fits the range.
    """
    lo, hi = INT_LIMITS[nbytes]
    out: List[int] = []
    for value in as_int_array(values).tolist():
        while value >= hi:
            out.append(hi)
            value -= hi
        while value <= lo:
            out.append(lo)
            value -= lo
        out.append(value)
    return np.asarray(out, dtype=np.int64)


def recursive_index_decode(values: Iterable[int], nbytes: int = 2) -> np.ndarray:
    """Inverse of :func:`recursive_index_encode`."""
    lo, hi = INT_LIMITS[nbytes]
    out: List[int] = []
    running = 0
    for value in as_int_array(values).tolist():
        running += value
        if value != hi and value != lo:
            out.append(running)
            running = 0
    if running:
        raise WireFormatError("Recursive index data ends inside a continued value")
    return np.asarray(out, dtype=np.int64)


# =============================================================================
# Characters and Fixed-width Strings
# =============================================================================


def chars_to_ints(chars: Iterable[Optional[str]]) -> np.ndarray:
    """Map single characters to their ASCII codes; empty or missing maps to 0."""
    out = []
    for index, char in enumerate(chars):
        if not char:
            out.append(0)
            continue
        if len(char) != 1 or ord(char) > 127:
            raise CapacityError(
                f"Value {char!r} at index {index} is not a single ASCII character",
                index=index,
                value=char,
            )
        out.append(ord(char))
    return np.asarray(out, dtype=np.int64)


def ints_to_chars(values: Iterable[int]) -> List[str]:
    """Inverse of :func:`chars_to_ints`; 0 maps to the empty string."""
    return [chr(v) if v else "" for v in as_int_array(values).tolist()]


def encode_fixed_strings(strings: Sequence[Optional[str]], length: int = 4) -> bytes:
    """Pack each string into exactly ``length`` bytes, NUL padded.

    Longer strings are truncated to their first ``length`` bytes and
    ``None`` is written as ``length`` zero bytes.

    Raises:
        CapacityError: If a string is not ASCII
    """
    if length <= 0:
        raise ValueError(f"String length must be positive, got {length}")
    buf = bytearray(len(strings) * length)
    truncated = 0
    for i, s in enumerate(strings):
        if s is None:
            continue
        if not s.isascii():
            raise CapacityError(
                f"Value {s!r} at index {i} is not an ASCII string",
                index=i,
                value=s,
            )
        raw = s.encode("ascii")
        if len(raw) > length:
            raw = raw[:length]
            truncated += 1
        buf[i * length:i * length + len(raw)] = raw
    if truncated:
        logger.warning(f"Truncated {truncated} strings to {length} bytes")
    return bytes(buf)


def decode_fixed_strings(data: bytes, length: int = 4) -> List[str]:
    """Inverse of :func:`encode_fixed_strings` (trailing NULs removed)."""
    if length <= 0:
        raise WireFormatError(f"String length must be positive, got {length}")
    if len(data) % length:
        raise WireFormatError(
            f"String buffer of {len(data)} bytes is not a multiple of {length}"
        )
    return [
        bytes(data[i:i + length]).rstrip(b"\0").decode("utf-8", errors="replace")
        for i in range(0, len(data), length)
    ]
