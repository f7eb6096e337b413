"""Exception types raised by the codec, the structure contract and the encoders."""

from __future__ import annotations

from typing import Any, Optional


class MmtfError(ValueError):
    """Base class for all mmtfcodec errors."""


class ContractViolationError(MmtfError):
    """A producer setter was called out of cadence or past a declared total."""


class CapacityError(MmtfError):
    """A value does not fit the fixed-width integer type it is encoded to.

    Attributes:
        field: Wire field name being encoded (if known)
        index: Position of the offending value in the array
        value: The offending value
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        index: Optional[int] = None,
        value: Any = None,
    ):
        super().__init__(message)
        self.field = field
        self.index = index
        self.value = value

    def with_field(self, field: str) -> "CapacityError":
        """Return a copy of this error annotated with the wire field name."""
        return CapacityError(
            f"{field}: {self}", field=field, index=self.index, value=self.value
        )


class UnknownCodecError(MmtfError):
    """An encoded buffer or field strategy names a codec tag that does not exist."""


class ReductionError(MmtfError):
    """A polymer group has no trace atom and the policy forbids passing it through."""


class WireFormatError(MmtfError):
    """The wire map is malformed (missing fields, length mismatches, bad version)."""
