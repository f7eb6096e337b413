"""Configuration management for the MMTF codec.

This module defines the encoding strategy of every wire array field, the
reduced (backbone trace) encoding parameters, and the top-level settings
used by the command-line tools.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from mmtfcodec.codec.strategies import Codec, Strategy, strategy_for
from mmtfcodec.constants import fields
from mmtfcodec.constants.residues import (
    NUCLEOTIDE_FALLBACK_TRACE_ATOM,
    NUCLEOTIDE_TRACE_ATOM,
    PROTEIN_TRACE_ATOM,
)


class MissingTracePolicy(str, Enum):
    """What the reduced encoder does with a polymer group lacking a trace atom."""

    PASS_THROUGH = "pass_through"
    ERROR = "error"


# Codecs accepted by each kind of array field
_FLOAT_CODECS = frozenset(c for c in Codec if c.is_float)
_INT_CODECS = frozenset({
    Codec.INT8,
    Codec.INT16,
    Codec.INT32,
    Codec.RUN_LENGTH_INT,
    Codec.DELTA_RUN_LENGTH_INT,
    Codec.RECURSIVE_INT16,
    Codec.RECURSIVE_INT8,
})
_CHAR_CODECS = frozenset({Codec.RUN_LENGTH_CHAR, Codec.FIXED_STRING})
_STRING_CODECS = frozenset({Codec.FIXED_STRING})

_ALLOWED_CODECS = {
    **{name: _FLOAT_CODECS for name in fields.FLOAT_FIELDS},
    **{name: _INT_CODECS for name in fields.INT_FIELDS},
    **{name: _CHAR_CODECS for name in fields.CHAR_FIELDS},
    **{name: _STRING_CODECS for name in fields.STRING_FIELDS},
}


class FieldEncoding(BaseModel):
    """Codec tag and parameter for one wire array field."""

    codec: int = Field(description="Codec tag (1-16)")
    param: int = Field(default=0, description="Multiplier or string length")

    @field_validator("codec")
    @classmethod
    def _known_codec(cls, value: int) -> int:
        return int(Codec.from_tag(value))

    @model_validator(mode="after")
    def _valid_param(self) -> "FieldEncoding":
        strategy_for(self.codec, self.param)
        return self

    def to_strategy(self) -> Strategy:
        """Build the codec strategy for this field."""
        return strategy_for(self.codec, self.param)


def default_field_encodings() -> Dict[str, FieldEncoding]:
    """Default strategy of every array field."""
    table = {
        "xCoordList": (Codec.DELTA_SPLIT_FLOAT, 1000),
        "yCoordList": (Codec.DELTA_SPLIT_FLOAT, 1000),
        "zCoordList": (Codec.DELTA_SPLIT_FLOAT, 1000),
        "bFactorList": (Codec.DELTA_SPLIT_FLOAT, 100),
        "occupancyList": (Codec.RUN_LENGTH_FLOAT, 100),
        "atomIdList": (Codec.DELTA_RUN_LENGTH_INT, 0),
        "groupIdList": (Codec.DELTA_RUN_LENGTH_INT, 0),
        "sequenceIndexList": (Codec.DELTA_RUN_LENGTH_INT, 0),
        "altLocList": (Codec.RUN_LENGTH_CHAR, 0),
        "insCodeList": (Codec.RUN_LENGTH_CHAR, 0),
        "groupTypeList": (Codec.INT32, 0),
        "bondAtomList": (Codec.INT32, 0),
        "secStructList": (Codec.INT8, 0),
        "bondOrderList": (Codec.INT8, 0),
        "chainIdList": (Codec.FIXED_STRING, 4),
        "chainNameList": (Codec.FIXED_STRING, 4),
        "groupsPerChain": (Codec.INT32, 0),
        "chainsPerModel": (Codec.INT32, 0),
    }
    return {
        name: FieldEncoding(codec=int(codec), param=param)
        for name, (codec, param) in table.items()
    }


class EncoderConfig(BaseModel):
    """Configuration for the full encoder.

    ``field_encodings`` may list only the fields to override; every other
    array field keeps its default strategy.
    """

    field_encodings: Dict[str, FieldEncoding] = Field(
        default_factory=default_field_encodings,
        description="Codec strategy per wire array field"
    )
    mmtf_version: str = Field(
        default=fields.MMTF_VERSION,
        description="Format version written to mmtfVersion"
    )
    producer: str = Field(
        default="mmtfcodec",
        description="Producer written to mmtfProducer when the structure has none"
    )

    @field_validator("field_encodings")
    @classmethod
    def _merge_defaults(cls, value: Dict[str, FieldEncoding]) -> Dict[str, FieldEncoding]:
        merged = default_field_encodings()
        for name, encoding in value.items():
            allowed = _ALLOWED_CODECS.get(name)
            if allowed is None:
                raise ValueError(f"Unknown array field: {name}")
            if Codec(encoding.codec) not in allowed:
                raise ValueError(
                    f"Codec {Codec(encoding.codec).name} cannot encode {name}"
                )
            merged[name] = encoding
        return merged

    def strategy(self, field_name: str) -> Strategy:
        """Codec strategy for ``field_name``."""
        return self.field_encodings[field_name].to_strategy()


class ReducedConfig(BaseModel):
    """Configuration for the reduced (trace-atom-only) encoder."""

    protein_trace_atom: Tuple[str, str] = Field(
        default=PROTEIN_TRACE_ATOM,
        description="(atom name, element) kept for amino acids"
    )
    nucleotide_trace_atom: Tuple[str, str] = Field(
        default=NUCLEOTIDE_TRACE_ATOM,
        description="(atom name, element) kept for nucleotides"
    )
    nucleotide_fallback_atom: Tuple[str, str] = Field(
        default=NUCLEOTIDE_FALLBACK_TRACE_ATOM,
        description="Kept for nucleotides without the primary trace atom"
    )
    missing_trace_policy: MissingTracePolicy = Field(
        default=MissingTracePolicy.PASS_THROUGH,
        description="Handling of polymer groups with no trace atom"
    )


class Config(BaseSettings):
    """Main configuration for the codec tools."""

    # Sub-configurations
    encoder: EncoderConfig = Field(default_factory=EncoderConfig)
    reduced: ReducedConfig = Field(default_factory=ReducedConfig)

    # Output parameters
    compress: bool = Field(default=False, description="Gzip encoded output")

    model_config = {"env_prefix": "MMTFCODEC_"}

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        return cls(**data)

    def to_yaml(self, path: str | Path) -> None:
        """Save configuration to a YAML file."""
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False)

    def to_dict(self) -> dict:
        """Convert configuration to a plain dictionary."""
        return self.model_dump(mode="json")
