"""Decoder: wire map back to structure data.

Each array field is decoded from its self-describing header, the decoded
arrays are checked against the declared counts, and the result is replayed
through :class:`AdapterToStructureData` so a decoded structure satisfies
the same invariants as one built directly.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

import numpy as np

from mmtfcodec.codec.strategies import DecodedArray, decode_array
from mmtfcodec.constants import fields
from mmtfcodec.data.adapter import AdapterToStructureData
from mmtfcodec.data.structure import (
    BioAssembly,
    Entity,
    Group,
    StructureData,
)
from mmtfcodec.data.transfer import pass_data_to_adapter
from mmtfcodec.exceptions import (
    ContractViolationError,
    UnknownCodecError,
    WireFormatError,
)

logger = logging.getLogger(__name__)


def check_version(version: Any) -> None:
    """Reject versions whose major number is newer than the supported one."""
    if not isinstance(version, str) or not version:
        raise WireFormatError(f"Invalid mmtfVersion: {version!r}")
    major = version.split(".", 1)[0]
    if not major.isdigit():
        raise WireFormatError(f"Invalid mmtfVersion: {version!r}")
    if int(major) > fields.MAX_SUPPORTED_MAJOR_VERSION:
        raise WireFormatError(
            f"Unsupported mmtfVersion {version}; at most major version "
            f"{fields.MAX_SUPPORTED_MAJOR_VERSION} can be read"
        )


def assert_consistency(wire: Mapping[str, Any], decoded: Mapping[str, DecodedArray]) -> None:
    """Check decoded array lengths against the declared counts.

    Raises:
        WireFormatError: On the first array whose length disagrees
    """
    expected = {}
    for names, count_field in (
        (fields.FIELDS_PER_ATOM, "numAtoms"),
        (fields.FIELDS_PER_GROUP, "numGroups"),
        (fields.FIELDS_PER_CHAIN, "numChains"),
        (fields.FIELDS_PER_MODEL, "numModels"),
    ):
        for name in names:
            expected[name] = (count_field, int(wire[count_field]))

    for name, values in decoded.items():
        if name not in expected:
            continue
        count_field, count = expected[name]
        if len(values) != count:
            raise WireFormatError(
                f"{name} has {len(values)} entries, {count_field} is {count}"
            )

    bond_atoms = decoded.get("bondAtomList")
    bond_orders = decoded.get("bondOrderList")
    if bond_atoms is not None and bond_orders is None:
        raise WireFormatError("bondAtomList present without bondOrderList")
    if bond_orders is not None:
        num_atoms = 0 if bond_atoms is None else len(bond_atoms)
        if num_atoms != 2 * len(bond_orders):
            raise WireFormatError(
                f"bondAtomList has {num_atoms} entries for "
                f"{len(bond_orders)} bond orders"
            )


class StructureDecoder:
    """Decodes MMTF wire maps.

    Example:
        >>> data = StructureDecoder().decode(wire)
        >>> data.num_atoms == wire["numAtoms"]
        True
    """

    def decode(self, wire: Mapping[str, Any]) -> StructureData:
        """Decode ``wire`` into a finalized structure.

        Raises:
            WireFormatError: If the version is unsupported, a required field
                is missing or the arrays are inconsistent
            UnknownCodecError: If a field names an unknown codec tag
        """
        missing = [name for name in fields.REQUIRED_FIELDS if name not in wire]
        if "mmtfVersion" in wire:
            check_version(wire["mmtfVersion"])
        if missing:
            raise WireFormatError(f"Missing required fields: {', '.join(missing)}")

        decoded = self.decode_arrays(wire)
        assert_consistency(wire, decoded)
        try:
            view = self._build_view(wire, decoded)
            view.validate()
            data = pass_data_to_adapter(view, AdapterToStructureData())
        except ContractViolationError as e:
            raise WireFormatError(f"Inconsistent structure data: {e}") from e

        logger.debug(
            f"Decoded {data.structure_id}: {data.num_atoms} atoms, "
            f"{data.num_groups} groups, {data.num_models} models"
        )
        return data

    @staticmethod
    def decode_arrays(wire: Mapping[str, Any]) -> Dict[str, DecodedArray]:
        """Decode every array field present in ``wire``."""
        decoded: Dict[str, DecodedArray] = {}
        for name in fields.ARRAY_FIELDS:
            if name not in wire:
                continue
            buffer = wire[name]
            if not isinstance(buffer, (bytes, bytearray, memoryview)):
                raise WireFormatError(f"{name} is not an encoded byte array")
            try:
                decoded[name] = decode_array(bytes(buffer))
            except WireFormatError as e:
                raise WireFormatError(f"{name}: {e}") from e
            except UnknownCodecError as e:
                raise UnknownCodecError(f"{name}: {e}") from e
        return decoded

    @staticmethod
    def _build_view(wire: Mapping[str, Any], decoded: Dict[str, DecodedArray]) -> StructureData:
        num_atoms = int(wire["numAtoms"])
        num_groups = int(wire["numGroups"])

        def optional(name: str, default: Any) -> Any:
            return decoded[name] if name in decoded else default

        chain_ids: List[str] = list(decoded["chainIdList"])
        unit_cell = wire.get("unitCell")
        return StructureData(
            structure_id=wire.get("structureId"),
            x_coords=decoded["xCoordList"],
            y_coords=decoded["yCoordList"],
            z_coords=decoded["zCoordList"],
            b_factors=optional("bFactorList", np.zeros(num_atoms, dtype=np.float32)),
            occupancies=optional("occupancyList", np.ones(num_atoms, dtype=np.float32)),
            atom_ids=optional("atomIdList", np.arange(1, num_atoms + 1, dtype=np.int32)),
            alt_loc_ids=tuple(optional("altLocList", [""] * num_atoms)),
            group_ids=decoded["groupIdList"],
            ins_codes=tuple(optional("insCodeList", [""] * num_groups)),
            group_sequence_indices=optional(
                "sequenceIndexList", np.full(num_groups, -1, dtype=np.int32)
            ),
            sec_struct_list=optional("secStructList", np.full(num_groups, -1, dtype=np.int32)),
            group_type_indices=decoded["groupTypeList"],
            group_list=tuple(Group.from_dict(g) for g in wire["groupList"]),
            chain_ids=tuple(chain_ids),
            chain_names=tuple(optional("chainNameList", chain_ids)),
            groups_per_chain=decoded["groupsPerChain"],
            chains_per_model=decoded["chainsPerModel"],
            inter_group_bond_indices=optional("bondAtomList", np.zeros(0, dtype=np.int32)),
            inter_group_bond_orders=optional("bondOrderList", np.zeros(0, dtype=np.int32)),
            num_bonds=int(wire["numBonds"]),
            mmtf_version=wire["mmtfVersion"],
            mmtf_producer=wire["mmtfProducer"],
            title=wire.get("title"),
            deposition_date=wire.get("depositionDate"),
            release_date=wire.get("releaseDate"),
            experimental_methods=tuple(wire.get("experimentalMethods") or ()),
            resolution=wire.get("resolution"),
            r_free=wire.get("rFree"),
            r_work=wire.get("rWork"),
            space_group=wire.get("spaceGroup"),
            unit_cell=tuple(unit_cell) if unit_cell is not None else None,
            ncs_operator_list=tuple(
                tuple(op) for op in wire.get("ncsOperatorList") or ()
            ),
            entity_list=tuple(Entity.from_dict(e) for e in wire.get("entityList") or ()),
            bioassembly_list=tuple(
                BioAssembly.from_dict(a) for a in wire.get("bioAssemblyList") or ()
            ),
        )


def decode_structure(wire: Mapping[str, Any]) -> StructureData:
    """Decode a wire map into a finalized structure."""
    return StructureDecoder().decode(wire)
