"""Full encoder: structure data to a wire map of encoded fields."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from mmtfcodec.config import EncoderConfig
from mmtfcodec.constants import fields
from mmtfcodec.data.structure import StructureData
from mmtfcodec.exceptions import CapacityError

logger = logging.getLogger(__name__)

# Array fields written even when empty
_REQUIRED_ARRAYS = frozenset(fields.REQUIRED_FIELDS) & frozenset(fields.ARRAY_FIELDS)


class StructureEncoder:
    """Encodes a :class:`StructureData` into an MMTF wire map.

    Every array field is encoded with the codec strategy configured for it
    in :class:`EncoderConfig`; scalars and object lists are stored as plain
    values. Optional fields that are ``None`` or empty are omitted.

    ``mmtfVersion`` is always the configured format version; the version
    recorded on the source structure is not carried over.

    Example:
        >>> encoder = StructureEncoder()
        >>> wire = encoder.encode(data)
        >>> wire["numAtoms"] == data.num_atoms
        True
    """

    def __init__(self, config: Optional[EncoderConfig] = None):
        self.config = config or EncoderConfig()

    def encode(self, data: StructureData) -> Dict[str, Any]:
        """Encode ``data``.

        Args:
            data: Finalized structure (not modified)

        Returns:
            Map of wire field name to encoded bytes or plain value

        Raises:
            CapacityError: If an array value does not fit its codec; the
                error carries the wire field name
        """
        wire: Dict[str, Any] = {
            "mmtfVersion": self.config.mmtf_version,
            "mmtfProducer": data.mmtf_producer or self.config.producer,
            "numBonds": int(data.num_bonds),
            "numAtoms": data.num_atoms,
            "numGroups": data.num_groups,
            "numChains": data.num_chains,
            "numModels": data.num_models,
            "groupList": [group.to_dict() for group in data.group_list],
        }
        self._add_metadata(wire, data)

        arrays = {
            "xCoordList": data.x_coords,
            "yCoordList": data.y_coords,
            "zCoordList": data.z_coords,
            "bFactorList": data.b_factors,
            "occupancyList": data.occupancies,
            "atomIdList": data.atom_ids,
            "altLocList": data.alt_loc_ids,
            "groupIdList": data.group_ids,
            "groupTypeList": data.group_type_indices,
            "sequenceIndexList": data.group_sequence_indices,
            "secStructList": data.sec_struct_list,
            "insCodeList": data.ins_codes,
            "chainIdList": data.chain_ids,
            "chainNameList": data.chain_names,
            "groupsPerChain": data.groups_per_chain,
            "chainsPerModel": data.chains_per_model,
            "bondAtomList": data.inter_group_bond_indices,
            "bondOrderList": data.inter_group_bond_orders,
        }
        for name, values in arrays.items():
            if len(values) == 0 and name not in _REQUIRED_ARRAYS:
                continue
            wire[name] = self.encode_field(name, values)

        logger.debug(
            f"Encoded {data.structure_id}: {len(wire)} fields, "
            f"{data.num_atoms} atoms, {data.num_group_types} group types"
        )
        return wire

    def encode_field(self, name: str, values: Any) -> bytes:
        """Encode one array field with its configured strategy."""
        strategy = self.config.strategy(name)
        try:
            return strategy.encode(values)
        except CapacityError as e:
            raise e.with_field(name) from e

    @staticmethod
    def _add_metadata(wire: Dict[str, Any], data: StructureData) -> None:
        optional = {
            "structureId": data.structure_id,
            "title": data.title,
            "depositionDate": data.deposition_date,
            "releaseDate": data.release_date,
            "resolution": data.resolution,
            "rFree": data.r_free,
            "rWork": data.r_work,
            "spaceGroup": data.space_group,
            "unitCell": list(data.unit_cell) if data.unit_cell is not None else None,
            "experimentalMethods": list(data.experimental_methods),
            "ncsOperatorList": [list(op) for op in data.ncs_operator_list],
            "entityList": [entity.to_dict() for entity in data.entity_list],
            "bioAssemblyList": [a.to_dict() for a in data.bioassembly_list],
        }
        for name, value in optional.items():
            if value is None or (isinstance(value, list) and not value):
                continue
            wire[name] = value


def encode_structure(
    data: StructureData, config: Optional[EncoderConfig] = None
) -> Dict[str, Any]:
    """Encode ``data`` into a wire map with the given (or default) configuration."""
    return StructureEncoder(config).encode(data)
