"""Core data classes for the flat, globally indexed structure representation.

A structure is stored as flat arrays: every per-atom, per-group and
per-chain array is indexed globally, and the hierarchy is recovered from
``chains_per_model`` and ``groups_per_chain`` plus the atom count of each
group template. Group templates are deduplicated value objects referenced
by integer index from ``group_type_indices``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple

import numpy as np

from mmtfcodec.exceptions import ContractViolationError


def _frozen_array(values: Any, dtype: Any) -> np.ndarray:
    arr = np.array(values, dtype=dtype)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True)
class Group:
    """A deduplicated residue template.

    Equality and hashing are structural, so identical residues (e.g.
    thousands of waters) collapse to a single template.

    Attributes:
        group_name: Component name (e.g. 'ALA', 'HOH')
        chem_comp_type: Chemical component type (e.g. 'L-PEPTIDE LINKING')
        single_letter_code: One-letter code ('?' when not applicable)
        atom_names: Atom names in atom order
        element_names: Element symbols in atom order
        formal_charges: Formal charges in atom order
        bond_atom_list: Flat pairs of group-local atom indices
        bond_order_list: Bond orders, one per pair
    """
    group_name: str
    chem_comp_type: str = ""
    single_letter_code: str = "?"
    atom_names: Tuple[str, ...] = ()
    element_names: Tuple[str, ...] = ()
    formal_charges: Tuple[int, ...] = ()
    bond_atom_list: Tuple[int, ...] = ()
    bond_order_list: Tuple[int, ...] = ()

    @property
    def num_atoms(self) -> int:
        """Number of atoms in the template."""
        return len(self.atom_names)

    @property
    def num_bonds(self) -> int:
        """Number of intra-group bonds."""
        return len(self.bond_order_list)

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation of the template."""
        return {
            "groupName": self.group_name,
            "chemCompType": self.chem_comp_type,
            "singleLetterCode": self.single_letter_code,
            "atomNameList": list(self.atom_names),
            "elementList": list(self.element_names),
            "formalChargeList": list(self.formal_charges),
            "bondAtomList": list(self.bond_atom_list),
            "bondOrderList": list(self.bond_order_list),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        """Build a template from its wire representation."""
        return cls(
            group_name=data.get("groupName", ""),
            chem_comp_type=data.get("chemCompType", ""),
            single_letter_code=data.get("singleLetterCode", "?"),
            atom_names=tuple(data.get("atomNameList", ())),
            element_names=tuple(data.get("elementList", ())),
            formal_charges=tuple(int(c) for c in data.get("formalChargeList", ())),
            bond_atom_list=tuple(int(i) for i in data.get("bondAtomList", ())),
            bond_order_list=tuple(int(o) for o in data.get("bondOrderList", ())),
        )


@dataclass(frozen=True)
class Entity:
    """A distinct molecular entity realized by one or more chains."""
    chain_index_list: Tuple[int, ...]
    sequence: str = ""
    description: str = ""
    type: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chainIndexList": list(self.chain_index_list),
            "sequence": self.sequence,
            "description": self.description,
            "type": self.type,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Entity":
        return cls(
            chain_index_list=tuple(int(i) for i in data.get("chainIndexList", ())),
            sequence=data.get("sequence", ""),
            description=data.get("description", ""),
            type=data.get("type", ""),
        )


@dataclass(frozen=True)
class Transform:
    """A 4x4 transformation (row-major, 16 values) applied to a set of chains."""
    chain_index_list: Tuple[int, ...]
    matrix: Tuple[float, ...]

    def __post_init__(self):
        if len(self.matrix) != 16:
            raise ContractViolationError(
                f"Transformation matrix must have 16 elements, got {len(self.matrix)}"
            )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chainIndexList": list(self.chain_index_list),
            "matrix": list(self.matrix),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transform":
        return cls(
            chain_index_list=tuple(int(i) for i in data.get("chainIndexList", ())),
            matrix=tuple(float(v) for v in data.get("matrix", ())),
        )


@dataclass(frozen=True)
class BioAssembly:
    """A named biological assembly built from symmetry transformations."""
    name: str
    transform_list: Tuple[Transform, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "transformList": [t.to_dict() for t in self.transform_list],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BioAssembly":
        return cls(
            name=data.get("name", ""),
            transform_list=tuple(
                Transform.from_dict(t) for t in data.get("transformList", ())
            ),
        )


@dataclass(frozen=True)
class GroupSite:
    """Position of one group occurrence within the model/chain hierarchy."""
    model_index: int
    chain_index: int
    group_index: int
    group_type: int
    group: Group
    atom_offset: int

    @property
    def atom_indices(self) -> range:
        """Global indices of this occurrence's atoms."""
        return range(self.atom_offset, self.atom_offset + self.group.num_atoms)


@dataclass(frozen=True, eq=False)
class StructureData:
    """Immutable, flat representation of a macromolecular structure.

    Instances are produced by :meth:`AdapterToStructureData.finalize_structure`
    (or the decoder, which goes through the same builder). All numpy arrays
    are read-only.

    Attributes:
        structure_id: Structure identifier (e.g. PDB id)
        x_coords, y_coords, z_coords: Atom coordinates (float32)
        b_factors, occupancies: Per-atom B-factor and occupancy (float32)
        atom_ids: Atom serial numbers
        alt_loc_ids: Alternate location codes ('' for none)
        group_ids: Residue numbers, one per group occurrence
        ins_codes: Insertion codes ('' for none)
        group_sequence_indices: Index into the entity sequence (-1 if none)
        sec_struct_list: DSSP secondary structure codes
        group_type_indices: Template index for every group occurrence
        group_list: Deduplicated group templates
        chain_ids, chain_names: Internal and public chain identifiers
        groups_per_chain: Number of groups in every chain
        chains_per_model: Number of chains in every model
        inter_group_bond_indices: Flat pairs of global atom indices
        inter_group_bond_orders: Bond order per inter-group bond
        num_bonds: Declared total bond count (intra- and inter-group)
    """
    structure_id: Optional[str]
    x_coords: np.ndarray
    y_coords: np.ndarray
    z_coords: np.ndarray
    b_factors: np.ndarray
    occupancies: np.ndarray
    atom_ids: np.ndarray
    alt_loc_ids: Tuple[str, ...]
    group_ids: np.ndarray
    ins_codes: Tuple[str, ...]
    group_sequence_indices: np.ndarray
    sec_struct_list: np.ndarray
    group_type_indices: np.ndarray
    group_list: Tuple[Group, ...]
    chain_ids: Tuple[str, ...]
    chain_names: Tuple[str, ...]
    groups_per_chain: np.ndarray
    chains_per_model: np.ndarray
    inter_group_bond_indices: np.ndarray
    inter_group_bond_orders: np.ndarray
    num_bonds: int = 0

    # Metadata
    mmtf_version: str = ""
    mmtf_producer: str = ""
    title: Optional[str] = None
    deposition_date: Optional[str] = None
    release_date: Optional[str] = None
    experimental_methods: Tuple[str, ...] = ()
    resolution: Optional[float] = None
    r_free: Optional[float] = None
    r_work: Optional[float] = None

    # Crystallographic information
    space_group: Optional[str] = None
    unit_cell: Optional[Tuple[float, ...]] = None
    ncs_operator_list: Tuple[Tuple[float, ...], ...] = ()

    entity_list: Tuple[Entity, ...] = field(default_factory=tuple)
    bioassembly_list: Tuple[BioAssembly, ...] = field(default_factory=tuple)

    def __post_init__(self):
        for name in ("x_coords", "y_coords", "z_coords", "b_factors", "occupancies"):
            object.__setattr__(self, name, _frozen_array(getattr(self, name), np.float32))
        for name in (
            "atom_ids",
            "group_ids",
            "group_sequence_indices",
            "sec_struct_list",
            "group_type_indices",
            "groups_per_chain",
            "chains_per_model",
            "inter_group_bond_indices",
            "inter_group_bond_orders",
        ):
            object.__setattr__(self, name, _frozen_array(getattr(self, name), np.int32))
        for name in ("alt_loc_ids", "ins_codes", "chain_ids", "chain_names",
                     "experimental_methods", "group_list", "entity_list",
                     "bioassembly_list"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

    # -------------------------------------------------------------------------
    # Counts
    # -------------------------------------------------------------------------

    @property
    def num_atoms(self) -> int:
        """Total number of atoms."""
        return len(self.x_coords)

    @property
    def num_groups(self) -> int:
        """Total number of group occurrences."""
        return len(self.group_type_indices)

    @property
    def num_chains(self) -> int:
        """Total number of chains over all models."""
        return len(self.chain_ids)

    @property
    def num_models(self) -> int:
        """Number of models."""
        return len(self.chains_per_model)

    @property
    def num_group_types(self) -> int:
        """Number of distinct group templates."""
        return len(self.group_list)

    @property
    def num_entities(self) -> int:
        return len(self.entity_list)

    @property
    def num_bioassemblies(self) -> int:
        return len(self.bioassembly_list)

    @property
    def num_inter_group_bonds(self) -> int:
        return len(self.inter_group_bond_orders)

    # -------------------------------------------------------------------------
    # Group templates
    # -------------------------------------------------------------------------

    def get_group(self, group_type: int) -> Group:
        """Get a group template by template index."""
        return self.group_list[group_type]

    def get_group_name(self, group_type: int) -> str:
        return self.group_list[group_type].group_name

    def get_num_atoms_in_group(self, group_type: int) -> int:
        return self.group_list[group_type].num_atoms

    def get_group_atom_names(self, group_type: int) -> Tuple[str, ...]:
        return self.group_list[group_type].atom_names

    def get_group_element_names(self, group_type: int) -> Tuple[str, ...]:
        return self.group_list[group_type].element_names

    def get_group_atom_charges(self, group_type: int) -> Tuple[int, ...]:
        return self.group_list[group_type].formal_charges

    def get_group_bond_indices(self, group_type: int) -> Tuple[int, ...]:
        return self.group_list[group_type].bond_atom_list

    def get_group_bond_orders(self, group_type: int) -> Tuple[int, ...]:
        return self.group_list[group_type].bond_order_list

    def get_group_single_letter_code(self, group_type: int) -> str:
        return self.group_list[group_type].single_letter_code

    def get_group_chem_comp_type(self, group_type: int) -> str:
        return self.group_list[group_type].chem_comp_type

    # -------------------------------------------------------------------------
    # Entities and bioassemblies
    # -------------------------------------------------------------------------

    def get_entity_chain_index_list(self, entity_index: int) -> Tuple[int, ...]:
        return self.entity_list[entity_index].chain_index_list

    def get_entity_sequence(self, entity_index: int) -> str:
        return self.entity_list[entity_index].sequence

    def get_entity_description(self, entity_index: int) -> str:
        return self.entity_list[entity_index].description

    def get_entity_type(self, entity_index: int) -> str:
        return self.entity_list[entity_index].type

    def get_bioassembly_name(self, bioassembly_index: int) -> str:
        return self.bioassembly_list[bioassembly_index].name

    def get_num_trans_in_bioassembly(self, bioassembly_index: int) -> int:
        return len(self.bioassembly_list[bioassembly_index].transform_list)

    def get_chain_index_list_for_transform(
        self, bioassembly_index: int, transform_index: int
    ) -> Tuple[int, ...]:
        assembly = self.bioassembly_list[bioassembly_index]
        return assembly.transform_list[transform_index].chain_index_list

    def get_matrix_for_transform(
        self, bioassembly_index: int, transform_index: int
    ) -> Tuple[float, ...]:
        assembly = self.bioassembly_list[bioassembly_index]
        return assembly.transform_list[transform_index].matrix

    # -------------------------------------------------------------------------
    # Traversal
    # -------------------------------------------------------------------------

    @property
    def coords(self) -> np.ndarray:
        """Atom coordinates as an Nx3 float32 array."""
        return np.stack([self.x_coords, self.y_coords, self.z_coords], axis=-1)

    def group_atom_offsets(self) -> np.ndarray:
        """Global index of the first atom of every group occurrence."""
        if self.num_groups == 0:
            return np.zeros(0, dtype=np.int64)
        template_sizes = np.array([g.num_atoms for g in self.group_list], dtype=np.int64)
        sizes = template_sizes[self.group_type_indices]
        return np.concatenate(([0], np.cumsum(sizes)[:-1])).astype(np.int64)

    def iter_groups(self) -> Iterator[GroupSite]:
        """Iterate over group occurrences in model, chain, group order."""
        chain_index = 0
        group_index = 0
        atom_offset = 0
        for model_index, num_chains in enumerate(self.chains_per_model.tolist()):
            for _ in range(num_chains):
                for _ in range(int(self.groups_per_chain[chain_index])):
                    group_type = int(self.group_type_indices[group_index])
                    group = self.group_list[group_type]
                    yield GroupSite(
                        model_index=model_index,
                        chain_index=chain_index,
                        group_index=group_index,
                        group_type=group_type,
                        group=group,
                        atom_offset=atom_offset,
                    )
                    atom_offset += group.num_atoms
                    group_index += 1
                chain_index += 1

    def iter_inter_group_bonds(self) -> Iterator[Tuple[int, int, int]]:
        """Iterate over ``(first atom, second atom, order)`` inter-group bonds."""
        indices = self.inter_group_bond_indices.tolist()
        for i, order in enumerate(self.inter_group_bond_orders.tolist()):
            yield indices[2 * i], indices[2 * i + 1], order

    # -------------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------------

    def validate(self) -> None:
        """Check every structural invariant.

        Raises:
            ContractViolationError: If any array length, count or index is
                inconsistent
        """
        num_atoms = self.num_atoms
        _check_lengths("atom", num_atoms, {
            "y_coords": self.y_coords,
            "z_coords": self.z_coords,
            "b_factors": self.b_factors,
            "occupancies": self.occupancies,
            "atom_ids": self.atom_ids,
            "alt_loc_ids": self.alt_loc_ids,
        })
        _check_lengths("group", self.num_groups, {
            "group_ids": self.group_ids,
            "ins_codes": self.ins_codes,
            "group_sequence_indices": self.group_sequence_indices,
            "sec_struct_list": self.sec_struct_list,
        })
        _check_lengths("chain", self.num_chains, {
            "chain_names": self.chain_names,
            "groups_per_chain": self.groups_per_chain,
        })

        if int(self.chains_per_model.sum()) != self.num_chains:
            raise ContractViolationError(
                f"chains_per_model sums to {int(self.chains_per_model.sum())}, "
                f"structure has {self.num_chains} chains"
            )
        if int(self.groups_per_chain.sum()) != self.num_groups:
            raise ContractViolationError(
                f"groups_per_chain sums to {int(self.groups_per_chain.sum())}, "
                f"structure has {self.num_groups} groups"
            )
        if self.num_groups:
            bad = (self.group_type_indices < 0) | (self.group_type_indices >= self.num_group_types)
            if bad.any():
                index = int(np.flatnonzero(bad)[0])
                raise ContractViolationError(
                    f"Group {index} references template "
                    f"{int(self.group_type_indices[index])}, only "
                    f"{self.num_group_types} templates exist"
                )
        atoms_in_groups = sum(
            self.group_list[t].num_atoms for t in self.group_type_indices.tolist()
        )
        if atoms_in_groups != num_atoms:
            raise ContractViolationError(
                f"Group templates account for {atoms_in_groups} atoms, "
                f"structure has {num_atoms}"
            )
        for index, group in enumerate(self.group_list):
            _check_group(index, group)

        if len(self.inter_group_bond_indices) != 2 * self.num_inter_group_bonds:
            raise ContractViolationError(
                f"{len(self.inter_group_bond_indices)} inter-group bond indices for "
                f"{self.num_inter_group_bonds} bond orders"
            )
        if len(self.inter_group_bond_indices):
            bad = (self.inter_group_bond_indices < 0) | (self.inter_group_bond_indices >= num_atoms)
            if bad.any():
                index = int(np.flatnonzero(bad)[0])
                raise ContractViolationError(
                    f"Inter-group bond atom index "
                    f"{int(self.inter_group_bond_indices[index])} out of range "
                    f"for {num_atoms} atoms"
                )
        if self.unit_cell is not None and len(self.unit_cell) != 6:
            raise ContractViolationError(
                f"Unit cell must have 6 values, got {len(self.unit_cell)}"
            )
        for entity in self.entity_list:
            _check_chain_indices("Entity", entity.chain_index_list, self.num_chains)
        for assembly in self.bioassembly_list:
            for transform in assembly.transform_list:
                _check_chain_indices(
                    f"Bioassembly {assembly.name!r}",
                    transform.chain_index_list,
                    self.num_chains,
                )


def _check_lengths(level: str, expected: int, arrays: Dict[str, Sequence[Any]]) -> None:
    for name, values in arrays.items():
        if len(values) != expected:
            raise ContractViolationError(
                f"{name} has {len(values)} entries, expected one per {level} ({expected})"
            )


def _check_group(index: int, group: Group) -> None:
    num_atoms = group.num_atoms
    if len(group.element_names) != num_atoms or len(group.formal_charges) != num_atoms:
        raise ContractViolationError(
            f"Group template {index} ({group.group_name}) has inconsistent atom arrays"
        )
    if len(group.bond_atom_list) != 2 * group.num_bonds:
        raise ContractViolationError(
            f"Group template {index} ({group.group_name}) has "
            f"{len(group.bond_atom_list)} bond indices for {group.num_bonds} bonds"
        )
    for atom_index in group.bond_atom_list:
        if not 0 <= atom_index < num_atoms:
            raise ContractViolationError(
                f"Group template {index} ({group.group_name}) bond references "
                f"atom {atom_index}, template has {num_atoms} atoms"
            )


def _check_chain_indices(owner: str, chain_indices: Sequence[int], num_chains: int) -> None:
    for chain_index in chain_indices:
        if not 0 <= chain_index < num_chains:
            raise ContractViolationError(
                f"{owner} references chain {chain_index}, structure has {num_chains} chains"
            )
