"""Reduced representation: keep only backbone trace atoms of polymer groups.

Amino acids keep their C-alpha atom and nucleotides their phosphorus (or
C4' when the phosphorus is absent). Ligands, water and ions pass through
unchanged, as does every model, chain, group, entity, bioassembly and
header record. Bonds survive only when both of their atoms do.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np

from mmtfcodec.config import MissingTracePolicy, ReducedConfig
from mmtfcodec.constants.residues import (
    NUCLEOTIDE_LINKING_TYPES,
    PEPTIDE_LINKING_TYPES,
    STANDARD_AMINO_ACIDS,
    STANDARD_NUCLEOTIDES,
)
from mmtfcodec.data.adapter import AdapterToStructureData
from mmtfcodec.data.structure import Group, GroupSite, StructureData
from mmtfcodec.data.transfer import add_metadata
from mmtfcodec.exceptions import ReductionError

logger = logging.getLogger(__name__)


class GroupKind(str, Enum):
    """Polymer classification of a group template."""

    AMINO_ACID = "amino_acid"
    NUCLEOTIDE = "nucleotide"
    OTHER = "other"


def classify_group(group: Group) -> GroupKind:
    """Classify a template by chemical component type, falling back to its name.

    The name is only consulted when the chemical component type is empty.
    """
    comp_type = group.chem_comp_type.upper()
    if comp_type:
        if any(t in comp_type for t in PEPTIDE_LINKING_TYPES):
            return GroupKind.AMINO_ACID
        if any(t in comp_type for t in NUCLEOTIDE_LINKING_TYPES):
            return GroupKind.NUCLEOTIDE
        return GroupKind.OTHER

    name = group.group_name.upper()
    if name in STANDARD_AMINO_ACIDS:
        return GroupKind.AMINO_ACID
    if name in STANDARD_NUCLEOTIDES:
        return GroupKind.NUCLEOTIDE
    return GroupKind.OTHER


def _matching_atoms(group: Group, atom: Tuple[str, str]) -> List[int]:
    name, element = atom
    return [
        i for i, (atom_name, atom_element) in enumerate(zip(group.atom_names, group.element_names))
        if atom_name == name and atom_element.upper() == element.upper()
    ]


def reduce_group(group: Group, kept: List[int]) -> Group:
    """Subset a template to the atoms at ``kept`` (group-local indices).

    Bonds whose atoms are both kept are renumbered; the rest are dropped.
    """
    new_index = {old: new for new, old in enumerate(kept)}
    bond_atoms: List[int] = []
    bond_orders: List[int] = []
    for i, order in enumerate(group.bond_order_list):
        first = new_index.get(group.bond_atom_list[2 * i])
        second = new_index.get(group.bond_atom_list[2 * i + 1])
        if first is not None and second is not None:
            bond_atoms.extend((first, second))
            bond_orders.append(order)
    return Group(
        group_name=group.group_name,
        chem_comp_type=group.chem_comp_type,
        single_letter_code=group.single_letter_code,
        atom_names=tuple(group.atom_names[i] for i in kept),
        element_names=tuple(group.element_names[i] for i in kept),
        formal_charges=tuple(group.formal_charges[i] for i in kept),
        bond_atom_list=tuple(bond_atoms),
        bond_order_list=tuple(bond_orders),
    )


class ReducedEncoder:
    """Produces the reduced (trace-atom-only) version of a structure.

    Example:
        >>> reduced = ReducedEncoder().reduce(data)
        >>> reduced.num_groups == data.num_groups
        True
    """

    def __init__(self, config: Optional[ReducedConfig] = None):
        self.config = config or ReducedConfig()

    def trace_atoms(self, group: Group) -> List[int]:
        """Group-local indices of the atoms kept for ``group``.

        Raises:
            ReductionError: If a polymer group has no trace atom and the
                policy is ``"error"``
        """
        kind = classify_group(group)
        if kind is GroupKind.OTHER:
            return list(range(group.num_atoms))

        if kind is GroupKind.AMINO_ACID:
            kept = _matching_atoms(group, self.config.protein_trace_atom)
        else:
            kept = _matching_atoms(group, self.config.nucleotide_trace_atom)
            if not kept:
                kept = _matching_atoms(group, self.config.nucleotide_fallback_atom)
        if kept:
            return kept

        message = f"{kind.value} group {group.group_name} has no trace atom"
        if self.config.missing_trace_policy is MissingTracePolicy.ERROR:
            raise ReductionError(message)
        logger.warning(f"{message}; keeping all {group.num_atoms} atoms")
        return list(range(group.num_atoms))

    def reduce(self, data: StructureData) -> StructureData:
        """Build the reduced structure.

        Args:
            data: Finalized source structure (not modified)

        Returns:
            A new finalized structure with the same hierarchy and metadata
        """
        kept_per_type: Dict[int, List[int]] = {}
        reduced_types: Dict[int, Group] = {}
        for group_type, group in enumerate(data.group_list):
            kept = self.trace_atoms(group)
            kept_per_type[group_type] = kept
            reduced_types[group_type] = reduce_group(group, kept)

        # Map every kept source atom to its index in the reduced structure
        new_index = np.full(data.num_atoms, -1, dtype=np.int64)
        kept_atoms: List[int] = []
        for site in data.iter_groups():
            for local in kept_per_type[site.group_type]:
                new_index[site.atom_offset + local] = len(kept_atoms)
                kept_atoms.append(site.atom_offset + local)

        inter_bonds = [
            (int(new_index[first]), int(new_index[second]), order)
            for first, second, order in data.iter_inter_group_bonds()
            if new_index[first] >= 0 and new_index[second] >= 0
        ]
        num_bonds = len(inter_bonds) + sum(
            reduced_types[t].num_bonds for t in data.group_type_indices.tolist()
        )

        adapter = AdapterToStructureData()
        adapter.init_structure(
            num_bonds,
            len(kept_atoms),
            data.num_groups,
            data.num_chains,
            data.num_models,
            data.structure_id,
        )
        add_metadata(data, adapter)

        sites = iter(data.iter_groups())
        chain_index = 0
        for model_index, num_chains in enumerate(data.chains_per_model.tolist()):
            adapter.set_model_info(model_index, num_chains)
            for _ in range(num_chains):
                num_groups = int(data.groups_per_chain[chain_index])
                adapter.set_chain_info(
                    data.chain_ids[chain_index], data.chain_names[chain_index], num_groups
                )
                for _ in range(num_groups):
                    self._add_group(adapter, data, next(sites), reduced_types, kept_per_type)
                chain_index += 1

        for first, second, order in inter_bonds:
            adapter.set_inter_group_bond(first, second, order)

        reduced = adapter.finalize_structure()
        logger.debug(
            f"Reduced {data.structure_id}: {data.num_atoms} -> {reduced.num_atoms} atoms, "
            f"{data.num_bonds} -> {reduced.num_bonds} bonds"
        )
        return reduced

    @staticmethod
    def _add_group(
        adapter: AdapterToStructureData,
        data: StructureData,
        site: GroupSite,
        reduced_types: Dict[int, Group],
        kept_per_type: Dict[int, List[int]],
    ) -> None:
        group = reduced_types[site.group_type]
        index = site.group_index
        adapter.set_group_info(
            group.group_name,
            int(data.group_ids[index]),
            data.ins_codes[index],
            group.chem_comp_type,
            group.num_atoms,
            group.num_bonds,
            group.single_letter_code,
            int(data.group_sequence_indices[index]),
            int(data.sec_struct_list[index]),
        )
        for i, local in enumerate(kept_per_type[site.group_type]):
            atom = site.atom_offset + local
            adapter.set_atom_info(
                group.atom_names[i],
                int(data.atom_ids[atom]),
                data.alt_loc_ids[atom],
                float(data.x_coords[atom]),
                float(data.y_coords[atom]),
                float(data.z_coords[atom]),
                float(data.occupancies[atom]),
                float(data.b_factors[atom]),
                group.element_names[i],
                group.formal_charges[i],
            )
        for i, order in enumerate(group.bond_order_list):
            adapter.set_group_bond(
                group.bond_atom_list[2 * i], group.bond_atom_list[2 * i + 1], order
            )


def get_reduced(data: StructureData, config: Optional[ReducedConfig] = None) -> StructureData:
    """Reduced version of ``data`` with the given (or default) configuration."""
    return ReducedEncoder(config).reduce(data)
