"""Producer side of the structure data contract.

Structures are built incrementally through :class:`StructureAdapterInterface`
in declaration order: one model, its chains, each chain's groups, each
group's atoms and intra-group bonds. :class:`AdapterToStructureData` is the
concrete builder; it preallocates arrays from the declared totals, checks
every setter against them, and freezes into an immutable
:class:`~mmtfcodec.data.structure.StructureData` on finalization.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from mmtfcodec.data.structure import (
    BioAssembly,
    Entity,
    Group,
    StructureData,
    Transform,
)
from mmtfcodec.exceptions import ContractViolationError

logger = logging.getLogger(__name__)

# Valid bond orders: single, double, triple, quadruple
MIN_BOND_ORDER = 1
MAX_BOND_ORDER = 4


class StructureAdapterInterface(ABC):
    """Abstract producer of structure data."""

    @abstractmethod
    def init_structure(
        self,
        total_num_bonds: int,
        total_num_atoms: int,
        total_num_groups: int,
        total_num_chains: int,
        total_num_models: int,
        structure_id: Optional[str] = None,
    ) -> None:
        """Declare totals. Must be called before any other setter."""
        pass

    @abstractmethod
    def set_model_info(self, model_id: int, chain_count: int) -> None:
        """Start a model containing ``chain_count`` chains."""
        pass

    @abstractmethod
    def set_chain_info(self, chain_id: str, chain_name: str, group_count: int) -> None:
        """Start a chain containing ``group_count`` groups."""
        pass

    @abstractmethod
    def set_group_info(
        self,
        group_name: str,
        group_number: int,
        insertion_code: str,
        chem_comp_type: str,
        atom_count: int,
        bond_count: int,
        single_letter_code: str,
        sequence_index: int,
        sec_struct_type: int,
    ) -> None:
        """Start a group occurrence."""
        pass

    @abstractmethod
    def set_atom_info(
        self,
        atom_name: str,
        serial_number: int,
        alternative_location_id: str,
        x: float,
        y: float,
        z: float,
        occupancy: float,
        temperature_factor: float,
        element: str,
        charge: int,
    ) -> None:
        """Add an atom to the current group."""
        pass

    @abstractmethod
    def set_group_bond(self, first_atom_index: int, second_atom_index: int, bond_order: int) -> None:
        """Add a bond between two atoms of the current group (group-local indices)."""
        pass

    @abstractmethod
    def set_inter_group_bond(self, first_atom_index: int, second_atom_index: int, bond_order: int) -> None:
        """Add a bond between two atoms given by global index."""
        pass

    @abstractmethod
    def set_entity_info(
        self,
        chain_indices: Sequence[int],
        sequence: str,
        description: str,
        entity_type: str,
    ) -> None:
        """Add an entity."""
        pass

    @abstractmethod
    def set_bio_assembly_info(self, bio_assembly_index: int, name: str) -> None:
        """Start a bioassembly with no transformations yet."""
        pass

    @abstractmethod
    def set_bio_assembly_trans(
        self,
        bio_assembly_index: int,
        chain_indices: Sequence[int],
        transform: Sequence[float],
        name: str,
    ) -> None:
        """Add a transformation to a bioassembly."""
        pass

    @abstractmethod
    def set_xtal_info(
        self,
        space_group: Optional[str],
        unit_cell: Optional[Sequence[float]],
        ncs_operator_list: Optional[Sequence[Sequence[float]]] = None,
    ) -> None:
        """Set crystallographic information."""
        pass

    @abstractmethod
    def set_header_info(
        self,
        r_free: Optional[float],
        r_work: Optional[float],
        resolution: Optional[float],
        title: Optional[str],
        deposition_date: Optional[str],
        release_date: Optional[str],
        experimental_methods: Optional[Sequence[str]],
    ) -> None:
        """Set header metadata."""
        pass

    @abstractmethod
    def set_mmtf_producer(self, producer: str) -> None:
        pass

    @abstractmethod
    def set_mmtf_version(self, version: str) -> None:
        pass

    @abstractmethod
    def finalize_structure(self):
        """Complete the structure. No setter may be called afterwards."""
        pass


@dataclass
class _PendingGroup:
    """A group occurrence whose atoms and bonds are still being added."""
    group_name: str
    chem_comp_type: str
    single_letter_code: str
    atom_count: int
    bond_count: int
    atom_names: List[str] = field(default_factory=list)
    element_names: List[str] = field(default_factory=list)
    formal_charges: List[int] = field(default_factory=list)
    bond_atom_list: List[int] = field(default_factory=list)
    bond_order_list: List[int] = field(default_factory=list)

    def to_group(self) -> Group:
        return Group(
            group_name=self.group_name,
            chem_comp_type=self.chem_comp_type,
            single_letter_code=self.single_letter_code,
            atom_names=tuple(self.atom_names),
            element_names=tuple(self.element_names),
            formal_charges=tuple(self.formal_charges),
            bond_atom_list=tuple(self.bond_atom_list),
            bond_order_list=tuple(self.bond_order_list),
        )


def _optional_float(value: Optional[float]) -> Optional[float]:
    return None if value is None else float(value)


def _check_bond_order(bond_order: int) -> None:
    if not MIN_BOND_ORDER <= bond_order <= MAX_BOND_ORDER:
        raise ContractViolationError(
            f"Bond order {bond_order} outside {MIN_BOND_ORDER}..{MAX_BOND_ORDER}"
        )


def _normalize_code(code: Optional[str]) -> str:
    # Missing alt locs and insertion codes arrive as None, '' or NUL
    if not code or code == "\0":
        return ""
    return code


class AdapterToStructureData(StructureAdapterInterface):
    """Builds a :class:`StructureData` from producer calls.

    Example:
        >>> adapter = AdapterToStructureData()
        >>> adapter.init_structure(0, 1, 1, 1, 1, "1ABC")
        >>> adapter.set_model_info(0, 1)
        >>> adapter.set_chain_info("A", "A", 1)
        >>> adapter.set_group_info("HOH", 1, "", "NON-POLYMER", 1, 0, "?", -1, -1)
        >>> adapter.set_atom_info("O", 1, "", 0.0, 0.0, 0.0, 1.0, 20.0, "O", 0)
        >>> data = adapter.finalize_structure()
        >>> data.num_atoms
        1
    """

    def __init__(self):
        self._initialized = False
        self._result: Optional[StructureData] = None

        self.structure_id: Optional[str] = None
        self.total_num_bonds = 0
        self.total_num_atoms = 0
        self.total_num_groups = 0
        self.total_num_chains = 0
        self.total_num_models = 0

        self.mmtf_version = ""
        self.mmtf_producer = ""
        self.title: Optional[str] = None
        self.deposition_date: Optional[str] = None
        self.release_date: Optional[str] = None
        self.experimental_methods: Tuple[str, ...] = ()
        self.resolution: Optional[float] = None
        self.r_free: Optional[float] = None
        self.r_work: Optional[float] = None
        self.space_group: Optional[str] = None
        self.unit_cell: Optional[Tuple[float, ...]] = None
        self.ncs_operator_list: Tuple[Tuple[float, ...], ...] = ()

        self.entities: List[Entity] = []
        self.bioassemblies: List[Tuple[str, List[Transform]]] = []

    # -------------------------------------------------------------------------
    # State checks
    # -------------------------------------------------------------------------

    @property
    def is_finalized(self) -> bool:
        return self._result is not None

    def _check_open(self, setter: str) -> None:
        if self._result is not None:
            raise ContractViolationError(f"{setter} called after finalize_structure")
        if not self._initialized and setter != "init_structure":
            raise ContractViolationError(f"{setter} called before init_structure")

    def _close_group(self) -> None:
        pending = self._pending_group
        if pending is None:
            return
        if len(pending.atom_names) != pending.atom_count:
            raise ContractViolationError(
                f"Group {self._group_index - 1} ({pending.group_name}) declared "
                f"{pending.atom_count} atoms, got {len(pending.atom_names)}"
            )
        if len(pending.bond_order_list) != pending.bond_count:
            raise ContractViolationError(
                f"Group {self._group_index - 1} ({pending.group_name}) declared "
                f"{pending.bond_count} bonds, got {len(pending.bond_order_list)}"
            )
        self._group_templates.append(pending.to_group())
        self._pending_group = None

    def _add_bond(self) -> None:
        if self._bond_index >= self.total_num_bonds:
            raise ContractViolationError(
                f"More bonds than the declared total of {self.total_num_bonds}"
            )
        self._bond_index += 1

    # -------------------------------------------------------------------------
    # Hierarchy
    # -------------------------------------------------------------------------

    def init_structure(
        self,
        total_num_bonds: int,
        total_num_atoms: int,
        total_num_groups: int,
        total_num_chains: int,
        total_num_models: int,
        structure_id: Optional[str] = None,
    ) -> None:
        self._check_open("init_structure")
        if self._initialized:
            raise ContractViolationError("init_structure called twice")
        totals = (total_num_bonds, total_num_atoms, total_num_groups,
                  total_num_chains, total_num_models)
        if any(t < 0 for t in totals):
            raise ContractViolationError(f"Declared totals must be non-negative: {totals}")

        self._initialized = True
        self.structure_id = structure_id
        self.total_num_bonds = total_num_bonds
        self.total_num_atoms = total_num_atoms
        self.total_num_groups = total_num_groups
        self.total_num_chains = total_num_chains
        self.total_num_models = total_num_models

        self.x_coords = np.zeros(total_num_atoms, dtype=np.float32)
        self.y_coords = np.zeros(total_num_atoms, dtype=np.float32)
        self.z_coords = np.zeros(total_num_atoms, dtype=np.float32)
        self.b_factors = np.zeros(total_num_atoms, dtype=np.float32)
        self.occupancies = np.zeros(total_num_atoms, dtype=np.float32)
        self.atom_ids = np.zeros(total_num_atoms, dtype=np.int32)
        self.alt_loc_ids: List[str] = [""] * total_num_atoms

        self.group_ids = np.zeros(total_num_groups, dtype=np.int32)
        self.group_sequence_indices = np.full(total_num_groups, -1, dtype=np.int32)
        self.sec_struct_list = np.full(total_num_groups, -1, dtype=np.int32)
        self.ins_codes: List[str] = [""] * total_num_groups

        self.chain_ids: List[str] = [""] * total_num_chains
        self.chain_names: List[str] = [""] * total_num_chains
        self.groups_per_chain = np.zeros(total_num_chains, dtype=np.int32)
        self.chains_per_model = np.zeros(total_num_models, dtype=np.int32)

        self.inter_group_bond_indices: List[int] = []
        self.inter_group_bond_orders: List[int] = []

        self._atom_index = 0
        self._group_index = 0
        self._chain_index = 0
        self._model_index = 0
        self._bond_index = 0
        self._group_templates: List[Group] = []
        self._pending_group: Optional[_PendingGroup] = None

    def set_model_info(self, model_id: int, chain_count: int) -> None:
        self._check_open("set_model_info")
        if self._model_index >= self.total_num_models:
            raise ContractViolationError(
                f"More models than the declared total of {self.total_num_models}"
            )
        if chain_count < 0:
            raise ContractViolationError(f"Negative chain count {chain_count}")
        self._close_group()
        self.chains_per_model[self._model_index] = chain_count
        self._model_index += 1

    def set_chain_info(self, chain_id: str, chain_name: str, group_count: int) -> None:
        self._check_open("set_chain_info")
        if self._model_index == 0:
            raise ContractViolationError("set_chain_info called before set_model_info")
        if self._chain_index >= self.total_num_chains:
            raise ContractViolationError(
                f"More chains than the declared total of {self.total_num_chains}"
            )
        if group_count < 0:
            raise ContractViolationError(f"Negative group count {group_count}")
        self._close_group()
        self.chain_ids[self._chain_index] = chain_id
        self.chain_names[self._chain_index] = chain_name
        self.groups_per_chain[self._chain_index] = group_count
        self._chain_index += 1

    def set_group_info(
        self,
        group_name: str,
        group_number: int,
        insertion_code: str,
        chem_comp_type: str,
        atom_count: int,
        bond_count: int,
        single_letter_code: str,
        sequence_index: int,
        sec_struct_type: int,
    ) -> None:
        self._check_open("set_group_info")
        if self._chain_index == 0:
            raise ContractViolationError("set_group_info called before set_chain_info")
        if self._group_index >= self.total_num_groups:
            raise ContractViolationError(
                f"More groups than the declared total of {self.total_num_groups}"
            )
        if atom_count < 0 or bond_count < 0:
            raise ContractViolationError(
                f"Group {group_name} has negative atom or bond count"
            )
        self._close_group()

        index = self._group_index
        self.group_ids[index] = group_number
        self.ins_codes[index] = _normalize_code(insertion_code)
        self.group_sequence_indices[index] = sequence_index
        self.sec_struct_list[index] = sec_struct_type
        self._pending_group = _PendingGroup(
            group_name=group_name,
            chem_comp_type=chem_comp_type or "",
            single_letter_code=single_letter_code or "?",
            atom_count=atom_count,
            bond_count=bond_count,
        )
        self._group_index += 1

    def set_atom_info(
        self,
        atom_name: str,
        serial_number: int,
        alternative_location_id: str,
        x: float,
        y: float,
        z: float,
        occupancy: float,
        temperature_factor: float,
        element: str,
        charge: int,
    ) -> None:
        self._check_open("set_atom_info")
        pending = self._pending_group
        if pending is None:
            raise ContractViolationError("set_atom_info called before set_group_info")
        if len(pending.atom_names) >= pending.atom_count:
            raise ContractViolationError(
                f"Group {pending.group_name} declared {pending.atom_count} atoms, "
                f"got more"
            )
        if self._atom_index >= self.total_num_atoms:
            raise ContractViolationError(
                f"More atoms than the declared total of {self.total_num_atoms}"
            )

        index = self._atom_index
        self.x_coords[index] = x
        self.y_coords[index] = y
        self.z_coords[index] = z
        self.occupancies[index] = occupancy
        self.b_factors[index] = temperature_factor
        self.atom_ids[index] = serial_number
        self.alt_loc_ids[index] = _normalize_code(alternative_location_id)
        pending.atom_names.append(atom_name)
        pending.element_names.append(element)
        pending.formal_charges.append(int(charge))
        self._atom_index += 1

    def set_group_bond(self, first_atom_index: int, second_atom_index: int, bond_order: int) -> None:
        self._check_open("set_group_bond")
        _check_bond_order(bond_order)
        pending = self._pending_group
        if pending is None:
            raise ContractViolationError("set_group_bond called before set_group_info")
        if len(pending.bond_order_list) >= pending.bond_count:
            raise ContractViolationError(
                f"Group {pending.group_name} declared {pending.bond_count} bonds, "
                f"got more"
            )
        for atom_index in (first_atom_index, second_atom_index):
            if not 0 <= atom_index < pending.atom_count:
                raise ContractViolationError(
                    f"Bond atom index {atom_index} out of range for group "
                    f"{pending.group_name} with {pending.atom_count} atoms"
                )
        self._add_bond()
        pending.bond_atom_list.extend((int(first_atom_index), int(second_atom_index)))
        pending.bond_order_list.append(int(bond_order))

    def set_inter_group_bond(self, first_atom_index: int, second_atom_index: int, bond_order: int) -> None:
        self._check_open("set_inter_group_bond")
        _check_bond_order(bond_order)
        for atom_index in (first_atom_index, second_atom_index):
            if not 0 <= atom_index < self.total_num_atoms:
                raise ContractViolationError(
                    f"Inter-group bond atom index {atom_index} out of range "
                    f"for {self.total_num_atoms} atoms"
                )
        self._add_bond()
        self.inter_group_bond_indices.extend((int(first_atom_index), int(second_atom_index)))
        self.inter_group_bond_orders.append(int(bond_order))

    # -------------------------------------------------------------------------
    # Catalogs and metadata
    # -------------------------------------------------------------------------

    def set_entity_info(
        self,
        chain_indices: Sequence[int],
        sequence: str,
        description: str,
        entity_type: str,
    ) -> None:
        self._check_open("set_entity_info")
        self.entities.append(Entity(
            chain_index_list=tuple(int(i) for i in chain_indices),
            sequence=sequence or "",
            description=description or "",
            type=entity_type or "",
        ))

    def set_bio_assembly_info(self, bio_assembly_index: int, name: str) -> None:
        self._check_open("set_bio_assembly_info")
        count = len(self.bioassemblies)
        if bio_assembly_index != count:
            raise ContractViolationError(
                f"Bioassembly {name!r} must start at index {count}, got {bio_assembly_index}"
            )
        self.bioassemblies.append((name, []))

    def set_bio_assembly_trans(
        self,
        bio_assembly_index: int,
        chain_indices: Sequence[int],
        transform: Sequence[float],
        name: str,
    ) -> None:
        """Add a transformation to bioassembly ``bio_assembly_index``.

        An index equal to the current number of assemblies starts a new
        assembly named ``name``; a lower index appends to an existing one.
        """
        self._check_open("set_bio_assembly_trans")
        count = len(self.bioassemblies)
        if bio_assembly_index < 0 or bio_assembly_index > count:
            raise ContractViolationError(
                f"Bioassembly index {bio_assembly_index} skips ahead of the "
                f"{count} existing assemblies"
            )
        new_transform = Transform(
            chain_index_list=tuple(int(i) for i in chain_indices),
            matrix=tuple(float(v) for v in transform),
        )
        if bio_assembly_index == count:
            self.bioassemblies.append((name, [new_transform]))
        else:
            self.bioassemblies[bio_assembly_index][1].append(new_transform)

    def set_xtal_info(
        self,
        space_group: Optional[str],
        unit_cell: Optional[Sequence[float]],
        ncs_operator_list: Optional[Sequence[Sequence[float]]] = None,
    ) -> None:
        self._check_open("set_xtal_info")
        if unit_cell is not None and len(unit_cell) != 6:
            raise ContractViolationError(f"Unit cell must have 6 values, got {len(unit_cell)}")
        operators = tuple(tuple(float(v) for v in op) for op in ncs_operator_list or ())
        for op in operators:
            if len(op) != 16:
                raise ContractViolationError(
                    f"NCS operator must have 16 elements, got {len(op)}"
                )
        self.space_group = space_group
        self.unit_cell = tuple(float(v) for v in unit_cell) if unit_cell is not None else None
        self.ncs_operator_list = operators

    def set_header_info(
        self,
        r_free: Optional[float],
        r_work: Optional[float],
        resolution: Optional[float],
        title: Optional[str],
        deposition_date: Optional[str],
        release_date: Optional[str],
        experimental_methods: Optional[Sequence[str]],
    ) -> None:
        self._check_open("set_header_info")
        self.r_free = _optional_float(r_free)
        self.r_work = _optional_float(r_work)
        self.resolution = _optional_float(resolution)
        self.title = title
        self.deposition_date = deposition_date
        self.release_date = release_date
        self.experimental_methods = tuple(experimental_methods or ())

    def set_mmtf_producer(self, producer: str) -> None:
        self._check_open("set_mmtf_producer")
        self.mmtf_producer = producer

    def set_mmtf_version(self, version: str) -> None:
        self._check_open("set_mmtf_version")
        self.mmtf_version = version

    # -------------------------------------------------------------------------
    # Finalization
    # -------------------------------------------------------------------------

    def _deduplicate_groups(self) -> Tuple[List[Group], np.ndarray]:
        """Collapse identical templates, numbering them in first-occurrence order."""
        index_of: Dict[Group, int] = {}
        unique: List[Group] = []
        type_indices = np.zeros(len(self._group_templates), dtype=np.int32)
        for occurrence, group in enumerate(self._group_templates):
            index = index_of.get(group)
            if index is None:
                index = len(unique)
                index_of[group] = index
                unique.append(group)
            type_indices[occurrence] = index
        return unique, type_indices

    def finalize_structure(self) -> StructureData:
        """Deduplicate group templates, verify totals and freeze.

        Returns:
            The finalized structure. Repeated calls return the same object.

        Raises:
            ContractViolationError: If a declared total was not reached or
                the assembled arrays are inconsistent
        """
        if self._result is not None:
            return self._result
        if not self._initialized:
            raise ContractViolationError("finalize_structure called before init_structure")
        self._close_group()

        reached = {
            "atoms": (self._atom_index, self.total_num_atoms),
            "groups": (self._group_index, self.total_num_groups),
            "chains": (self._chain_index, self.total_num_chains),
            "models": (self._model_index, self.total_num_models),
            "bonds": (self._bond_index, self.total_num_bonds),
        }
        for name, (count, total) in reached.items():
            if count != total:
                raise ContractViolationError(
                    f"Declared {total} {name}, but {count} were set"
                )

        group_list, group_type_indices = self._deduplicate_groups()
        data = StructureData(
            structure_id=self.structure_id,
            x_coords=self.x_coords,
            y_coords=self.y_coords,
            z_coords=self.z_coords,
            b_factors=self.b_factors,
            occupancies=self.occupancies,
            atom_ids=self.atom_ids,
            alt_loc_ids=tuple(self.alt_loc_ids),
            group_ids=self.group_ids,
            ins_codes=tuple(self.ins_codes),
            group_sequence_indices=self.group_sequence_indices,
            sec_struct_list=self.sec_struct_list,
            group_type_indices=group_type_indices,
            group_list=tuple(group_list),
            chain_ids=tuple(self.chain_ids),
            chain_names=tuple(self.chain_names),
            groups_per_chain=self.groups_per_chain,
            chains_per_model=self.chains_per_model,
            inter_group_bond_indices=np.asarray(self.inter_group_bond_indices, dtype=np.int32),
            inter_group_bond_orders=np.asarray(self.inter_group_bond_orders, dtype=np.int32),
            num_bonds=self.total_num_bonds,
            mmtf_version=self.mmtf_version,
            mmtf_producer=self.mmtf_producer,
            title=self.title,
            deposition_date=self.deposition_date,
            release_date=self.release_date,
            experimental_methods=self.experimental_methods,
            resolution=self.resolution,
            r_free=self.r_free,
            r_work=self.r_work,
            space_group=self.space_group,
            unit_cell=self.unit_cell,
            ncs_operator_list=self.ncs_operator_list,
            entity_list=tuple(self.entities),
            bioassembly_list=tuple(
                BioAssembly(name=name, transform_list=tuple(transforms))
                for name, transforms in self.bioassemblies
            ),
        )
        data.validate()
        logger.debug(
            f"Finalized {self.structure_id}: {data.num_atoms} atoms, "
            f"{data.num_groups} groups ({data.num_group_types} templates), "
            f"{data.num_chains} chains, {data.num_models} models"
        )
        self._result = data
        return data
