"""Replay a finalized structure into any producer."""

from __future__ import annotations

from typing import Any

from mmtfcodec.data.adapter import StructureAdapterInterface
from mmtfcodec.data.structure import StructureData


def pass_data_to_adapter(data: StructureData, adapter: StructureAdapterInterface) -> Any:
    """Feed every part of ``data`` to ``adapter`` in declaration order.

    Metadata and catalogs are passed first, then the model/chain/group/atom
    hierarchy, then inter-group bonds. The adapter is finalized and its
    result returned.

    Args:
        data: Source structure
        adapter: Producer to populate (must be fresh)

    Returns:
        Whatever ``adapter.finalize_structure()`` returns
    """
    adapter.init_structure(
        data.num_bonds,
        data.num_atoms,
        data.num_groups,
        data.num_chains,
        data.num_models,
        data.structure_id,
    )
    add_metadata(data, adapter)

    x = data.x_coords.tolist()
    y = data.y_coords.tolist()
    z = data.z_coords.tolist()
    occupancies = data.occupancies.tolist()
    b_factors = data.b_factors.tolist()
    atom_ids = data.atom_ids.tolist()

    chain_index = 0
    group_index = 0
    atom_index = 0
    for model_index, num_chains in enumerate(data.chains_per_model.tolist()):
        adapter.set_model_info(model_index, num_chains)
        for _ in range(num_chains):
            num_groups = int(data.groups_per_chain[chain_index])
            adapter.set_chain_info(
                data.chain_ids[chain_index], data.chain_names[chain_index], num_groups
            )
            for _ in range(num_groups):
                group = data.group_list[int(data.group_type_indices[group_index])]
                adapter.set_group_info(
                    group.group_name,
                    int(data.group_ids[group_index]),
                    data.ins_codes[group_index],
                    group.chem_comp_type,
                    group.num_atoms,
                    group.num_bonds,
                    group.single_letter_code,
                    int(data.group_sequence_indices[group_index]),
                    int(data.sec_struct_list[group_index]),
                )
                for i in range(group.num_atoms):
                    adapter.set_atom_info(
                        group.atom_names[i],
                        atom_ids[atom_index],
                        data.alt_loc_ids[atom_index],
                        x[atom_index],
                        y[atom_index],
                        z[atom_index],
                        occupancies[atom_index],
                        b_factors[atom_index],
                        group.element_names[i],
                        group.formal_charges[i],
                    )
                    atom_index += 1
                bonds = group.bond_atom_list
                for i, order in enumerate(group.bond_order_list):
                    adapter.set_group_bond(bonds[2 * i], bonds[2 * i + 1], order)
                group_index += 1
            chain_index += 1

    for first, second, order in data.iter_inter_group_bonds():
        adapter.set_inter_group_bond(first, second, order)
    return adapter.finalize_structure()


def add_metadata(data: StructureData, adapter: StructureAdapterInterface) -> None:
    """Pass version, header, crystallographic, entity and bioassembly data."""
    adapter.set_mmtf_version(data.mmtf_version)
    adapter.set_mmtf_producer(data.mmtf_producer)
    adapter.set_header_info(
        data.r_free,
        data.r_work,
        data.resolution,
        data.title,
        data.deposition_date,
        data.release_date,
        data.experimental_methods,
    )
    adapter.set_xtal_info(data.space_group, data.unit_cell, data.ncs_operator_list)
    for entity in data.entity_list:
        adapter.set_entity_info(
            entity.chain_index_list, entity.sequence, entity.description, entity.type
        )
    for assembly_index, assembly in enumerate(data.bioassembly_list):
        adapter.set_bio_assembly_info(assembly_index, assembly.name)
        for transform in assembly.transform_list:
            adapter.set_bio_assembly_trans(
                assembly_index, transform.chain_index_list, transform.matrix, assembly.name
            )
