"""Tests for the structure data contract (builder and immutable structure)."""

import numpy as np
import pytest

from mmtfcodec.data.adapter import AdapterToStructureData
from mmtfcodec.data.structure import Group, StructureData
from mmtfcodec.exceptions import ContractViolationError


WATER = [("O", "O", 0.0, 0.0, 0.0)]


def _start(adapter, bonds=0, atoms=1, groups=1, chains=1, models=1):
    adapter.init_structure(bonds, atoms, groups, chains, models, "TEST")
    adapter.set_model_info(0, chains)


# =============================================================================
# Finalized Structure
# =============================================================================

class TestStructureData:
    """Tests for the consumer view of a finalized structure."""

    def test_counts(self, small_protein):
        assert small_protein.num_atoms == 10
        assert small_protein.num_groups == 3
        assert small_protein.num_chains == 2
        assert small_protein.num_models == 1
        assert small_protein.num_bonds == 8
        assert small_protein.num_group_types == 3
        assert small_protein.num_entities == 2
        assert small_protein.num_bioassemblies == 1

    def test_group_getters(self, small_protein):
        """Template getters index by group type."""
        ala = small_protein.group_type_indices[0]
        assert small_protein.get_group_name(ala) == "ALA"
        assert small_protein.get_group(ala).num_bonds == 4
        assert small_protein.get_num_atoms_in_group(ala) == 5
        assert small_protein.get_group_atom_names(ala) == ("N", "CA", "C", "O", "CB")
        assert small_protein.get_group_element_names(ala) == ("N", "C", "C", "O", "C")
        assert small_protein.get_group_atom_charges(ala) == (0, 0, 0, 0, 0)
        assert small_protein.get_group_bond_indices(ala) == (0, 1, 1, 2, 2, 3, 1, 4)
        assert small_protein.get_group_bond_orders(ala) == (1, 1, 2, 1)
        assert small_protein.get_group_single_letter_code(ala) == "A"
        assert small_protein.get_group_chem_comp_type(ala) == "L-PEPTIDE LINKING"

    def test_entity_and_bioassembly_getters(self, small_protein):
        assert small_protein.get_entity_chain_index_list(0) == (0,)
        assert small_protein.get_entity_sequence(0) == "AG"
        assert small_protein.get_entity_description(1) == "water"
        assert small_protein.get_entity_type(0) == "polymer"
        assert small_protein.get_bioassembly_name(0) == "1"
        assert small_protein.get_num_trans_in_bioassembly(0) == 1
        assert small_protein.get_chain_index_list_for_transform(0, 0) == (0, 1)
        assert len(small_protein.get_matrix_for_transform(0, 0)) == 16

    def test_arrays_are_read_only(self, small_protein):
        """Finalized arrays cannot be modified in place."""
        with pytest.raises(ValueError):
            small_protein.x_coords[0] = 1.0
        with pytest.raises(ValueError):
            small_protein.group_type_indices[0] = 2

    def test_attributes_are_frozen(self, small_protein):
        with pytest.raises(AttributeError):
            small_protein.structure_id = "XXXX"

    def test_iter_groups(self, small_protein):
        """Traversal yields model, chain and first atom of every group."""
        sites = list(small_protein.iter_groups())
        assert [s.group.group_name for s in sites] == ["ALA", "GLY", "HOH"]
        assert [s.chain_index for s in sites] == [0, 0, 1]
        assert [s.atom_offset for s in sites] == [0, 5, 9]
        assert list(sites[1].atom_indices) == [5, 6, 7, 8]
        np.testing.assert_array_equal(small_protein.group_atom_offsets(), [0, 5, 9])

    def test_inter_group_bonds(self, small_protein):
        assert list(small_protein.iter_inter_group_bonds()) == [(2, 5, 1)]

    def test_coords(self, small_protein):
        coords = small_protein.coords
        assert coords.shape == (10, 3)
        np.testing.assert_allclose(coords[1], [11.639, 6.071, -5.147], atol=1e-5)

    def test_empty_structure(self, empty_structure):
        assert empty_structure.num_atoms == 0
        assert empty_structure.num_models == 0
        assert list(empty_structure.iter_groups()) == []
        assert len(empty_structure.group_atom_offsets()) == 0


class TestGroup:
    """Tests for group templates as value types."""

    def test_structural_equality(self):
        a = Group("HOH", "NON-POLYMER", "?", ("O",), ("O",), (0,))
        b = Group("HOH", "NON-POLYMER", "?", ("O",), ("O",), (0,))
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_dict_round_trip(self):
        group = Group("ALA", "L-PEPTIDE LINKING", "A", ("N", "CA"), ("N", "C"),
                      (0, 0), (0, 1), (1,))
        assert Group.from_dict(group.to_dict()) == group


# =============================================================================
# Builder
# =============================================================================

class TestGroupDeduplication:
    """Tests for template deduplication at finalization."""

    def test_waters_collapse_across_models(self, group_adder):
        """Three models with two waters each share a single template."""
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 6, 6, 3, 3, "WAT")
        serial = 1
        for model in range(3):
            adapter.set_model_info(model, 1)
            adapter.set_chain_info("W", "W", 2)
            for number in (1, 2):
                group_adder(adapter, "HOH", number, "NON-POLYMER", WATER,
                            first_serial=serial)
                serial += 1
        data = adapter.finalize_structure()

        assert data.num_group_types == 1
        assert data.group_type_indices.tolist() == [0] * 6
        assert data.chains_per_model.tolist() == [1, 1, 1]

    def test_one_atom_difference_keeps_templates_apart(self, group_adder):
        """Templates differing by a single atom are not merged."""
        adapter = AdapterToStructureData()
        _start(adapter, atoms=3, groups=2)
        adapter.set_chain_info("A", "A", 2)
        group_adder(adapter, "HOH", 1, "NON-POLYMER", WATER)
        group_adder(adapter, "HOH", 2, "NON-POLYMER",
                    WATER + [("H1", "H", 0.9, 0.0, 0.0)])
        data = adapter.finalize_structure()

        assert data.num_group_types == 2
        assert data.group_type_indices.tolist() == [0, 1]

    def test_first_occurrence_order(self, group_adder):
        adapter = AdapterToStructureData()
        _start(adapter, atoms=3, groups=3)
        adapter.set_chain_info("A", "A", 3)
        group_adder(adapter, "NA", 1, "NON-POLYMER", [("NA", "NA", 0.0, 0.0, 0.0)])
        group_adder(adapter, "HOH", 2, "NON-POLYMER", WATER)
        group_adder(adapter, "NA", 3, "NON-POLYMER", [("NA", "NA", 1.0, 0.0, 0.0)])
        data = adapter.finalize_structure()

        assert data.group_type_indices.tolist() == [0, 1, 0]
        assert data.get_group_name(0) == "NA"


class TestFinalization:
    """Tests for the finalization barrier."""

    def test_idempotent(self, group_adder):
        adapter = AdapterToStructureData()
        _start(adapter)
        adapter.set_chain_info("A", "A", 1)
        group_adder(adapter, "HOH", 1, "NON-POLYMER", WATER)
        first = adapter.finalize_structure()
        assert adapter.finalize_structure() is first
        assert adapter.is_finalized

    def test_setter_after_finalize(self, group_adder):
        adapter = AdapterToStructureData()
        _start(adapter)
        adapter.set_chain_info("A", "A", 1)
        group_adder(adapter, "HOH", 1, "NON-POLYMER", WATER)
        adapter.finalize_structure()
        with pytest.raises(ContractViolationError):
            adapter.set_header_info(None, None, 2.0, None, None, None, None)

    def test_totals_not_reached(self, group_adder):
        adapter = AdapterToStructureData()
        _start(adapter, atoms=2, groups=2)
        adapter.set_chain_info("A", "A", 1)
        group_adder(adapter, "HOH", 1, "NON-POLYMER", WATER)
        with pytest.raises(ContractViolationError, match="Declared 2 atoms"):
            adapter.finalize_structure()

    def test_group_count_mismatch(self, group_adder):
        """A chain declaring more groups than it holds fails validation."""
        adapter = AdapterToStructureData()
        _start(adapter)
        adapter.set_chain_info("A", "A", 2)
        group_adder(adapter, "HOH", 1, "NON-POLYMER", WATER)
        with pytest.raises(ContractViolationError, match="groups_per_chain"):
            adapter.finalize_structure()

    def test_finalize_before_init(self):
        with pytest.raises(ContractViolationError):
            AdapterToStructureData().finalize_structure()

    def test_builder_arrays_not_shared(self, small_protein):
        """The finalized structure owns its arrays."""
        assert isinstance(small_protein, StructureData)
        assert not small_protein.x_coords.flags.writeable


class TestCadence:
    """Tests for setter cadence and declared bounds."""

    def test_setter_before_init(self):
        with pytest.raises(ContractViolationError):
            AdapterToStructureData().set_model_info(0, 1)

    def test_too_many_atoms_in_group(self):
        adapter = AdapterToStructureData()
        _start(adapter, atoms=2)
        adapter.set_chain_info("A", "A", 1)
        adapter.set_group_info("HOH", 1, "", "NON-POLYMER", 1, 0, "?", -1, -1)
        adapter.set_atom_info("O", 1, "", 0.0, 0.0, 0.0, 1.0, 10.0, "O", 0)
        with pytest.raises(ContractViolationError):
            adapter.set_atom_info("H1", 2, "", 0.9, 0.0, 0.0, 1.0, 10.0, "H", 0)

    def test_too_few_atoms_before_next_group(self):
        adapter = AdapterToStructureData()
        _start(adapter, atoms=2, groups=2)
        adapter.set_chain_info("A", "A", 2)
        adapter.set_group_info("HOH", 1, "", "NON-POLYMER", 2, 0, "?", -1, -1)
        adapter.set_atom_info("O", 1, "", 0.0, 0.0, 0.0, 1.0, 10.0, "O", 0)
        with pytest.raises(ContractViolationError):
            adapter.set_group_info("HOH", 2, "", "NON-POLYMER", 1, 0, "?", -1, -1)

    def test_past_declared_atom_total(self):
        adapter = AdapterToStructureData()
        _start(adapter, atoms=1)
        adapter.set_chain_info("A", "A", 1)
        adapter.set_group_info("HOH", 1, "", "NON-POLYMER", 2, 0, "?", -1, -1)
        adapter.set_atom_info("O", 1, "", 0.0, 0.0, 0.0, 1.0, 10.0, "O", 0)
        with pytest.raises(ContractViolationError):
            adapter.set_atom_info("H1", 2, "", 0.9, 0.0, 0.0, 1.0, 10.0, "H", 0)

    def test_too_many_models(self):
        adapter = AdapterToStructureData()
        _start(adapter)
        with pytest.raises(ContractViolationError):
            adapter.set_model_info(1, 1)

    def test_group_bond_out_of_range(self):
        adapter = AdapterToStructureData()
        _start(adapter, bonds=1)
        adapter.set_chain_info("A", "A", 1)
        adapter.set_group_info("HOH", 1, "", "NON-POLYMER", 1, 1, "?", -1, -1)
        adapter.set_atom_info("O", 1, "", 0.0, 0.0, 0.0, 1.0, 10.0, "O", 0)
        with pytest.raises(ContractViolationError):
            adapter.set_group_bond(0, 1, 1)

    @pytest.mark.parametrize("order", [0, 5, 9, -1])
    def test_group_bond_order_out_of_range(self, order):
        """Bond orders run from single (1) to quadruple (4)."""
        adapter = AdapterToStructureData()
        _start(adapter, bonds=1, atoms=2)
        adapter.set_chain_info("A", "A", 1)
        adapter.set_group_info("HOH", 1, "", "NON-POLYMER", 2, 1, "?", -1, -1)
        adapter.set_atom_info("O", 1, "", 0.0, 0.0, 0.0, 1.0, 10.0, "O", 0)
        adapter.set_atom_info("H1", 2, "", 0.9, 0.0, 0.0, 1.0, 10.0, "H", 0)
        with pytest.raises(ContractViolationError, match="Bond order"):
            adapter.set_group_bond(0, 1, order)

    def test_inter_group_bond_order_out_of_range(self):
        adapter = AdapterToStructureData()
        _start(adapter, bonds=1, atoms=2)
        with pytest.raises(ContractViolationError, match="Bond order"):
            adapter.set_inter_group_bond(0, 1, 0)

    def test_quadruple_bond_accepted(self):
        adapter = AdapterToStructureData()
        _start(adapter, bonds=1, atoms=2)
        adapter.set_inter_group_bond(0, 1, 4)
        assert adapter.inter_group_bond_orders == [4]

    def test_missing_group_bonds(self):
        """Declared intra-group bonds must all be set."""
        adapter = AdapterToStructureData()
        _start(adapter, bonds=1)
        adapter.set_chain_info("A", "A", 1)
        adapter.set_group_info("HOH", 1, "", "NON-POLYMER", 1, 1, "?", -1, -1)
        adapter.set_atom_info("O", 1, "", 0.0, 0.0, 0.0, 1.0, 10.0, "O", 0)
        with pytest.raises(ContractViolationError):
            adapter.finalize_structure()

    def test_inter_group_bond_out_of_range(self):
        adapter = AdapterToStructureData()
        _start(adapter, bonds=1)
        with pytest.raises(ContractViolationError):
            adapter.set_inter_group_bond(0, 5, 1)

    def test_bonds_past_declared_total(self):
        adapter = AdapterToStructureData()
        _start(adapter, bonds=0, atoms=1)
        with pytest.raises(ContractViolationError):
            adapter.set_inter_group_bond(0, 0, 1)

    def test_chain_before_model(self):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 0, 0, 1, 1, "TEST")
        with pytest.raises(ContractViolationError):
            adapter.set_chain_info("A", "A", 0)

    def test_missing_codes_normalized(self, group_adder):
        """None and NUL alt locs are stored as the empty string."""
        adapter = AdapterToStructureData()
        _start(adapter, atoms=2)
        adapter.set_chain_info("A", "A", 1)
        adapter.set_group_info("HOH", 1, None, "NON-POLYMER", 2, 0, "?", -1, -1)
        adapter.set_atom_info("O", 1, None, 0.0, 0.0, 0.0, 1.0, 10.0, "O", 0)
        adapter.set_atom_info("H1", 2, "\0", 0.9, 0.0, 0.0, 1.0, 10.0, "H", 0)
        data = adapter.finalize_structure()
        assert data.alt_loc_ids == ("", "")
        assert data.ins_codes == ("",)


class TestBioAssemblies:
    """Tests for bioassembly index handling."""

    def test_append_and_start(self):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 0, 0, 0, 0, "BIO")
        identity = [1.0, 0, 0, 0, 0, 1.0, 0, 0, 0, 0, 1.0, 0, 0, 0, 0, 1.0]
        adapter.set_bio_assembly_trans(0, [], identity, "1")
        adapter.set_bio_assembly_trans(0, [], identity, "1")
        adapter.set_bio_assembly_trans(1, [], identity, "2")
        data = adapter.finalize_structure()

        assert data.num_bioassemblies == 2
        assert data.get_num_trans_in_bioassembly(0) == 2
        assert data.get_bioassembly_name(1) == "2"

    def test_assembly_without_transforms(self):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 0, 0, 0, 0, "BIO")
        identity = [1.0, 0, 0, 0, 0, 1.0, 0, 0, 0, 0, 1.0, 0, 0, 0, 0, 1.0]
        adapter.set_bio_assembly_info(0, "1")
        adapter.set_bio_assembly_info(1, "2")
        adapter.set_bio_assembly_trans(1, [], identity, "2")
        data = adapter.finalize_structure()

        assert data.num_bioassemblies == 2
        assert data.get_num_trans_in_bioassembly(0) == 0
        assert data.get_num_trans_in_bioassembly(1) == 1
        assert data.get_bioassembly_name(0) == "1"

    def test_assembly_start_out_of_order(self):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 0, 0, 0, 0, "BIO")
        with pytest.raises(ContractViolationError):
            adapter.set_bio_assembly_info(1, "2")

    def test_gap_rejected(self):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 0, 0, 0, 0, "BIO")
        with pytest.raises(ContractViolationError):
            adapter.set_bio_assembly_trans(1, [], [0.0] * 16, "2")

    def test_bad_matrix(self):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 0, 0, 0, 0, "BIO")
        with pytest.raises(ContractViolationError):
            adapter.set_bio_assembly_trans(0, [], [1.0] * 9, "1")

    def test_bad_unit_cell(self):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 0, 0, 0, 0, "BIO")
        with pytest.raises(ContractViolationError):
            adapter.set_xtal_info("P 1", [1.0, 2.0])
