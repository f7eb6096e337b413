"""Tests for the reduced (trace-atom-only) encoder."""

import logging

import numpy as np
import pytest

from mmtfcodec.config import ReducedConfig
from mmtfcodec.data.adapter import AdapterToStructureData
from mmtfcodec.data.structure import Group
from mmtfcodec.decoder.decoder import decode_structure
from mmtfcodec.encoder.encoder import encode_structure
from mmtfcodec.encoder.reduced import (
    GroupKind,
    ReducedEncoder,
    classify_group,
    get_reduced,
    reduce_group,
)
from mmtfcodec.exceptions import ReductionError


class TestClassification:
    """Tests for polymer classification of group templates."""

    @pytest.mark.parametrize("comp_type,expected", [
        ("L-PEPTIDE LINKING", GroupKind.AMINO_ACID),
        ("peptide linking", GroupKind.AMINO_ACID),
        ("RNA LINKING", GroupKind.NUCLEOTIDE),
        ("DNA LINKING", GroupKind.NUCLEOTIDE),
        ("NON-POLYMER", GroupKind.OTHER),
    ])
    def test_by_chem_comp_type(self, comp_type, expected):
        assert classify_group(Group("XXX", comp_type)) is expected

    def test_type_takes_precedence_over_name(self):
        """A standard name with a non-polymer type is not reduced."""
        assert classify_group(Group("ALA", "NON-POLYMER")) is GroupKind.OTHER

    @pytest.mark.parametrize("name,expected", [
        ("ALA", GroupKind.AMINO_ACID),
        ("UNK", GroupKind.AMINO_ACID),
        ("DG", GroupKind.NUCLEOTIDE),
        ("U", GroupKind.NUCLEOTIDE),
        ("HOH", GroupKind.OTHER),
    ])
    def test_by_name_when_type_missing(self, name, expected):
        assert classify_group(Group(name, "")) is expected


class TestReduceGroup:
    """Tests for subsetting a single template."""

    def test_bonds_renumbered(self):
        group = Group("XXX", "", "?", ("A", "B", "C"), ("C", "C", "C"), (0, 0, 0),
                      (0, 1, 1, 2, 0, 2), (1, 2, 1))
        reduced = reduce_group(group, [0, 2])
        assert reduced.atom_names == ("A", "C")
        assert reduced.bond_atom_list == (0, 1)
        assert reduced.bond_order_list == (1,)


class TestReducedEncoder:
    """Tests for reducing whole structures."""

    def test_protein_keeps_ca(self, small_protein):
        reduced = get_reduced(small_protein)

        assert reduced.num_atoms == 3
        names = [
            reduced.get_group_atom_names(t) for t in reduced.group_type_indices.tolist()
        ]
        assert names == [("CA",), ("CA",), ("O",)]
        np.testing.assert_allclose(reduced.x_coords, [11.639, 15.230, 20.001], atol=1e-5)
        assert reduced.atom_ids.tolist() == [2, 7, 10]

    def test_hierarchy_and_metadata_preserved(self, small_protein):
        reduced = get_reduced(small_protein)

        assert reduced.num_groups == small_protein.num_groups
        assert reduced.num_chains == small_protein.num_chains
        assert reduced.num_models == small_protein.num_models
        assert reduced.chain_ids == small_protein.chain_ids
        assert reduced.group_ids.tolist() == small_protein.group_ids.tolist()
        assert reduced.sec_struct_list.tolist() == small_protein.sec_struct_list.tolist()
        assert reduced.entity_list == small_protein.entity_list
        assert reduced.bioassembly_list == small_protein.bioassembly_list
        assert reduced.unit_cell == small_protein.unit_cell
        assert reduced.title == small_protein.title
        assert reduced.resolution == small_protein.resolution

    def test_bonds_dropped_with_atoms(self, small_protein):
        """No intra-group bond survives a single-atom group; the peptide bond goes too."""
        reduced = get_reduced(small_protein)

        assert reduced.num_bonds == 0
        assert reduced.num_inter_group_bonds == 0
        assert all(g.num_bonds == 0 for g in reduced.group_list)

    def test_source_not_mutated(self, small_protein):
        before = small_protein.num_atoms
        get_reduced(small_protein)
        assert small_protein.num_atoms == before

    def test_nucleotide_fallback(self, nucleic_chain):
        """Nucleotides keep P, or C4' when P is missing."""
        reduced = get_reduced(nucleic_chain)
        names = [
            reduced.get_group_atom_names(t) for t in reduced.group_type_indices.tolist()
        ]
        assert names == [("C4'",), ("P",), ("P",)]
        # C4' of G to P of C survives, renumbered
        assert list(reduced.iter_inter_group_bonds()) == [(0, 1, 1)]
        assert reduced.num_bonds == 1

    def test_alternate_locations_kept(self, group_adder):
        """Every atom matching the trace name survives."""
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 3, 1, 1, 1, "ALT")
        adapter.set_model_info(0, 1)
        adapter.set_chain_info("A", "A", 1)
        group_adder(adapter, "SER", 1, "L-PEPTIDE LINKING", [
            ("N", "N", 0.0, 0.0, 0.0),
            ("CA", "C", 1.0, 0.0, 0.0),
            ("CA", "C", 1.1, 0.0, 0.0),
        ], alt_locs=["", "A", "B"])
        reduced = get_reduced(adapter.finalize_structure())

        assert reduced.num_atoms == 2
        assert reduced.alt_loc_ids == ("A", "B")

    def test_missing_trace_passes_through(self, group_adder, caplog):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 2, 1, 1, 1, "NOCA")
        adapter.set_model_info(0, 1)
        adapter.set_chain_info("A", "A", 1)
        group_adder(adapter, "GLY", 1, "PEPTIDE LINKING", [
            ("N", "N", 0.0, 0.0, 0.0),
            ("C", "C", 1.0, 0.0, 0.0),
        ])
        data = adapter.finalize_structure()

        with caplog.at_level(logging.WARNING, logger="mmtfcodec.encoder.reduced"):
            reduced = get_reduced(data)
        assert reduced.num_atoms == 2
        assert "no trace atom" in caplog.text

    def test_missing_trace_error_policy(self, group_adder):
        adapter = AdapterToStructureData()
        adapter.init_structure(0, 1, 1, 1, 1, "NOCA")
        adapter.set_model_info(0, 1)
        adapter.set_chain_info("A", "A", 1)
        group_adder(adapter, "GLY", 1, "PEPTIDE LINKING", [("N", "N", 0.0, 0.0, 0.0)])
        data = adapter.finalize_structure()

        encoder = ReducedEncoder(ReducedConfig(missing_trace_policy="error"))
        with pytest.raises(ReductionError):
            encoder.reduce(data)

    def test_reduced_round_trip(self, small_protein):
        """The reduced structure encodes and decodes like any other."""
        reduced = get_reduced(small_protein)
        decoded = decode_structure(encode_structure(reduced))

        assert decoded.num_atoms == reduced.num_atoms
        assert decoded.group_list == reduced.group_list
        np.testing.assert_allclose(decoded.x_coords, reduced.x_coords, atol=0.0005 + 1e-5)

    def test_empty(self, empty_structure):
        assert get_reduced(empty_structure).num_atoms == 0
