"""Pytest configuration and fixtures for mmtfcodec tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Callable, Generator, List, Sequence, Tuple

import numpy as np
import pytest

from mmtfcodec.data.adapter import AdapterToStructureData
from mmtfcodec.data.structure import StructureData

# (name, element, x, y, z)
AtomSpec = Tuple[str, str, float, float, float]
# (first, second, order), group-local
BondSpec = Tuple[int, int, int]


def add_group(
    adapter: AdapterToStructureData,
    name: str,
    number: int,
    chem_comp_type: str,
    atoms: Sequence[AtomSpec],
    bonds: Sequence[BondSpec] = (),
    single_letter_code: str = "?",
    sequence_index: int = -1,
    sec_struct: int = -1,
    first_serial: int = 1,
    alt_locs: Sequence[str] = (),
    b_factor: float = 20.0,
    occupancy: float = 1.0,
) -> None:
    """Add one group with its atoms and bonds to ``adapter``."""
    adapter.set_group_info(
        name, number, "", chem_comp_type, len(atoms), len(bonds),
        single_letter_code, sequence_index, sec_struct,
    )
    for i, (atom_name, element, x, y, z) in enumerate(atoms):
        alt_loc = alt_locs[i] if alt_locs else ""
        adapter.set_atom_info(
            atom_name, first_serial + i, alt_loc, x, y, z,
            occupancy, b_factor + i, element, 0,
        )
    for first, second, order in bonds:
        adapter.set_group_bond(first, second, order)


ALA_ATOMS: List[AtomSpec] = [
    ("N", "N", 11.104, 6.134, -6.504),
    ("CA", "C", 11.639, 6.071, -5.147),
    ("C", "C", 13.149, 5.900, -5.215),
    ("O", "O", 13.715, 5.374, -6.177),
    ("CB", "C", 11.255, 7.323, -4.369),
]
ALA_BONDS: List[BondSpec] = [(0, 1, 1), (1, 2, 1), (2, 3, 2), (1, 4, 1)]

GLY_ATOMS: List[AtomSpec] = [
    ("N", "N", 13.791, 6.351, -4.208),
    ("CA", "C", 15.230, 6.232, -4.144),
    ("C", "C", 15.787, 7.575, -3.705),
    ("O", "O", 15.123, 8.625, -3.812),
]
GLY_BONDS: List[BondSpec] = [(0, 1, 1), (1, 2, 1), (2, 3, 2)]

HOH_ATOMS: List[AtomSpec] = [("O", "O", 20.001, -3.250, 7.125)]

IDENTITY = [
    1.0, 0.0, 0.0, 0.0,
    0.0, 1.0, 0.0, 0.0,
    0.0, 0.0, 1.0, 0.0,
    0.0, 0.0, 0.0, 1.0,
]


# =============================================================================
# Structure Fixtures
# =============================================================================


@pytest.fixture
def small_protein() -> StructureData:
    """Dipeptide ALA-GLY in chain A plus one water in chain B.

    10 atoms, 3 groups, 2 chains, 1 model, 7 intra-group bonds and one
    peptide bond between ALA C (atom 2) and GLY N (atom 5).
    """
    adapter = AdapterToStructureData()
    adapter.init_structure(8, 10, 3, 2, 1, "1TST")
    adapter.set_mmtf_version("1.0.0")
    adapter.set_mmtf_producer("mmtfcodec-tests")
    adapter.set_header_info(
        0.215, 0.183, 1.5, "Test dipeptide", "2020-01-01", "2020-06-01",
        ["X-RAY DIFFRACTION"],
    )
    adapter.set_xtal_info("P 1 21 1", [50.0, 60.0, 70.0, 90.0, 95.5, 90.0])
    adapter.set_entity_info([0], "AG", "Dipeptide", "polymer")
    adapter.set_entity_info([1], "", "water", "water")
    adapter.set_bio_assembly_trans(0, [0, 1], IDENTITY, "1")

    adapter.set_model_info(0, 2)
    adapter.set_chain_info("A", "A", 2)
    add_group(adapter, "ALA", 1, "L-PEPTIDE LINKING", ALA_ATOMS, ALA_BONDS,
              single_letter_code="A", sequence_index=0, sec_struct=2, first_serial=1)
    add_group(adapter, "GLY", 2, "PEPTIDE LINKING", GLY_ATOMS, GLY_BONDS,
              single_letter_code="G", sequence_index=1, sec_struct=2, first_serial=6)
    adapter.set_chain_info("B", "A", 1)
    add_group(adapter, "HOH", 101, "NON-POLYMER", HOH_ATOMS, first_serial=10)
    adapter.set_inter_group_bond(2, 5, 1)
    return adapter.finalize_structure()


@pytest.fixture
def nucleic_chain() -> StructureData:
    """Three RNA nucleotides; the 5' terminal one has no phosphorus."""
    adapter = AdapterToStructureData()
    adapter.init_structure(5, 10, 3, 1, 1, "2RNA")
    adapter.set_model_info(0, 1)
    adapter.set_chain_info("A", "A", 3)
    add_group(adapter, "G", 1, "RNA LINKING", [
        ("C4'", "C", 1.0, 2.0, 3.0),
        ("C1'", "C", 1.5, 2.5, 3.5),
    ], [(0, 1, 1)], single_letter_code="G", sequence_index=0)
    add_group(adapter, "C", 2, "RNA LINKING", [
        ("P", "P", 4.0, 5.0, 6.0),
        ("OP1", "O", 4.5, 5.5, 6.5),
        ("C4'", "C", 5.0, 6.0, 7.0),
        ("C1'", "C", 5.5, 6.5, 7.5),
    ], [(0, 1, 2), (0, 2, 1)], single_letter_code="C", sequence_index=1)
    add_group(adapter, "U", 3, "RNA LINKING", [
        ("P", "P", 8.0, 9.0, 10.0),
        ("OP1", "O", 8.5, 9.5, 10.5),
        ("C4'", "C", 9.0, 10.0, 11.0),
        ("C1'", "C", 9.5, 10.5, 11.5),
    ], [(0, 1, 2)], single_letter_code="U", sequence_index=2)
    # O3'-P linkage approximated by C4' of G to P of C
    adapter.set_inter_group_bond(0, 2, 1)
    return adapter.finalize_structure()


@pytest.fixture
def empty_structure() -> StructureData:
    """A structure with no atoms, groups, chains or models."""
    adapter = AdapterToStructureData()
    adapter.init_structure(0, 0, 0, 0, 0, "0EMP")
    return adapter.finalize_structure()


@pytest.fixture
def group_adder() -> Callable[..., None]:
    """Fixture providing the add_group helper for custom structures."""
    return add_group


# =============================================================================
# Temporary Directory Fixtures
# =============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def assert_coords_close():
    """Fixture comparing coordinate arrays within a quantization tolerance."""
    def _assert_coords_close(a: np.ndarray, b: np.ndarray, tolerance: float = 0.0005):
        np.testing.assert_allclose(
            np.asarray(a, dtype=np.float64),
            np.asarray(b, dtype=np.float64),
            rtol=0,
            atol=tolerance + 1e-6,
        )
    return _assert_coords_close
