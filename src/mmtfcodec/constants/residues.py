"""
Residue vocabulary used to classify group templates.

Contains the standard amino acid and nucleotide codes, the chemical
component types that mark polymer-linking groups, and the trace atoms
retained by the reduced representation.
"""

from __future__ import annotations

from typing import Final, FrozenSet

# =============================================================================
# Standard Amino Acids
# =============================================================================

# Three-letter codes of the 20 standard amino acids
AMINO_ACIDS_3: Final[tuple[str, ...]] = (
    "ALA", "CYS", "ASP", "GLU", "PHE",
    "GLY", "HIS", "ILE", "LYS", "LEU",
    "MET", "ASN", "PRO", "GLN", "ARG",
    "SER", "THR", "VAL", "TRP", "TYR",
)

# Names reduced to a CA trace when the chemical component type is missing
STANDARD_AMINO_ACIDS: Final[FrozenSet[str]] = frozenset(AMINO_ACIDS_3) | {"UNK"}

# =============================================================================
# Nucleotides
# =============================================================================

RNA_NUCLEOTIDES: Final[tuple[str, ...]] = ("A", "C", "G", "U", "I", "N")
DNA_NUCLEOTIDES: Final[tuple[str, ...]] = ("DA", "DC", "DG", "DT", "DI", "DN")

STANDARD_NUCLEOTIDES: Final[FrozenSet[str]] = frozenset(RNA_NUCLEOTIDES + DNA_NUCLEOTIDES)

# =============================================================================
# Chemical Component Types
# =============================================================================

# Substrings of the (upper-cased) chem comp type marking linking residues,
# e.g. "L-PEPTIDE LINKING", "PEPTIDE LINKING", "D-PEPTIDE LINKING"
PEPTIDE_LINKING_TYPES: Final[tuple[str, ...]] = ("PEPTIDE LINKING",)

# e.g. "DNA LINKING", "RNA LINKING", "L-DNA LINKING"
NUCLEOTIDE_LINKING_TYPES: Final[tuple[str, ...]] = ("DNA LINKING", "RNA LINKING")

# =============================================================================
# Trace Atoms
# =============================================================================

# (atom name, element) pairs kept in the reduced representation
PROTEIN_TRACE_ATOM: Final[tuple[str, str]] = ("CA", "C")
NUCLEOTIDE_TRACE_ATOM: Final[tuple[str, str]] = ("P", "P")

# 5' terminal nucleotides frequently lack the phosphate
NUCLEOTIDE_FALLBACK_TRACE_ATOM: Final[tuple[str, str]] = ("C4'", "C")
