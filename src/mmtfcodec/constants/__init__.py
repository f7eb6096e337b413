"""Residue and trace-atom constants."""
