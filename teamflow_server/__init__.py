"""HTTP surface for teamflow."""
