"""Utility functions for teamflow."""

from teamflow.utils.identifiers import (
    edge_id,
    generate_execution_id,
    generate_node_id,
    utc_timestamp,
)

__all__ = [
    "edge_id",
    "generate_execution_id",
    "generate_node_id",
    "utc_timestamp",
]
