"""Saved canvas workspaces.

A workspace is a named series of canvas snapshots; each save appends a new
zero-padded version ("001", "002", ...).
"""

from pydantic import BaseModel

from teamflow.models.canvas_graph import CanvasGraph


class WorkspaceSnapshot(BaseModel):
    """one saved version of a canvas."""

    name: str
    version: str
    saved_at: str
    graph: CanvasGraph


class WorkspaceVersion(BaseModel):
    """listing entry for a saved version."""

    version: str
    saved_at: str
    node_count: int
    edge_count: int
