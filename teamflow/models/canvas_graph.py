"""Data model for the editable node/edge canvas.

The canvas is what the editor manipulates; it can hold several teams at
once, disconnected agents, and edges the config format cannot express.
Node `data` stays a plain dict because the editor attaches its own keys.
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field

# keys the editor adds to node data that must never reach a saved document
EDITOR_ONLY_KEYS = frozenset({"id", "_sourceConfig", "_parentTeam", "_lastSaved", "agentCount"})


class NodeKind(str, Enum):
    """Kinds of canvas node."""

    agent = "agent"
    team = "team"


class Position(BaseModel):
    x: float = 0.0
    y: float = 0.0


class GraphNode(BaseModel):
    """a node on the canvas, either an agent or a team."""

    id: str
    # the editor serializes this as "type"
    kind: NodeKind = Field(validation_alias=AliasChoices("kind", "type"))
    position: Position = Field(default_factory=Position)
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def name(self) -> str | None:
        return self.data.get("name")

    @property
    def is_team(self) -> bool:
        return self.kind == NodeKind.team

    @property
    def is_agent(self) -> bool:
        return self.kind == NodeKind.agent


class GraphEdge(BaseModel):
    """a directed edge between two nodes."""

    id: str
    source: str
    target: str


class CanvasGraph(BaseModel):
    """the full node/edge graph held by an editing session."""

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)

    def node_map(self) -> dict[str, GraphNode]:
        return {node.id: node for node in self.nodes}

    def get_node(self, node_id: str) -> GraphNode | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def team_nodes(self) -> list[GraphNode]:
        return [node for node in self.nodes if node.is_team]

    def next_anchor_x(self, gap: float = 300.0) -> float:
        """x position for a tree appended to the right of everything on the canvas."""
        max_x = max((node.position.x for node in self.nodes), default=0.0)
        return max_x + gap

    def merge(self, other: "CanvasGraph") -> "CanvasGraph":
        """Return a new graph with `other`'s nodes and edges appended."""
        return CanvasGraph(
            nodes=[*self.nodes, *other.nodes],
            edges=[*self.edges, *other.edges],
        )

    def without_node(self, node_id: str) -> "CanvasGraph":
        """Return a new graph with the node and every edge touching it removed."""
        return CanvasGraph(
            nodes=[node for node in self.nodes if node.id != node_id],
            edges=[
                edge
                for edge in self.edges
                if edge.source != node_id and edge.target != node_id
            ],
        )

    def snapshot(self) -> "CanvasGraph":
        """Deep copy, so a walk never sees edits made by another actor."""
        return self.model_copy(deep=True)
