"""Expand a team document into canvas nodes and edges.

Layout: the team node sits at the anchor, its agents are stacked below it
one row per agent, and every inlined sub-team is expanded to the right of
the agent that delegates to it. Edges encode order (team -> first agent,
agent -> next agent) and delegation (agent -> sub-team).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from teamflow.errors import InvalidConfig, MissingNode
from teamflow.models.canvas_graph import CanvasGraph, GraphEdge, GraphNode, NodeKind, Position
from teamflow.models.team_config import TeamSpec
from teamflow.utils.identifiers import edge_id, generate_node_id

logger = logging.getLogger(__name__)

AGENT_SPACING = 150.0
SUBTEAM_OFFSET_X = 230.0
SUBTEAM_SPACING = 300.0

# informational marker on agent nodes; never read when compiling
SOURCE_CONFIG_KEY = "_sourceConfig"


class ExpansionResult(BaseModel):
    """Nodes and edges produced for one team tree."""

    nodes: list[GraphNode]
    edges: list[GraphEdge]
    root_team_node_id: str

    def as_graph(self) -> CanvasGraph:
        return CanvasGraph(nodes=list(self.nodes), edges=list(self.edges))


class GraphExpander:
    """Turns a (recursively loaded) TeamSpec into canvas nodes and edges."""

    def __init__(
        self,
        agent_spacing: float = AGENT_SPACING,
        subteam_offset_x: float = SUBTEAM_OFFSET_X,
        subteam_spacing: float = SUBTEAM_SPACING,
        id_factory: Callable[[str], str] = generate_node_id,
    ) -> None:
        self.agent_spacing = agent_spacing
        self.subteam_offset_x = subteam_offset_x
        self.subteam_spacing = subteam_spacing
        self._new_id = id_factory

    def expand(
        self,
        config: TeamSpec | dict[str, Any],
        anchor_x: float = 0.0,
        anchor_y: float = 0.0,
        parent_node_id: str | None = None,
    ) -> ExpansionResult:
        """Expand `config` with its team node at (anchor_x, anchor_y).

        If `parent_node_id` is given, an edge parent -> team is added; this is
        how a delegated sub-team is attached to an agent already on the canvas.

        Raises:
            InvalidConfig: the document (or a nested team_cfg) is malformed, or
                a produced edge is malformed.
            MissingNode: a produced edge points at a node that was not produced.
        """
        spec = TeamSpec.from_document(config)
        nodes, edges, root_id = self._expand_team(spec, anchor_x, anchor_y, parent_node_id)

        external = {parent_node_id} if parent_node_id else set()
        _validate_edges(nodes, edges, external)

        logger.debug(
            f"Expanded team '{spec.name}' into {len(nodes)} nodes and {len(edges)} edges"
        )
        return ExpansionResult(nodes=nodes, edges=edges, root_team_node_id=root_id)

    def _expand_team(
        self,
        spec: TeamSpec,
        x: float,
        y: float,
        parent_node_id: str | None,
    ) -> tuple[list[GraphNode], list[GraphEdge], str]:
        # local accumulators: a failing subtree never reaches the caller's lists
        nodes: list[GraphNode] = []
        edges: list[GraphEdge] = []

        team_id = self._new_id("team")
        team_data = spec.model_dump(mode="json", exclude={"agents"}, exclude_none=True)
        team_data["agentCount"] = len(spec.agents)
        nodes.append(
            GraphNode(id=team_id, kind=NodeKind.team, position=Position(x=x, y=y), data=team_data)
        )

        agent_nodes: list[GraphNode] = []
        for index, agent in enumerate(spec.agents):
            data = agent.model_dump(mode="json", exclude={"team_cfg"}, exclude_none=True)
            data[SOURCE_CONFIG_KEY] = spec.name
            agent_nodes.append(
                GraphNode(
                    id=self._new_id("agent"),
                    kind=NodeKind.agent,
                    position=Position(x=x, y=y + (index + 1) * self.agent_spacing),
                    data=data,
                )
            )
        nodes.extend(agent_nodes)

        if agent_nodes:
            edges.append(_edge(team_id, agent_nodes[0].id))
        for current, following in zip(agent_nodes, agent_nodes[1:]):
            edges.append(_edge(current.id, following.id))

        if parent_node_id:
            edges.append(_edge(parent_node_id, team_id))

        offset_y = 0.0
        for agent, agent_node in zip(spec.agents, agent_nodes):
            if agent.team_cfg is None:
                continue
            sub_nodes, sub_edges, _ = self._expand_team(
                agent.team_cfg,
                x + self.subteam_offset_x,
                y + self.agent_spacing + offset_y,
                agent_node.id,
            )
            nodes.extend(sub_nodes)
            edges.extend(sub_edges)
            offset_y += self.subteam_spacing

        return nodes, edges, team_id


def _edge(source: str, target: str) -> GraphEdge:
    return GraphEdge(id=edge_id(source, target), source=source, target=target)


def _validate_edges(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    external: set[str],
) -> None:
    """Reject malformed edges instead of dropping them."""
    known = {node.id for node in nodes} | external
    for edge in edges:
        if not edge.id or not edge.source or not edge.target:
            raise InvalidConfig(f"Malformed edge {edge.id!r}: empty endpoint")
        if edge.source == edge.target:
            raise InvalidConfig(f"Malformed edge {edge.id!r}: source equals target")
        for endpoint in (edge.source, edge.target):
            if endpoint not in known:
                raise MissingNode(endpoint, f"edge {edge.id}")
