"""Rebuild a team document from the canvas graph.

This is the inverse of the expander and the harder direction: the canvas
is a general graph (cycles, fan-out, stray nodes) while a TeamSpec is a
strict ordered tree. The rules:

- agent order follows the chain team -> first agent -> next agent -> ...
- an agent -> team edge is a delegation; the target team is contracted
  recursively, at most once per call (tracked in an explicit visited set)
- with several edges of the same kind, the first in edge-list order is
  canonical; extra agent targets are appended after the primary chain
- agents with no incoming edge (orphans) are appended to the root team
- nothing authored is silently dropped; nothing is inlined twice
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from pydantic import ValidationError

from teamflow.compiler.cleaning import clean_node_data
from teamflow.errors import CyclicDelegation, InvalidConfig, MissingNode
from teamflow.models.canvas_graph import CanvasGraph, GraphNode
from teamflow.models.team_config import AgentSpec, TeamSpec

logger = logging.getLogger(__name__)

VIRTUAL_AGENT_MODEL = "virtual"
VIRTUAL_AGENT_PREFIX = "team_agent_"


class _Adjacency:
    """Outgoing/incoming maps over a graph snapshot, in edge insertion order."""

    def __init__(self, graph: CanvasGraph) -> None:
        self.nodes = graph.node_map()
        self.node_order = [node.id for node in graph.nodes]
        self.outgoing: dict[str, list[str]] = {}
        self.incoming: dict[str, list[str]] = {}
        for edge in graph.edges:
            for endpoint in (edge.source, edge.target):
                if endpoint not in self.nodes:
                    raise MissingNode(endpoint, f"referenced by edge {edge.id}")
            targets = self.outgoing.setdefault(edge.source, [])
            if edge.target not in targets:
                targets.append(edge.target)
            sources = self.incoming.setdefault(edge.target, [])
            if edge.source not in sources:
                sources.append(edge.source)

    def agent_targets(self, node_id: str) -> list[GraphNode]:
        return [
            self.nodes[target]
            for target in self.outgoing.get(node_id, [])
            if self.nodes[target].is_agent
        ]

    def team_targets(self, node_id: str) -> list[GraphNode]:
        return [
            self.nodes[target]
            for target in self.outgoing.get(node_id, [])
            if self.nodes[target].is_team
        ]

    def orphan_agents(self) -> list[GraphNode]:
        """Agent nodes nothing points at, in node-list order."""
        return [
            self.nodes[node_id]
            for node_id in self.node_order
            if self.nodes[node_id].is_agent and not self.incoming.get(node_id)
        ]


@dataclass
class _ContractionState:
    """Bookkeeping threaded through one contract() call."""

    visited_teams: set[str] = field(default_factory=set)
    # team ids on the current recursion path, root first
    path: list[str] = field(default_factory=list)
    # agent node ids already placed in some team
    claimed_agents: set[str] = field(default_factory=set)


class GraphContractor:
    """Walks the canvas from a root team node and rebuilds its TeamSpec."""

    def contract(self, root_team_node_id: str, graph: CanvasGraph) -> TeamSpec:
        """Build the TeamSpec rooted at `root_team_node_id`.

        Sub-teams reached through delegation edges are inlined as `team_cfg`
        the first time they are reached; later references (including cycles
        back to an ancestor) carry `team_call` only.

        Raises:
            MissingNode: the root id is not a team node, or an edge points at
                a node that is not in the graph.
            InvalidConfig: node data does not form a valid agent or team, or
                two agents of one team share a name.
        """
        adjacency = _Adjacency(graph.snapshot())
        root = adjacency.nodes.get(root_team_node_id)
        if root is None or not root.is_team:
            raise MissingNode(root_team_node_id, "not a team node")

        state = _ContractionState()
        spec = self._contract_team(root, adjacency, state, include_orphans=True)
        logger.info(
            f"Contracted team '{spec.name}' with {len(spec.agents)} agents "
            f"({len(state.visited_teams)} teams visited)"
        )
        return spec

    def _contract_team(
        self,
        team: GraphNode,
        adjacency: _Adjacency,
        state: _ContractionState,
        include_orphans: bool,
    ) -> TeamSpec:
        state.visited_teams.add(team.id)
        state.path.append(team.id)
        depth = len(state.path) - 1
        logger.debug(f"{'  ' * depth}Contracting team node {team.id} ({team.name!r})")
        try:
            ordered = self._order_agents(team, adjacency, state, include_orphans)
            agents = [self._contract_agent(node, adjacency, state) for node in ordered]
            agents.extend(self._direct_subteam_agents(team, agents, adjacency, state))
            return self._assemble(team, agents)
        finally:
            state.path.pop()

    def _order_agents(
        self,
        team: GraphNode,
        adjacency: _Adjacency,
        state: _ContractionState,
        include_orphans: bool,
    ) -> list[GraphNode]:
        entries = adjacency.agent_targets(team.id)
        if len(entries) > 1:
            logger.warning(
                f"Team {team.name!r} has {len(entries)} entry agents; "
                f"'{entries[0].name}' starts the chain, the rest are appended"
            )

        ordered: list[GraphNode] = []
        pending: deque[GraphNode] = deque(entries)
        self._drain(pending, adjacency, state, ordered)

        if include_orphans:
            orphans = [node for node in adjacency.orphan_agents() if node.id not in state.claimed_agents]
            if orphans:
                logger.debug(f"Appending {len(orphans)} unconnected agent(s) to {team.name!r}")
            pending.extend(orphans)
            self._drain(pending, adjacency, state, ordered)

        return ordered

    def _drain(
        self,
        pending: deque[GraphNode],
        adjacency: _Adjacency,
        state: _ContractionState,
        ordered: list[GraphNode],
    ) -> None:
        """Walk a chain from every pending head; branches found on the way are queued."""
        while pending:
            current: GraphNode | None = pending.popleft()
            while current is not None and current.id not in state.claimed_agents:
                state.claimed_agents.add(current.id)
                ordered.append(current)

                following = adjacency.agent_targets(current.id)
                if len(following) > 1:
                    logger.warning(
                        f"Agent {current.name!r} branches to {len(following)} agents; "
                        f"following '{following[0].name}', appending the rest"
                    )
                    pending.extend(following[1:])
                current = following[0] if following else None

    def _contract_agent(
        self,
        node: GraphNode,
        adjacency: _Adjacency,
        state: _ContractionState,
    ) -> AgentSpec:
        data = clean_node_data(node.data)
        data.pop("team_cfg", None)
        try:
            agent = AgentSpec.model_validate(data)
        except ValidationError as exc:
            raise InvalidConfig(f"Agent node {node.id} is malformed: {exc}") from exc

        teams = adjacency.team_targets(node.id)
        if not teams:
            return agent
        if len(teams) > 1:
            logger.warning(
                f"Agent {agent.name!r} delegates to {len(teams)} teams; "
                f"using {teams[0].name!r}, ignoring the rest"
            )

        sub_team = teams[0]
        sub_name = _team_name(sub_team)
        if sub_team.id not in state.visited_teams:
            sub_spec = self._contract_team(sub_team, adjacency, state, include_orphans=False)
            return agent.model_copy(update={"team_call": sub_name, "team_cfg": sub_spec})

        if sub_team.id in state.path:
            cycle = CyclicDelegation(
                f"Agent {agent.name!r} delegates back to ancestor team {sub_name!r}; "
                f"keeping the reference by name only"
            )
            logger.warning(str(cycle))
        else:
            logger.debug(f"Team {sub_name!r} already contracted; {agent.name!r} references it by name")
        return agent.model_copy(update={"team_call": sub_name, "team_cfg": None})

    def _direct_subteam_agents(
        self,
        team: GraphNode,
        agents: list[AgentSpec],
        adjacency: _Adjacency,
        state: _ContractionState,
    ) -> list[AgentSpec]:
        """Team -> team edges become synthetic agents that delegate to the sub-team."""
        referenced = {agent.team_call for agent in agents if agent.team_call}
        extra: list[AgentSpec] = []
        for sub_team in adjacency.team_targets(team.id):
            sub_name = _team_name(sub_team)
            if sub_name in referenced:
                continue
            if sub_team.id in state.visited_teams:
                logger.warning(
                    f"Team {team.name!r} links directly to already visited team {sub_name!r}; skipped"
                )
                continue
            sub_spec = self._contract_team(sub_team, adjacency, state, include_orphans=False)
            extra.append(
                AgentSpec(
                    name=f"{VIRTUAL_AGENT_PREFIX}{sub_name}",
                    model=VIRTUAL_AGENT_MODEL,
                    team_call=sub_name,
                    team_cfg=sub_spec,
                )
            )
            referenced.add(sub_name)
        return extra

    def _assemble(self, team: GraphNode, agents: list[AgentSpec]) -> TeamSpec:
        data = clean_node_data(team.data)
        data["agents"] = []
        try:
            spec = TeamSpec.model_validate(data)
        except ValidationError as exc:
            raise InvalidConfig(f"Team node {team.id} is malformed: {exc}") from exc

        spec = spec.model_copy(update={"agents": agents})
        duplicates = spec.duplicate_agent_names()
        if duplicates:
            raise InvalidConfig(
                f"Team {spec.name!r} has duplicate agent names: {', '.join(duplicates)}"
            )
        return spec


def _team_name(node: GraphNode) -> str:
    name = node.name
    if not isinstance(name, str) or not name.strip():
        raise InvalidConfig(f"Team node {node.id} has no name")
    return name
