"""Tests for rebuilding team documents from the canvas."""

import itertools
import logging

import pytest

from teamflow.compiler.contractor import GraphContractor
from teamflow.compiler.expander import GraphExpander
from teamflow.errors import InvalidConfig, MissingNode
from teamflow.models.canvas_graph import CanvasGraph, GraphEdge, GraphNode, NodeKind
from teamflow.models.team_config import TeamSpec


def _team(node_id: str, name: str, **data) -> GraphNode:
    return GraphNode(id=node_id, kind=NodeKind.team, data={"name": name, **data})


def _agent(node_id: str, name: str, **data) -> GraphNode:
    return GraphNode(id=node_id, kind=NodeKind.agent, data={"name": name, **data})


def _edges(*pairs: tuple[str, str]) -> list[GraphEdge]:
    return [GraphEdge(id=f"edge_{s}_to_{t}", source=s, target=t) for s, t in pairs]


@pytest.fixture
def contractor():
    return GraphContractor()


class TestRoundTrip:
    """expand followed by contract gives back the same document."""

    def test_nested_round_trip(self, contractor):
        """Expanding then contracting gives back the same team tree."""
        document = {
            "name": "root",
            "team_type": "tree",
            "team_prompt": "coordinate",
            "duration": -1,
            "max_turn": 4,
            "agents": [
                {"name": "planner", "model": "m1", "tools": ["plan"]},
                {
                    "name": "researcher",
                    "model": "m2",
                    "team_call": "research",
                    "team_cfg": {
                        "name": "research",
                        "team_type": "parallel",
                        "agents": [{"name": "searcher"}, {"name": "reader", "full_message": True}],
                    },
                },
                {
                    "name": "writer",
                    "force_tool_call": "publish",
                    "force_tool_args": {"text": {"type": "history_grab", "value": -1}},
                },
            ],
        }
        counter = itertools.count()
        expander = GraphExpander(id_factory=lambda kind: f"{kind}_{next(counter)}")
        result = expander.expand(document)

        rebuilt = contractor.contract(result.root_team_node_id, result.as_graph())

        expected = TeamSpec.from_document(document).model_dump(mode="json", exclude_none=True)
        assert rebuilt.model_dump(mode="json", exclude_none=True) == expected
        assert expected["max_turn"] == 4

    def test_editor_keys_stripped(self, contractor):
        """Editor-only keys never reach the document."""
        graph = CanvasGraph(
            nodes=[
                _team("t", "team", agentCount=1, _lastSaved="yesterday"),
                _agent("a", "solo", _sourceConfig="team", _parentTeam="t", id="a"),
            ],
            edges=_edges(("t", "a")),
        )
        spec = contractor.contract("t", graph)
        document = spec.model_dump(mode="json", exclude_none=True)
        for key in ("agentCount", "_lastSaved"):
            assert key not in document
        for key in ("_sourceConfig", "_parentTeam", "id"):
            assert key not in document["agents"][0]


class TestChainOrdering:
    """Agent order comes from edges, not from node order."""

    def test_chain_order_independent_of_node_list(self, contractor):
        """Agent order follows edges, not node list order."""
        graph = CanvasGraph(
            nodes=[_agent("c", "C"), _team("t", "T"), _agent("a", "A"), _agent("b", "B")],
            edges=_edges(("b", "c"), ("t", "a"), ("a", "b")),
        )
        spec = contractor.contract("t", graph)
        assert [agent.name for agent in spec.agents] == ["A", "B", "C"]

    def test_branch_first_edge_wins_rest_appended(self, contractor, caplog):
        """At a branch the first edge continues the chain and the others are appended."""
        graph = CanvasGraph(
            nodes=[_team("t", "T"), _agent("a", "A"), _agent("b", "B"), _agent("c", "C"), _agent("d", "D")],
            edges=_edges(("t", "a"), ("a", "c"), ("a", "b"), ("c", "d")),
        )
        with caplog.at_level(logging.WARNING):
            spec = contractor.contract("t", graph)
        assert [agent.name for agent in spec.agents] == ["A", "C", "D", "B"]
        assert "branches" in caplog.text

    def test_multiple_team_entries(self, contractor):
        """Several team-to-agent edges are all followed in edge order."""
        graph = CanvasGraph(
            nodes=[_team("t", "T"), _agent("a", "A"), _agent("b", "B")],
            edges=_edges(("t", "b"), ("t", "a")),
        )
        spec = contractor.contract("t", graph)
        assert [agent.name for agent in spec.agents] == ["B", "A"]


class TestOrphans:
    """Unconnected agents are never dropped."""

    def test_orphans_appended_to_root(self, contractor):
        """Unconnected agents are appended to the root team."""
        graph = CanvasGraph(
            nodes=[
                _team("t", "T"),
                _agent("a", "A"),
                _agent("x", "X"),
                _agent("y", "Y"),
                _agent("z", "Z"),
            ],
            edges=_edges(("t", "a"), ("y", "z")),
        )
        spec = contractor.contract("t", graph)
        assert [agent.name for agent in spec.agents] == ["A", "X", "Y", "Z"]

    def test_orphans_not_added_to_subteams(self, contractor):
        """Orphans only go to the root team."""
        graph = CanvasGraph(
            nodes=[
                _team("t", "T"),
                _agent("a", "A"),
                _team("s", "S"),
                _agent("b", "B"),
                _agent("o", "O"),
            ],
            edges=_edges(("t", "a"), ("a", "s"), ("s", "b")),
        )
        spec = contractor.contract("t", graph)
        assert [agent.name for agent in spec.agents] == ["A", "O"]
        assert [agent.name for agent in spec.agents[0].team_cfg.agents] == ["B"]


class TestDelegation:
    """Agent -> team edges become team_call / team_cfg."""

    def test_subteam_inlined(self, contractor):
        """A delegating agent gets the sub-team as team_call and team_cfg."""
        graph = CanvasGraph(
            nodes=[_team("t", "T"), _agent("a", "A"), _team("s", "S"), _agent("b", "B")],
            edges=_edges(("t", "a"), ("a", "s"), ("s", "b")),
        )
        spec = contractor.contract("t", graph)
        agent = spec.agents[0]
        assert agent.team_call == "S"
        assert agent.team_cfg.name == "S"
        assert [a.name for a in agent.team_cfg.agents] == ["B"]

    def test_shared_subteam_inlined_once(self, contractor):
        """A sub-team reached twice is inlined the first time only."""
        graph = CanvasGraph(
            nodes=[
                _team("t", "T"),
                _agent("a", "A"),
                _agent("b", "B"),
                _team("s", "S"),
                _agent("c", "C"),
            ],
            edges=_edges(("t", "a"), ("a", "b"), ("a", "s"), ("b", "s"), ("s", "c")),
        )
        spec = contractor.contract("t", graph)
        first, second = spec.agents
        assert first.team_cfg is not None
        assert second.team_call == "S"
        assert second.team_cfg is None

    def test_cycle_terminates(self, contractor, caplog):
        """A delegation back to an ancestor keeps the name and stops."""
        graph = CanvasGraph(
            nodes=[_team("t", "T"), _agent("a", "A"), _team("s", "S"), _agent("b", "B")],
            edges=_edges(("t", "a"), ("a", "s"), ("s", "b"), ("b", "t")),
        )
        with caplog.at_level(logging.WARNING):
            spec = contractor.contract("t", graph)
        inner = spec.agents[0].team_cfg.agents[0]
        assert inner.name == "B"
        assert inner.team_call == "T"
        assert inner.team_cfg is None
        assert "ancestor" in caplog.text

    def test_first_delegation_edge_wins(self, contractor):
        """An agent delegating to two teams keeps the first."""
        graph = CanvasGraph(
            nodes=[_team("t", "T"), _agent("a", "A"), _team("s1", "S1"), _team("s2", "S2")],
            edges=_edges(("t", "a"), ("a", "s1"), ("a", "s2")),
        )
        spec = contractor.contract("t", graph)
        assert spec.agents[0].team_call == "S1"

    def test_direct_team_edge_becomes_virtual_agent(self, contractor):
        """A team-to-team edge becomes a virtual delegating agent."""
        graph = CanvasGraph(
            nodes=[_team("t", "T"), _agent("a", "A"), _team("s", "S"), _agent("b", "B")],
            edges=_edges(("t", "a"), ("t", "s"), ("s", "b")),
        )
        spec = contractor.contract("t", graph)
        assert [agent.name for agent in spec.agents] == ["A", "team_agent_S"]
        virtual = spec.agents[1]
        assert virtual.model == "virtual"
        assert virtual.team_call == "S"
        assert virtual.team_cfg.agents[0].name == "B"


class TestFailures:
    """Test structural errors."""

    def test_root_not_a_team(self, contractor):
        """Contracting from an agent node raises MissingNode."""
        graph = CanvasGraph(nodes=[_agent("a", "A")])
        with pytest.raises(MissingNode):
            contractor.contract("a", graph)

    def test_root_missing(self, contractor):
        """An unknown root id raises MissingNode."""
        with pytest.raises(MissingNode):
            contractor.contract("nope", CanvasGraph())

    def test_dangling_edge(self, contractor):
        """An edge to an absent node raises MissingNode."""
        graph = CanvasGraph(nodes=[_team("t", "T")], edges=_edges(("t", "ghost")))
        with pytest.raises(MissingNode):
            contractor.contract("t", graph)

    def test_duplicate_agent_names(self, contractor):
        """Two agents with one name in a team are rejected."""
        graph = CanvasGraph(
            nodes=[_team("t", "T"), _agent("a", "same"), _agent("b", "same")],
            edges=_edges(("t", "a"), ("a", "b")),
        )
        with pytest.raises(InvalidConfig):
            contractor.contract("t", graph)

    def test_agent_without_name(self, contractor):
        """An agent node without a name is rejected."""
        graph = CanvasGraph(
            nodes=[_team("t", "T"), GraphNode(id="a", kind=NodeKind.agent, data={"model": "m"})],
            edges=_edges(("t", "a")),
        )
        with pytest.raises(InvalidConfig):
            contractor.contract("t", graph)
