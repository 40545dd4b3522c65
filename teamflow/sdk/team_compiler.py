"""Load stored teams onto a canvas and save canvas teams back to storage.

so that an editor (or a script) can do the whole round trip in two calls:

    canvas, result = compiler.load("research_team", canvas, append=True)
    saved = compiler.save(result.root_team_node_id, canvas)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from teamflow.compiler.contractor import GraphContractor
from teamflow.compiler.expander import ExpansionResult, GraphExpander
from teamflow.errors import MissingNode
from teamflow.models.canvas_graph import CanvasGraph
from teamflow.models.team_config import TeamSpec
from teamflow.storage.config_store import ConfigStore

logger = logging.getLogger(__name__)

# top edge of freshly loaded trees
DEFAULT_ANCHOR_Y = 50.0
# horizontal gap between a loaded tree and the existing canvas
APPEND_GAP = 300.0


@dataclass
class SaveResult:
    """Outcome of saving one team tree."""

    team: TeamSpec
    saved: list[str] = field(default_factory=list)


class TeamCompiler:
    """Expands stored teams onto a canvas and contracts them back."""

    def __init__(
        self,
        store: ConfigStore,
        expander: GraphExpander | None = None,
        contractor: GraphContractor | None = None,
    ) -> None:
        self.store = store
        self.expander = expander or GraphExpander()
        self.contractor = contractor or GraphContractor()

    def load(
        self,
        name: str,
        canvas: CanvasGraph | None = None,
        append: bool = True,
        parent_node_id: str | None = None,
    ) -> tuple[CanvasGraph, ExpansionResult]:
        """Recursively load team `name` and place it on the canvas.

        Args:
            name: Stored team to load
            canvas: Current canvas; None starts from an empty one
            append: Keep existing nodes and place the tree to their right;
                False replaces the canvas
            parent_node_id: Existing node the loaded team hangs off (an agent
                whose team_call was just set)

        Returns:
            The new canvas and the expansion that was added to it
        """
        canvas = canvas or CanvasGraph()
        if not append:
            canvas = CanvasGraph()
        if parent_node_id is not None and canvas.get_node(parent_node_id) is None:
            raise MissingNode(parent_node_id, "parent for loaded team")

        spec = self.store.load_recursive(name)
        result = self.expander.expand(
            spec,
            anchor_x=canvas.next_anchor_x(APPEND_GAP),
            anchor_y=DEFAULT_ANCHOR_Y,
            parent_node_id=parent_node_id,
        )
        logger.info(
            f"Loaded team {name!r}: {len(result.nodes)} nodes "
            f"({'appended' if append else 'replaced canvas'})"
        )
        return canvas.merge(result.as_graph()), result

    def compile(self, root_team_node_id: str, canvas: CanvasGraph) -> TeamSpec:
        """Contract a canvas team without writing anything."""
        return self.contractor.contract(root_team_node_id, canvas)

    def save(self, root_team_node_id: str, canvas: CanvasGraph) -> SaveResult:
        """Contract the team rooted at the node and persist its whole tree.

        Contraction finishes before the first write, so a malformed graph
        never leaves half a tree on disk.
        """
        spec = self.compile(root_team_node_id, canvas)
        saved = self.store.save_tree(spec)
        return SaveResult(team=spec, saved=saved)
