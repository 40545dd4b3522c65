"""API routes that translate between team configs and the editor canvas."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from teamflow.errors import MissingNode, TeamflowError
from teamflow.models.canvas_graph import CanvasGraph
from teamflow.sdk.team_compiler import APPEND_GAP, DEFAULT_ANCHOR_Y, TeamCompiler
from teamflow_server.dependencies import get_compiler, http_error

router = APIRouter()


class ExpandRequest(BaseModel):
    """Request body for placing a team on the canvas.

    Give either `name` (a stored team, loaded recursively) or `config`
    (an already nested document).
    """

    name: str | None = None
    config: dict[str, Any] | None = None
    canvas: CanvasGraph = Field(default_factory=CanvasGraph)
    append: bool = True
    parent_node_id: str | None = None


class ExpandResponse(BaseModel):
    canvas: CanvasGraph
    root_team_node_id: str
    added_nodes: int
    added_edges: int


class ContractRequest(BaseModel):
    """Request body for compiling a canvas team back into a config."""

    root_team_node_id: str
    canvas: CanvasGraph
    save: bool = False


@router.post("/graph/expand")
def expand_graph(
    request: ExpandRequest,
    compiler: TeamCompiler = Depends(get_compiler),
) -> ExpandResponse:
    """Expand a team config into nodes and edges on the given canvas."""
    if (request.name is None) == (request.config is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of 'name' or 'config'")

    try:
        if request.name is not None:
            canvas, result = compiler.load(
                request.name,
                request.canvas,
                append=request.append,
                parent_node_id=request.parent_node_id,
            )
        else:
            base = request.canvas if request.append else CanvasGraph()
            if request.parent_node_id and base.get_node(request.parent_node_id) is None:
                raise MissingNode(request.parent_node_id, "parent for expanded team")
            result = compiler.expander.expand(
                request.config,
                anchor_x=base.next_anchor_x(APPEND_GAP),
                anchor_y=DEFAULT_ANCHOR_Y,
                parent_node_id=request.parent_node_id,
            )
            canvas = base.merge(result.as_graph())
    except TeamflowError as e:
        raise http_error(e) from e

    return ExpandResponse(
        canvas=canvas,
        root_team_node_id=result.root_team_node_id,
        added_nodes=len(result.nodes),
        added_edges=len(result.edges),
    )


@router.post("/graph/contract")
def contract_graph(
    request: ContractRequest,
    compiler: TeamCompiler = Depends(get_compiler),
) -> dict:
    """Compile the team rooted at a canvas node; optionally save the whole tree."""
    try:
        if request.save:
            result = compiler.save(request.root_team_node_id, request.canvas)
            team, saved = result.team, result.saved
        else:
            team, saved = compiler.compile(request.root_team_node_id, request.canvas), []
    except TeamflowError as e:
        raise http_error(e) from e

    return {
        "team": team.model_dump(mode="json", exclude_none=True),
        "saved": saved,
    }
