"""API route that starts a team run on the execution backend.

The run continues in a background task after the response is sent; poll
/api/executions/{execution_id} for its events and status.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from teamflow.streaming.runner import TeamRunner
from teamflow_server.dependencies import get_runner

router = APIRouter()


class TeamCallRequest(BaseModel):
    """Request body for running a team."""

    team_name: str
    content: str = ""
    full_message: bool = True


class TeamCallResponse(BaseModel):
    execution_id: str
    team_name: str
    status: str


@router.post("/team/call")
async def call_team(
    request: TeamCallRequest,
    runner: TeamRunner = Depends(get_runner),
) -> TeamCallResponse:
    """Launch a team run and return its execution id right away."""
    handle = runner.launch(
        request.team_name,
        content=request.content,
        full_message=request.full_message,
    )
    return TeamCallResponse(
        execution_id=handle.session_id,
        team_name=request.team_name,
        status="running",
    )
