"""API routes proxying the backend's job list and job stop calls."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from teamflow.errors import TeamflowError
from teamflow.sdk.backend_client import BackendClient
from teamflow_server.dependencies import get_backend, http_error

router = APIRouter()


class StopJobRequest(BaseModel):
    team_name: str


@router.get("/jobs")
async def list_jobs(backend: BackendClient = Depends(get_backend)) -> list[dict]:
    """List jobs known to the execution backend."""
    try:
        return await backend.list_jobs()
    except TeamflowError as e:
        raise http_error(e) from e


@router.post("/jobs/stop")
async def stop_job(
    request: StopJobRequest,
    backend: BackendClient = Depends(get_backend),
) -> dict:
    """Stop a running backend job by team name."""
    try:
        return await backend.stop_job(request.team_name)
    except TeamflowError as e:
        raise http_error(e) from e
