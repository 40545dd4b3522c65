"""API routes for tracked team executions."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from teamflow.analysis.session_summary import summarize_session, timeline
from teamflow.errors import TeamflowError
from teamflow.models.execution_session import ExecutionSession
from teamflow.models.thread_event import ThreadEvent
from teamflow.streaming.registry import ExecutionRegistry
from teamflow.streaming.runner import TeamRunner
from teamflow_server.dependencies import get_registry, get_runner, http_error

router = APIRouter()


class ExecutionMetadata(BaseModel):
    """Metadata about an execution."""

    execution_id: str
    team_name: str
    status: str
    started_at: str
    finished_at: str | None = None
    error: str | None = None
    event_count: int
    agents: list[str]


def _metadata(session: ExecutionSession) -> ExecutionMetadata:
    return ExecutionMetadata(
        execution_id=session.id,
        team_name=session.team_name,
        status=session.status.value,
        started_at=session.started_at,
        finished_at=session.finished_at,
        error=session.error,
        event_count=session.event_count,
        agents=list(session.agent_events),
    )


def _snapshot(registry: ExecutionRegistry, execution_id: str) -> ExecutionSession:
    try:
        return registry.snapshot(execution_id)
    except TeamflowError as e:
        raise http_error(e) from e


@router.get("/executions")
def list_executions(registry: ExecutionRegistry = Depends(get_registry)) -> list[ExecutionMetadata]:
    """List executions, newest first."""
    return [_metadata(session) for session in registry.list()]


@router.delete("/executions")
def clear_executions(registry: ExecutionRegistry = Depends(get_registry)) -> dict:
    """Forget every finished execution."""
    return {"cleared": registry.clear()}


@router.get("/executions/current")
def get_current_execution(registry: ExecutionRegistry = Depends(get_registry)) -> ExecutionSession:
    """Get the execution in focus."""
    current = registry.current
    if current is None:
        raise HTTPException(status_code=404, detail="No current execution")
    return current


@router.post("/executions/{execution_id}/focus")
def focus_execution(
    execution_id: str,
    registry: ExecutionRegistry = Depends(get_registry),
) -> ExecutionMetadata:
    """Make an execution the current one."""
    try:
        registry.set_current(execution_id)
    except TeamflowError as e:
        raise http_error(e) from e
    return _metadata(_snapshot(registry, execution_id))


@router.get("/executions/{execution_id}")
def get_execution(
    execution_id: str,
    registry: ExecutionRegistry = Depends(get_registry),
) -> ExecutionSession:
    """Get an execution with every agent's events."""
    return _snapshot(registry, execution_id)


@router.get("/executions/{execution_id}/events")
def get_execution_events(
    execution_id: str,
    agent: str | None = None,
    registry: ExecutionRegistry = Depends(get_registry),
) -> list[ThreadEvent]:
    """Events of one agent in arrival order, or of all agents in timestamp order."""
    session = _snapshot(registry, execution_id)
    if agent is not None:
        return session.events_for(agent)
    return timeline(session)


@router.get("/executions/{execution_id}/usage")
def get_execution_usage(
    execution_id: str,
    registry: ExecutionRegistry = Depends(get_registry),
) -> dict:
    """Token usage summed over every agent event."""
    usage = _snapshot(registry, execution_id).token_usage()
    return {
        "prompt_tokens": usage.prompt_tokens,
        "completion_tokens": usage.completion_tokens,
        "total_tokens": usage.total_tokens,
    }


@router.get("/executions/{execution_id}/summary")
def get_execution_summary(
    execution_id: str,
    registry: ExecutionRegistry = Depends(get_registry),
) -> dict:
    """Basic statistics for an execution."""
    return asdict(summarize_session(_snapshot(registry, execution_id)))


@router.post("/executions/{execution_id}/abort")
async def abort_execution(
    execution_id: str,
    runner: TeamRunner = Depends(get_runner),
) -> ExecutionMetadata:
    """Abort a running execution; finished executions are left as they are."""
    try:
        runner.cancel(execution_id)
    except TeamflowError as e:
        raise http_error(e) from e
    return _metadata(_snapshot(runner.registry, execution_id))
