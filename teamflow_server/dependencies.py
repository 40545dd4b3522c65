"""Request dependencies and error translation shared by the route modules."""

from fastapi import HTTPException, Request

from teamflow.errors import (
    BackendError,
    ConfigNotFound,
    InvalidConfig,
    MissingNode,
    TeamflowError,
    UnknownSession,
    WorkspaceNotFound,
)
from teamflow.sdk.backend_client import BackendClient
from teamflow.sdk.team_compiler import TeamCompiler
from teamflow.storage.config_store import ConfigStore
from teamflow.storage.workspace_store import WorkspaceStore
from teamflow.streaming.registry import ExecutionRegistry
from teamflow.streaming.runner import TeamRunner


def get_registry(request: Request) -> ExecutionRegistry:
    return request.app.state.registry


def get_runner(request: Request) -> TeamRunner:
    return request.app.state.runner


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


def get_config_store(request: Request) -> ConfigStore:
    return request.app.state.config_store


def get_workspace_store(request: Request) -> WorkspaceStore:
    return request.app.state.workspace_store


def get_compiler(request: Request) -> TeamCompiler:
    return request.app.state.compiler


def http_error(exc: TeamflowError) -> HTTPException:
    """Map a library error onto the HTTP status the client should see."""
    # ConfigNotFound is an InvalidConfig, so the 404 check comes first
    if isinstance(exc, (ConfigNotFound, MissingNode, UnknownSession, WorkspaceNotFound)):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvalidConfig):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, BackendError):
        return HTTPException(status_code=502, detail=str(exc))
    return HTTPException(status_code=409, detail=str(exc))
