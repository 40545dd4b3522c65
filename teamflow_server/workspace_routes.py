"""API routes for saved canvas workspaces."""

from fastapi import APIRouter, Depends

from teamflow.errors import TeamflowError
from teamflow.models.canvas_graph import CanvasGraph
from teamflow.models.workspace import WorkspaceSnapshot, WorkspaceVersion
from teamflow.storage.workspace_store import WorkspaceStore
from teamflow_server.dependencies import get_workspace_store, http_error

router = APIRouter()


@router.get("/workspaces")
def list_workspaces(store: WorkspaceStore = Depends(get_workspace_store)) -> list[str]:
    """List workspace names."""
    return store.list_workspaces()


@router.post("/workspaces/{name}")
def save_workspace(
    name: str,
    canvas: CanvasGraph,
    store: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    """Save the canvas as the next version of a workspace."""
    try:
        snapshot = store.save(name, canvas)
    except TeamflowError as e:
        raise http_error(e) from e
    return {"name": name, "version": snapshot.version, "saved_at": snapshot.saved_at}


@router.get("/workspaces/{name}/versions")
def list_workspace_versions(
    name: str,
    store: WorkspaceStore = Depends(get_workspace_store),
) -> list[WorkspaceVersion]:
    """List versions of a workspace, newest first."""
    try:
        return store.list_versions(name)
    except TeamflowError as e:
        raise http_error(e) from e


@router.get("/workspaces/{name}/versions/{version}")
def load_workspace(
    name: str,
    version: str,
    store: WorkspaceStore = Depends(get_workspace_store),
) -> WorkspaceSnapshot:
    """Load one version of a workspace; "latest" picks the newest."""
    try:
        return store.load(name, None if version == "latest" else version)
    except TeamflowError as e:
        raise http_error(e) from e


@router.delete("/workspaces/{name}/versions/{version}")
def delete_workspace_version(
    name: str,
    version: str,
    store: WorkspaceStore = Depends(get_workspace_store),
) -> dict:
    """Delete one version of a workspace."""
    try:
        store.delete_version(name, version)
    except TeamflowError as e:
        raise http_error(e) from e
    return {"deleted": f"{name}/{version}"}


@router.delete("/workspaces/{name}")
def delete_workspace(name: str, store: WorkspaceStore = Depends(get_workspace_store)) -> dict:
    """Delete a workspace and all of its versions."""
    try:
        store.delete_workspace(name)
    except TeamflowError as e:
        raise http_error(e) from e
    return {"deleted": name}
