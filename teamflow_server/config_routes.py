"""API routes for stored team configurations."""

from typing import Any

from fastapi import APIRouter, Body, Depends

from teamflow.compiler.cleaning import clean_document
from teamflow.errors import TeamflowError
from teamflow.models.team_config import TeamSpec
from teamflow.storage.config_store import ConfigFileInfo, ConfigStore
from teamflow_server.dependencies import get_config_store, http_error

router = APIRouter()


@router.get("/configs")
def list_configs(store: ConfigStore = Depends(get_config_store)) -> list[ConfigFileInfo]:
    """List stored team configs."""
    return store.list_configs()


@router.get("/configs/{name}")
def get_config(
    name: str,
    recursive: bool = False,
    store: ConfigStore = Depends(get_config_store),
) -> dict[str, Any]:
    """Get one team config; with recursive=true every team_call is inlined as team_cfg."""
    try:
        if recursive:
            return store.load_recursive(name).model_dump(mode="json", exclude_none=True)
        return store.read_config(name).to_document()
    except TeamflowError as e:
        raise http_error(e) from e


@router.post("/configs")
def save_config(
    document: dict[str, Any] = Body(...),
    store: ConfigStore = Depends(get_config_store),
) -> dict:
    """Save a team config; nested team_cfg bodies are written as their own configs."""
    try:
        spec = TeamSpec.from_document(clean_document(document))
        saved = store.save_tree(spec)
    except TeamflowError as e:
        raise http_error(e) from e
    return {"saved": saved}


@router.delete("/configs/{name}")
def delete_config(name: str, store: ConfigStore = Depends(get_config_store)) -> dict:
    """Delete a stored team config."""
    try:
        store.delete_config(name)
    except TeamflowError as e:
        raise http_error(e) from e
    return {"deleted": name}
