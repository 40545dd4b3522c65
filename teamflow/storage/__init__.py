"""File-backed storage for team documents and canvas workspaces."""

from teamflow.storage.config_store import ConfigFileInfo, ConfigStore
from teamflow.storage.workspace_store import WorkspaceStore

__all__ = [
    "ConfigFileInfo",
    "ConfigStore",
    "WorkspaceStore",
]
