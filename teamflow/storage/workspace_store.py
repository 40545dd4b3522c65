"""Versioned canvas snapshots.

Layout under the data root:

    workspace/<name>/001.json, 002.json, ...

Every save writes the next version; nothing is overwritten.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from pydantic import ValidationError

from teamflow.errors import InvalidConfig, WorkspaceNotFound
from teamflow.models.canvas_graph import CanvasGraph
from teamflow.models.workspace import WorkspaceSnapshot, WorkspaceVersion
from teamflow.storage.config_store import DEFAULT_DATA_DIR, validate_name
from teamflow.utils.identifiers import utc_timestamp

logger = logging.getLogger(__name__)

WORKSPACE_SUBDIR = "workspace"
VERSION_WIDTH = 3


class WorkspaceStore:
    """Saves and restores named canvas snapshots."""

    def __init__(self, root: str | Path = DEFAULT_DATA_DIR) -> None:
        self.root = Path(root)
        self.workspace_dir = self.root / WORKSPACE_SUBDIR

    def _dir(self, name: str) -> Path:
        return self.workspace_dir / validate_name(name, "workspace")

    def _version_file(self, name: str, version: str) -> Path:
        if not version.isdigit():
            raise InvalidConfig(f"invalid workspace version: {version!r}")
        return self._dir(name) / f"{version}.json"

    def _version_numbers(self, name: str) -> list[int]:
        directory = self._dir(name)
        if not directory.is_dir():
            return []
        return sorted(int(path.stem) for path in directory.glob("*.json") if path.stem.isdigit())

    def save(self, name: str, graph: CanvasGraph) -> WorkspaceSnapshot:
        """Write `graph` as the next version of workspace `name`."""
        numbers = self._version_numbers(name)
        version = str((numbers[-1] if numbers else 0) + 1).zfill(VERSION_WIDTH)
        snapshot = WorkspaceSnapshot(
            name=name,
            version=version,
            saved_at=utc_timestamp(),
            graph=graph,
        )
        version_file = self._version_file(name, version)
        version_file.parent.mkdir(parents=True, exist_ok=True)
        version_file.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        logger.info(
            f"Saved workspace {name!r} version {version} "
            f"({len(graph.nodes)} nodes, {len(graph.edges)} edges)"
        )
        return snapshot

    def list_workspaces(self) -> list[str]:
        if not self.workspace_dir.is_dir():
            return []
        return sorted(path.name for path in self.workspace_dir.iterdir() if path.is_dir())

    def list_versions(self, name: str) -> list[WorkspaceVersion]:
        """Versions of a workspace, newest first; empty if it does not exist."""
        versions = []
        for number in reversed(self._version_numbers(name)):
            snapshot = self.load(name, str(number).zfill(VERSION_WIDTH))
            versions.append(
                WorkspaceVersion(
                    version=snapshot.version,
                    saved_at=snapshot.saved_at,
                    node_count=len(snapshot.graph.nodes),
                    edge_count=len(snapshot.graph.edges),
                )
            )
        return versions

    def load(self, name: str, version: str | None = None) -> WorkspaceSnapshot:
        """Load one version, or the latest when `version` is None."""
        if version is None:
            numbers = self._version_numbers(name)
            if not numbers:
                raise WorkspaceNotFound(f"Workspace not found: {name}")
            version = str(numbers[-1]).zfill(VERSION_WIDTH)

        version_file = self._version_file(name, version)
        if not version_file.exists():
            raise WorkspaceNotFound(f"Workspace version not found: {name}/{version}")
        try:
            return WorkspaceSnapshot.model_validate_json(version_file.read_text(encoding="utf-8"))
        except ValidationError as exc:
            raise InvalidConfig(f"Workspace {name}/{version} is corrupt: {exc}") from exc

    def delete_version(self, name: str, version: str) -> None:
        version_file = self._version_file(name, version)
        if not version_file.exists():
            raise WorkspaceNotFound(f"Workspace version not found: {name}/{version}")
        version_file.unlink()
        logger.info(f"Deleted workspace {name!r} version {version}")

    def delete_workspace(self, name: str) -> None:
        directory = self._dir(name)
        if not directory.is_dir():
            raise WorkspaceNotFound(f"Workspace not found: {name}")
        shutil.rmtree(directory)
        logger.info(f"Deleted workspace {name!r}")
