"""File storage for team configuration documents.

Layout under the data root:

    configs/<team name>.json    one flat TeamSpec per team

Documents reference sub-teams by name (`team_call`); the nested
`team_cfg` form only exists in memory while a tree is loaded or saved.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from teamflow.compiler.cleaning import clean_document
from teamflow.errors import ConfigNotFound, InvalidConfig
from teamflow.models.team_config import TeamSpec

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path("agent-data")
CONFIGS_SUBDIR = "configs"


class ConfigFileInfo(BaseModel):
    """Listing entry for a stored config."""

    name: str
    path: str  # relative to the data root
    size: int
    modified: str


def validate_name(name: str, what: str = "config") -> str:
    """Reject names that are empty or would escape the storage directory."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidConfig(f"{what} name must not be empty")
    if "/" in name or "\\" in name or name.startswith("."):
        raise InvalidConfig(f"invalid {what} name: {name!r}")
    return name


class ConfigStore:
    """Reads and writes team documents, one JSON file per team."""

    def __init__(self, root: str | Path = DEFAULT_DATA_DIR) -> None:
        self.root = Path(root)
        self.configs_dir = self.root / CONFIGS_SUBDIR

    def _ensure_dir(self) -> None:
        self.configs_dir.mkdir(parents=True, exist_ok=True)

    def _config_file(self, name: str) -> Path:
        name = validate_name(name.removesuffix(".json"))
        return self.configs_dir / f"{name}.json"

    def exists(self, name: str) -> bool:
        return self._config_file(name).exists()

    def list_configs(self) -> list[ConfigFileInfo]:
        """All stored configs, sorted by name."""
        self._ensure_dir()
        entries = []
        for config_file in sorted(self.configs_dir.glob("*.json")):
            stats = config_file.stat()
            entries.append(
                ConfigFileInfo(
                    name=config_file.stem,
                    path=f"{CONFIGS_SUBDIR}/{config_file.name}",
                    size=stats.st_size,
                    modified=datetime.fromtimestamp(stats.st_mtime, timezone.utc).isoformat(),
                )
            )
        return entries

    def read_config(self, name: str) -> TeamSpec:
        """Load one document as stored, without resolving its sub-teams."""
        config_file = self._config_file(name)
        if not config_file.exists():
            raise ConfigNotFound(name)
        try:
            data = json.loads(config_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise InvalidConfig(f"{config_file.name} is not valid JSON: {exc}") from exc
        return TeamSpec.from_document(data)

    def write_config(self, name: str, spec: TeamSpec | dict[str, Any]) -> Path:
        """Persist a single team; inlined sub-teams are not written."""
        if isinstance(spec, dict):
            spec = clean_document(spec)
        spec = TeamSpec.from_document(spec)
        if spec.name != name:
            logger.info(f"Team {spec.name!r} stored under {name!r}")
            spec = spec.model_copy(update={"name": name})

        document = clean_document(spec.to_document())
        config_file = self._config_file(name)
        self._ensure_dir()
        config_file.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug(f"Wrote {config_file}")
        return config_file

    def delete_config(self, name: str) -> None:
        config_file = self._config_file(name)
        if not config_file.exists():
            raise ConfigNotFound(name)
        config_file.unlink()

    def load_recursive(self, name: str) -> TeamSpec:
        """Load a team and inline every sub-team it calls, transitively.

        A missing referenced document aborts the load with ConfigNotFound.
        A team_call back to a team already on the load path stays a plain
        reference.
        """
        return self._load(name, [])

    def _load(self, name: str, path: list[str]) -> TeamSpec:
        spec = self.read_config(name)
        path = [*path, name.removesuffix(".json")]

        agents = []
        for agent in spec.agents:
            if agent.team_call is None:
                agents.append(agent.model_copy(update={"team_cfg": None}))
                continue
            if agent.team_call in path:
                logger.warning(
                    f"Team {spec.name!r}: agent {agent.name!r} calls {agent.team_call!r}, "
                    f"which is already being loaded ({' -> '.join(path)}); left unresolved"
                )
                agents.append(agent.model_copy(update={"team_cfg": None}))
                continue
            sub_spec = self._load(agent.team_call, path)
            agents.append(agent.model_copy(update={"team_cfg": sub_spec}))

        return spec.model_copy(update={"agents": agents})

    def save_tree(self, spec: TeamSpec) -> list[str]:
        """Flatten a nested team tree and write every team in it.

        Each inlined sub-team is written to its own document under the name
        its delegating agent calls it by. Sub-teams are written before the
        teams that reference them. Returns the saved names in write order.
        """
        self._check_tree(spec)
        saved: list[str] = []
        self._save_team(spec, saved)
        logger.info(f"Saved team tree {spec.name!r}: {', '.join(saved)}")
        return saved

    def _check_tree(self, spec: TeamSpec) -> None:
        # validate every name before the first write
        validate_name(spec.name, "team")
        for agent in spec.agents:
            if agent.team_cfg is not None:
                validate_name(agent.team_call or agent.team_cfg.name, "team")
                self._check_tree(agent.team_cfg)

    def _save_team(self, spec: TeamSpec, saved: list[str]) -> None:
        agents = []
        for agent in spec.agents:
            if agent.team_cfg is None:
                agents.append(agent)
                continue

            call = agent.team_call or agent.team_cfg.name
            sub_spec = agent.team_cfg
            if sub_spec.name != call:
                logger.info(f"Sub-team {sub_spec.name!r} renamed to {call!r} to match team_call")
                sub_spec = sub_spec.model_copy(update={"name": call})
            self._save_team(sub_spec, saved)
            agents.append(agent.model_copy(update={"team_call": call, "team_cfg": None}))

        if spec.name in saved:
            logger.warning(f"Team {spec.name!r} appears more than once in the tree; last body wins")
        self.write_config(spec.name, spec.model_copy(update={"agents": agents}))
        saved.append(spec.name)
