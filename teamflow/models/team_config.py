"""Team configuration documents.

A TeamSpec is the unit of persistence: one `<name>.json` file per team.
While a tree is being loaded or saved, an agent may carry the full body of
the team it delegates to in `team_cfg`; that nesting never reaches disk.
"""

from __future__ import annotations

from collections.abc import Iterator
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator

from teamflow.errors import InvalidConfig

DEFAULT_AGENT_MODEL = "openai/gpt-4o-mini"


class TeamType(str, Enum):
    """How a team schedules its agents."""

    round_robin = "round_robin"
    tree = "tree"
    parallel = "parallel"


class ToolCallParam(BaseModel):
    """One argument of a forced tool call.

    `value` is passed through as-is, `history_grab` takes the message at the
    given history index, `xml_grab` extracts the content of the named tag.
    """

    type: Literal["value", "history_grab", "xml_grab"]
    value: Any


class AgentSpec(BaseModel):
    """Configuration for one agent, optionally delegating to a sub-team."""

    # unknown keys (model_info, must_tool, prompt_path, ...) are kept verbatim
    model_config = {"extra": "allow"}

    name: str
    model: str = DEFAULT_AGENT_MODEL
    tools: list[str] = Field(default_factory=list)
    prompt: str = ""
    transition_prompt: str = ""
    team_call: str | None = None
    team_cfg: TeamSpec | None = None  # transient, see module docstring
    force_tool_call: str | None = None
    force_tool_args: dict[str, ToolCallParam] | None = None
    full_message: bool = False

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("agent name must not be empty")
        return value

    @field_validator("tools")
    @classmethod
    def _dedupe_tools(cls, value: list[str]) -> list[str]:
        # ordered set: first occurrence wins
        return list(dict.fromkeys(value))

    @property
    def delegates(self) -> bool:
        return self.team_call is not None


class TeamSpec(BaseModel):
    """Persisted, ordered configuration for one team of agents."""

    model_config = {"extra": "allow"}

    name: str
    team_type: TeamType = TeamType.round_robin
    team_prompt: str = ""
    duration: int = 0  # 0 = single run, -1 = continuous, N = seconds between runs
    agents: list[AgentSpec] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("team name must not be empty")
        return value

    @field_validator("duration")
    @classmethod
    def _duration_range(cls, value: int) -> int:
        if value < -1:
            raise ValueError("duration must be -1, 0 or a positive number of seconds")
        return value

    @classmethod
    def from_document(cls, data: Any) -> TeamSpec:
        """Validate a raw JSON document, raising InvalidConfig on any problem."""
        if isinstance(data, TeamSpec):
            return data
        if not isinstance(data, dict):
            raise InvalidConfig(f"team config must be an object, got {type(data).__name__}")
        name = data.get("name")
        if not isinstance(data.get("agents", []), list):
            raise InvalidConfig(f"team {name!r}: 'agents' must be a list")
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise InvalidConfig(f"team {name!r} is malformed: {exc}") from exc

    def duplicate_agent_names(self) -> list[str]:
        """Names used by more than one agent of this team, in first-seen order."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for agent in self.agents:
            if agent.name in seen and agent.name not in duplicates:
                duplicates.append(agent.name)
            seen.add(agent.name)
        return duplicates

    def iter_teams(self) -> Iterator[TeamSpec]:
        """Yield this team and every inlined sub-team, depth first."""
        yield self
        for agent in self.agents:
            if agent.team_cfg is not None:
                yield from agent.team_cfg.iter_teams()

    def to_document(self) -> dict[str, Any]:
        """JSON-ready dict of this team alone, with no inlined sub-teams."""
        return self.model_dump(
            mode="json",
            exclude_none=True,
            exclude={"agents": {"__all__": {"team_cfg"}}},
        )


AgentSpec.model_rebuild()
