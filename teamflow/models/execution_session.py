"""Execution session model.

One session tracks one team run: its status and the ordered events of
every agent that spoke. Once a session is completed or errored it is final
and every mutator raises SessionTerminalViolation.
"""

from enum import Enum

from pydantic import BaseModel, Field

from teamflow.errors import SessionTerminalViolation
from teamflow.models.thread_event import ThreadEvent
from teamflow.utils.identifiers import utc_timestamp

ABORTED_MESSAGE = "Execution aborted by user"
UNKNOWN_ERROR_MESSAGE = "Unknown error"


class ExecutionStatus(str, Enum):
    """Lifecycle states of a run."""

    running = "running"
    completed = "completed"
    error = "error"


class TokenUsage(BaseModel):
    """Aggregate token counts for a session."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ExecutionSession(BaseModel):
    """The tracked state of one team run."""

    id: str
    team_name: str
    started_at: str
    status: ExecutionStatus = ExecutionStatus.running
    error: str | None = None
    finished_at: str | None = None
    # agent name -> events in arrival order
    agent_events: dict[str, list[ThreadEvent]] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.status != ExecutionStatus.running

    def _ensure_running(self) -> None:
        if self.is_terminal:
            raise SessionTerminalViolation(self.id, self.status.value)

    def append_event(self, event: ThreadEvent) -> None:
        """Append an event to its source agent's log."""
        self._ensure_running()
        self.agent_events.setdefault(event.source, []).append(event)

    def mark_completed(self) -> None:
        self._ensure_running()
        self.status = ExecutionStatus.completed
        self.finished_at = utc_timestamp()

    def mark_error(self, message: str | None = None) -> None:
        self._ensure_running()
        self.status = ExecutionStatus.error
        self.error = message or UNKNOWN_ERROR_MESSAGE
        self.finished_at = utc_timestamp()

    def events_for(self, agent_name: str) -> list[ThreadEvent]:
        return list(self.agent_events.get(agent_name, []))

    @property
    def event_count(self) -> int:
        return sum(len(events) for events in self.agent_events.values())

    def token_usage(self) -> TokenUsage:
        """Sum reported token usage across every agent's events."""
        usage = TokenUsage()
        for events in self.agent_events.values():
            for event in events:
                if event.models_usage is None:
                    continue
                usage.prompt_tokens += event.models_usage.prompt_tokens or 0
                usage.completion_tokens += event.models_usage.completion_tokens or 0
        return usage
