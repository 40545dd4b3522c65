"""Helper functions that get basic statistics from an execution session.

Sessions store events per agent in arrival order. `timeline` interleaves
them back into one sequence by timestamp for views that need the whole
conversation.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from teamflow.models.execution_session import ExecutionSession
from teamflow.models.thread_event import ThreadEvent, ThreadEventType

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class AgentTransition:
    """Consecutive timeline events from two different agents."""

    from_agent: str
    to_agent: str
    count: int


@dataclass
class ToolUsage:
    """How often a tool was requested during a session."""

    tool_name: str
    call_count: int
    error_count: int = 0


@dataclass
class SessionSummary:
    """Summary of one execution session with basic statistics."""

    execution_id: str
    team_name: str
    status: str
    agents: list[str]
    event_count: int = 0
    events_by_agent: dict[str, int] = field(default_factory=dict)
    events_by_type: dict[str, int] = field(default_factory=dict)
    transitions: list[AgentTransition] = field(default_factory=list)
    tool_usage: list[ToolUsage] = field(default_factory=list)
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    error: str | None = None
    duration_seconds: float | None = None


def _parse_timestamp(ts: str | None) -> datetime | None:
    """Parse ISO8601 timestamp, treating naive values as UTC."""
    if not ts:
        return None
    try:
        parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def timeline(session: ExecutionSession) -> list[ThreadEvent]:
    """All events of a session in timestamp order.

    The sort is stable: events with equal (or unparseable) timestamps keep
    agent order, then arrival order.
    """
    events = [event for agent_events in session.agent_events.values() for event in agent_events]
    return sorted(events, key=lambda event: _parse_timestamp(event.timestamp) or _EPOCH)


def _tool_calls(event: ThreadEvent) -> list[dict[str, Any]]:
    """Function calls carried by a tool request/execution event."""
    if isinstance(event.content, list):
        return [item for item in event.content if isinstance(item, dict)]
    if isinstance(event.content, dict):
        return [event.content]
    return []


def summarize_session(session: ExecutionSession) -> SessionSummary:
    """Extract basic statistics from one execution session.

    - events per agent and per event type
    - tool usage counted from ToolCallRequestEvent content, errors from
      ToolCallExecutionEvent results flagged `is_error`
    - agent transitions inferred from the timeline
    - token usage and wall-clock duration
    """
    ordered = timeline(session)

    events_by_type: dict[str, int] = defaultdict(int)
    tool_calls: dict[str, int] = defaultdict(int)
    tool_errors: dict[str, int] = defaultdict(int)
    # call id -> tool name, to attribute execution errors
    call_names: dict[str, str] = {}
    transition_counts: dict[tuple[str, str], int] = defaultdict(int)

    last_agent: str | None = None
    for event in ordered:
        events_by_type[event.type.value] += 1

        if last_agent and last_agent != event.source:
            transition_counts[(last_agent, event.source)] += 1
        last_agent = event.source

        if event.type == ThreadEventType.ToolCallRequestEvent:
            for call in _tool_calls(event):
                name = call.get("name", "unknown")
                tool_calls[name] += 1
                if call.get("id"):
                    call_names[call["id"]] = name

        elif event.type == ThreadEventType.ToolCallExecutionEvent:
            for result in _tool_calls(event):
                if result.get("is_error"):
                    name = result.get("name") or call_names.get(result.get("call_id", ""), "unknown")
                    tool_errors[name] += 1

    usage = session.token_usage()

    duration = None
    started = _parse_timestamp(session.started_at)
    finished = _parse_timestamp(session.finished_at)
    if started and finished:
        duration = (finished - started).total_seconds()

    return SessionSummary(
        execution_id=session.id,
        team_name=session.team_name,
        status=session.status.value,
        agents=list(session.agent_events),
        event_count=len(ordered),
        events_by_agent={agent: len(events) for agent, events in session.agent_events.items()},
        events_by_type=dict(events_by_type),
        transitions=[
            AgentTransition(from_agent=from_agent, to_agent=to_agent, count=count)
            for (from_agent, to_agent), count in transition_counts.items()
        ],
        tool_usage=[
            ToolUsage(tool_name=name, call_count=count, error_count=tool_errors.get(name, 0))
            for name, count in tool_calls.items()
        ],
        prompt_tokens=usage.prompt_tokens,
        completion_tokens=usage.completion_tokens,
        total_tokens=usage.total_tokens,
        error=session.error,
        duration_seconds=duration,
    )
