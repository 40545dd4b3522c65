"""Tests for execution session statistics."""

from teamflow.analysis.session_summary import summarize_session, timeline
from teamflow.models.execution_session import ExecutionSession
from teamflow.models.thread_event import ModelsUsage, ThreadEvent, ThreadEventType


def _event(source, ts, type=ThreadEventType.TextMessage, content="", usage=None):
    return ThreadEvent(source=source, type=type, content=content, models_usage=usage, timestamp=ts)


def _session() -> ExecutionSession:
    session = ExecutionSession(id="exec_1", team_name="team", started_at="2025-01-01T00:00:00+00:00")
    session.append_event(_event("planner", "2025-01-01T00:00:01+00:00", usage=ModelsUsage(prompt_tokens=10, completion_tokens=4)))
    session.append_event(
        _event(
            "planner",
            "2025-01-01T00:00:05+00:00",
            type=ThreadEventType.ToolCallRequestEvent,
            content=[{"id": "call_1", "name": "search", "arguments": "{}"}],
        )
    )
    session.append_event(_event("writer", "2025-01-01T00:00:03+00:00", usage=ModelsUsage(prompt_tokens=6, completion_tokens=2)))
    session.append_event(
        _event(
            "writer",
            "2025-01-01T00:00:06Z",
            type=ThreadEventType.ToolCallExecutionEvent,
            content=[{"call_id": "call_1", "content": "timeout", "is_error": True}],
        )
    )
    session.mark_completed()
    return session


class TestTimeline:
    """Events of all agents merged by timestamp."""

    def test_sorted_by_timestamp(self):
        """The timeline merges all agents by timestamp."""
        ordered = timeline(_session())
        assert [(e.source, e.timestamp[17:19]) for e in ordered] == [
            ("planner", "01"),
            ("writer", "03"),
            ("planner", "05"),
            ("writer", "06"),
        ]

    def test_equal_timestamps_keep_agent_then_arrival_order(self):
        """Ties keep agent order, then arrival order."""
        session = ExecutionSession(id="s", team_name="t", started_at="x")
        session.append_event(_event("a", "2025-01-01T00:00:00Z", content="a1"))
        session.append_event(_event("b", "2025-01-01T00:00:00Z", content="b1"))
        session.append_event(_event("a", "2025-01-01T00:00:00Z", content="a2"))
        assert [e.content for e in timeline(session)] == ["a1", "a2", "b1"]


class TestSummary:
    """Test summarize_session statistics."""

    def test_counts(self):
        """Events are counted per agent and per type."""
        summary = summarize_session(_session())
        assert summary.status == "completed"
        assert summary.agents == ["planner", "writer"]
        assert summary.event_count == 4
        assert summary.events_by_agent == {"planner": 2, "writer": 2}
        assert summary.events_by_type["TextMessage"] == 2

    def test_tokens(self):
        """Token totals cover every agent."""
        summary = summarize_session(_session())
        assert (summary.prompt_tokens, summary.completion_tokens, summary.total_tokens) == (16, 6, 22)

    def test_tool_usage_and_errors(self):
        """Tool calls and their errors are matched by call id."""
        summary = summarize_session(_session())
        assert len(summary.tool_usage) == 1
        usage = summary.tool_usage[0]
        assert (usage.tool_name, usage.call_count, usage.error_count) == ("search", 1, 1)

    def test_transitions(self):
        """Consecutive events of different agents count as transitions."""
        summary = summarize_session(_session())
        pairs = {(t.from_agent, t.to_agent): t.count for t in summary.transitions}
        assert pairs == {("planner", "writer"): 2, ("writer", "planner"): 1}

    def test_running_session_has_no_duration(self):
        """A running session has no duration."""
        session = ExecutionSession(id="s", team_name="t", started_at="2025-01-01T00:00:00Z")
        assert summarize_session(session).duration_seconds is None
