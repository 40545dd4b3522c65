"""Tests for the execution registry."""

import json
import logging

import pytest

from teamflow.errors import TeamflowError, UnknownSession
from teamflow.models.execution_session import ABORTED_MESSAGE, ExecutionStatus
from teamflow.streaming.registry import ExecutionRegistry, IngestOutcome


def _frame(**data) -> str:
    return json.dumps(data)


def _text(source: str, content: str = "hi", **extra) -> str:
    return _frame(source=source, type="TextMessage", content=content, **extra)


@pytest.fixture
def registry():
    ids = iter(f"exec_{i}" for i in range(1, 100))
    return ExecutionRegistry(clock=lambda: "2025-01-01T00:00:00+00:00", id_factory=lambda: next(ids))


class TestLifecycle:
    """Test starting, focusing and listing sessions."""

    def test_start_creates_running_current_session(self, registry):
        """A new session starts running and becomes the current one."""
        session_id = registry.start("team")
        session = registry.get(session_id)
        assert session.status == ExecutionStatus.running
        assert session.team_name == "team"
        assert registry.current.id == session_id

    def test_list_newest_first(self, registry):
        """Sessions are listed newest first."""
        first = registry.start("a")
        second = registry.start("b")
        assert [s.id for s in registry.list()] == [second, first]

    def test_set_current(self, registry):
        """Focusing a session makes it current."""
        first = registry.start("a")
        registry.start("b")
        registry.set_current(first)
        assert registry.current.id == first

    def test_unknown_session(self, registry):
        """Unknown ids raise UnknownSession, which is a KeyError."""
        with pytest.raises(UnknownSession):
            registry.get("missing")
        with pytest.raises(KeyError):
            registry.ingest("missing", _frame(status="completed"))

    def test_duplicate_start_rejected(self, registry):
        """Starting an id that already exists is rejected."""
        registry.start("a", session_id="fixed")
        with pytest.raises(ValueError):
            registry.start("a", session_id="fixed")

    def test_clear(self, registry):
        """Clearing drops every idle session and the focus."""
        registry.start("a")
        registry.start("b")
        assert registry.clear() == 2
        assert registry.list() == []
        assert registry.current is None

    def test_list_and_current_are_copies(self, registry):
        """Listed and current sessions are copies, unaffected by later frames."""
        session_id = registry.start("team")
        listed = registry.list()[0]
        current = registry.current
        assert listed is not registry.get(session_id)
        assert current is not registry.get(session_id)

        registry.ingest(session_id, _text("late"))
        assert listed.agent_events == {}
        assert current.agent_events == {}
        assert registry.get(session_id).event_count == 1

    def test_clear_keeps_streaming_sessions(self, registry):
        """Sessions with an open stream survive a clear."""
        done = registry.start("a")
        live = registry.start("b")
        registry.claim_stream(live)
        registry.clear()
        assert live in registry
        assert done not in registry


class TestIngest:
    """Test frame dispatch."""

    def test_events_appended_per_agent_in_order(self, registry):
        """Events are grouped per agent in arrival order."""
        session_id = registry.start("team")
        for content in ("one", "two"):
            assert registry.ingest(session_id, _text("a", content)) == IngestOutcome.event_appended
        registry.ingest(session_id, _text("b", "three"))
        session = registry.get(session_id)
        assert [e.content for e in session.events_for("a")] == ["one", "two"]
        assert [e.content for e in session.events_for("b")] == ["three"]

    def test_event_timestamp_defaults_to_ingest_time(self, registry):
        """Events without a timestamp get the ingest time."""
        session_id = registry.start("team")
        registry.ingest(session_id, _text("a"))
        registry.ingest(session_id, _text("a", timestamp="2030-05-05T00:00:00Z"))
        events = registry.get(session_id).events_for("a")
        assert events[0].timestamp == "2025-01-01T00:00:00+00:00"
        assert events[1].timestamp == "2030-05-05T00:00:00Z"

    def test_informational_status_does_not_mutate(self, registry):
        """Heartbeat, processing and update frames leave the session running."""
        session_id = registry.start("team")
        for status in ("heartbeat", "processing", "update"):
            assert registry.ingest(session_id, _frame(status=status)) == IngestOutcome.status_info
        assert registry.get(session_id).status == ExecutionStatus.running

    def test_completed(self, registry):
        """A completed frame ends the session."""
        session_id = registry.start("team")
        assert registry.ingest(session_id, _frame(status="completed")) == IngestOutcome.status_applied
        assert registry.get(session_id).status == ExecutionStatus.completed

    def test_error_carries_message(self, registry):
        """An error frame records its message."""
        session_id = registry.start("team")
        registry.ingest(session_id, _frame(status="error", message="tool crashed"))
        session = registry.get(session_id)
        assert session.status == ExecutionStatus.error
        assert session.error == "tool crashed"

    def test_null_metadata_accepted(self, registry):
        """An event frame with null metadata is stored with empty metadata."""
        session_id = registry.start("team")
        assert registry.ingest(session_id, _text("a", metadata=None)) == IngestOutcome.event_appended
        assert registry.get(session_id).events_for("a")[0].metadata == {}

    def test_bad_frames_dropped_without_error(self, registry, caplog):
        """Malformed and unknown frames are dropped and logged."""
        session_id = registry.start("team")
        with caplog.at_level(logging.WARNING):
            assert registry.ingest(session_id, "{not json") == IngestOutcome.parse_error
            assert registry.ingest(session_id, _frame(foo="bar")) == IngestOutcome.unknown_format
        session = registry.get(session_id)
        assert session.status == ExecutionStatus.running
        assert session.event_count == 0
        assert "unparseable" in caplog.text


class TestTerminalImmutability:
    """Nothing changes a session once it is completed or errored."""

    def test_frames_after_completion_rejected(self, registry, caplog):
        """Events and status frames after completion change nothing."""
        session_id = registry.start("team")
        registry.ingest(session_id, _text("a"))
        registry.ingest(session_id, _frame(status="completed"))
        with caplog.at_level(logging.WARNING):
            assert registry.ingest(session_id, _text("a")) == IngestOutcome.rejected_terminal
            assert registry.ingest(session_id, _frame(status="error", message="late")) == (
                IngestOutcome.rejected_terminal
            )
        session = registry.get(session_id)
        assert session.status == ExecutionStatus.completed
        assert session.error is None
        assert session.event_count == 1

    def test_abort_running(self, registry):
        """Aborting a running session marks it errored."""
        session_id = registry.start("team")
        assert registry.abort(session_id) is True
        session = registry.get(session_id)
        assert session.status == ExecutionStatus.error
        assert session.error == ABORTED_MESSAGE

    def test_abort_after_completion_is_noop(self, registry):
        """Aborting a finished session keeps its status."""
        session_id = registry.start("team")
        registry.complete(session_id)
        assert registry.abort(session_id) is False
        assert registry.get(session_id).status == ExecutionStatus.completed

    def test_fail_after_error_keeps_first_message(self, registry):
        """The first error message wins."""
        session_id = registry.start("team")
        registry.fail(session_id, "first")
        registry.fail(session_id, "second")
        assert registry.get(session_id).error == "first"


class TestTokenAccounting:
    """Token usage is summed over every event of every agent."""

    def test_usage_summed(self, registry):
        """Token usage adds up across agents and skips events without usage."""
        session_id = registry.start("team")
        registry.ingest(
            session_id,
            _text("a", models_usage={"prompt_tokens": 10, "completion_tokens": 5}),
        )
        registry.ingest(
            session_id,
            _text("b", models_usage={"prompt_tokens": 7, "completion_tokens": 3}),
        )
        registry.ingest(session_id, _text("a"))
        usage = registry.token_usage(session_id)
        assert (usage.prompt_tokens, usage.completion_tokens) == (17, 8)
        assert usage.total_tokens == 25


class TestStreamsAndObservers:
    """Test stream claims and change notifications."""

    def test_second_stream_rejected(self, registry):
        """Only one stream may be open per session."""
        session_id = registry.start("team")
        registry.claim_stream(session_id)
        with pytest.raises(TeamflowError):
            registry.claim_stream(session_id)
        registry.release_stream(session_id)
        registry.claim_stream(session_id)

    def test_observer_notified_and_unsubscribed(self, registry):
        """Observers see every change until they unsubscribe."""
        seen = []
        unsubscribe = registry.subscribe(lambda session: seen.append(session.status if session else None))
        session_id = registry.start("team")
        registry.ingest(session_id, _frame(status="heartbeat"))
        registry.ingest(session_id, _text("a"))
        registry.ingest(session_id, _frame(status="completed"))
        unsubscribe()
        registry.start("other")
        assert seen == [ExecutionStatus.running, ExecutionStatus.running, ExecutionStatus.completed]

    def test_failing_observer_is_logged_and_skipped(self, registry, caplog):
        """An observer that raises does not block ingestion or later observers."""
        seen = []

        def broken(session):
            raise RuntimeError("observer blew up")

        registry.subscribe(broken)
        registry.subscribe(seen.append)
        session_id = registry.start("team")
        with caplog.at_level(logging.ERROR):
            assert registry.ingest(session_id, _text("a")) == IngestOutcome.event_appended
        assert registry.get(session_id).event_count == 1
        assert len(seen) == 2
        assert "observer blew up" in caplog.text

    def test_agent_events_of_current_session(self, registry):
        """Agent events come from the current session."""
        first = registry.start("a")
        registry.ingest(first, _text("writer", "from first"))
        second = registry.start("b")
        registry.ingest(second, _text("writer", "from second"))
        assert [e.content for e in registry.agent_events("writer")] == ["from second"]
        registry.set_current(first)
        assert [e.content for e in registry.agent_events("writer")] == ["from first"]
