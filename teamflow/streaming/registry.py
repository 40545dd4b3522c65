"""Execution registry: owns every tracked run and routes frames into it.

The registry is an ordinary object created by whoever owns the editing
session (the server creates one per app in its lifespan handler) and
passed to the components that need it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from enum import Enum

from teamflow.errors import SessionTerminalViolation, TeamflowError, UnknownSession
from teamflow.models.execution_session import (
    ABORTED_MESSAGE,
    ExecutionSession,
    ExecutionStatus,
    TokenUsage,
)
from teamflow.models.frames import (
    STATUS_COMPLETED,
    STATUS_ERROR,
    AgentEventFrame,
    Frame,
    ParseErrorFrame,
    StatusFrame,
    UnknownFrame,
    classify_frame,
)
from teamflow.models.thread_event import ThreadEvent
from teamflow.utils.identifiers import generate_execution_id, utc_timestamp

logger = logging.getLogger(__name__)

# how much of a bad frame to echo into the log
_LOG_PREVIEW = 200

SessionObserver = Callable[[ExecutionSession | None], None]


class IngestOutcome(str, Enum):
    """What ingesting one frame did."""

    status_applied = "status_applied"  # terminal status recorded
    status_info = "status_info"  # heartbeat/processing/update, no change
    event_appended = "event_appended"
    unknown_format = "unknown_format"
    parse_error = "parse_error"
    rejected_terminal = "rejected_terminal"


class ExecutionRegistry:
    """Tracks execution sessions and the one currently in focus."""

    def __init__(
        self,
        clock: Callable[[], str] = utc_timestamp,
        id_factory: Callable[[], str] = generate_execution_id,
    ) -> None:
        self._clock = clock
        self._new_id = id_factory
        self._sessions: dict[str, ExecutionSession] = {}
        self._current_id: str | None = None
        self._observers: list[SessionObserver] = []
        # sessions with a stream consumer attached
        self._streaming: set[str] = set()
        self._lock = threading.RLock()

    # lifecycle

    def start(self, team_name: str, session_id: str | None = None) -> str:
        """Create a running session for `team_name` and focus it."""
        with self._lock:
            session_id = session_id or self._new_id()
            if session_id in self._sessions:
                raise ValueError(f"Execution already registered: {session_id}")
            session = ExecutionSession(
                id=session_id,
                team_name=team_name,
                started_at=self._clock(),
            )
            self._sessions[session_id] = session
            self._current_id = session_id
        logger.info(f"Started execution {session_id} for team '{team_name}'")
        self._notify(session)
        return session_id

    def ingest(self, session_id: str, raw_frame: str) -> IngestOutcome:
        """Parse one raw stream line and apply it to the session."""
        return self.apply(session_id, classify_frame(raw_frame))

    def apply(self, session_id: str, frame: Frame) -> IngestOutcome:
        """Apply an already classified frame to the session."""
        with self._lock:
            session = self.get(session_id)

            if isinstance(frame, ParseErrorFrame):
                logger.warning(
                    f"[{session_id}] dropped unparseable frame ({frame.error}): "
                    f"{frame.raw[:_LOG_PREVIEW]!r}"
                )
                return IngestOutcome.parse_error

            if isinstance(frame, UnknownFrame):
                logger.warning(
                    f"[{session_id}] dropped frame of unknown format ({frame.reason}): "
                    f"{frame.raw[:_LOG_PREVIEW]!r}"
                )
                return IngestOutcome.unknown_format

            if isinstance(frame, StatusFrame):
                outcome = self._apply_status(session, frame)
            else:
                outcome = self._apply_event(session, frame)

        if outcome in (IngestOutcome.status_applied, IngestOutcome.event_appended):
            self._notify(session)
        return outcome

    def _apply_status(self, session: ExecutionSession, frame: StatusFrame) -> IngestOutcome:
        if not frame.is_terminal:
            logger.debug(f"[{session.id}] status {frame.status}: {frame.message}")
            return IngestOutcome.status_info
        try:
            if frame.status == STATUS_ERROR:
                session.mark_error(frame.error_message)
                logger.info(f"[{session.id}] execution failed: {session.error}")
            elif frame.status == STATUS_COMPLETED:
                session.mark_completed()
                logger.info(f"[{session.id}] execution completed")
        except SessionTerminalViolation as exc:
            logger.warning(f"Rejected '{frame.status}' status frame: {exc}")
            return IngestOutcome.rejected_terminal
        return IngestOutcome.status_applied

    def _apply_event(self, session: ExecutionSession, frame: AgentEventFrame) -> IngestOutcome:
        event = frame.to_event(default_timestamp=self._clock())
        try:
            session.append_event(event)
        except SessionTerminalViolation as exc:
            logger.warning(f"Rejected event from '{frame.source}': {exc}")
            return IngestOutcome.rejected_terminal
        return IngestOutcome.event_appended

    def complete(self, session_id: str) -> bool:
        """Mark a still-running session completed (the stream ended cleanly)."""
        return self._finish(session_id, ExecutionStatus.completed)

    def fail(self, session_id: str, message: str) -> bool:
        """Mark a still-running session errored with `message`."""
        return self._finish(session_id, ExecutionStatus.error, message)

    def abort(self, session_id: str) -> bool:
        """Force a running session into error because the caller cancelled it."""
        return self._finish(session_id, ExecutionStatus.error, ABORTED_MESSAGE)

    def _finish(
        self,
        session_id: str,
        status: ExecutionStatus,
        message: str | None = None,
    ) -> bool:
        with self._lock:
            session = self.get(session_id)
            if session.is_terminal:
                logger.debug(f"[{session_id}] already {session.status.value}; {status.value} ignored")
                return False
            if status == ExecutionStatus.completed:
                session.mark_completed()
            else:
                session.mark_error(message)
        logger.info(f"[{session_id}] execution finished with status {status.value}")
        self._notify(session)
        return True

    def claim_stream(self, session_id: str) -> None:
        """Attach a stream consumer; a session takes only one at a time."""
        with self._lock:
            self.get(session_id)
            if session_id in self._streaming:
                raise TeamflowError(f"Execution {session_id} already has an open stream")
            self._streaming.add(session_id)

    def release_stream(self, session_id: str) -> None:
        with self._lock:
            self._streaming.discard(session_id)

    def is_streaming(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._streaming

    # queries

    def get(self, session_id: str) -> ExecutionSession:
        with self._lock:
            try:
                return self._sessions[session_id]
            except KeyError:
                raise UnknownSession(session_id) from None

    def snapshot(self, session_id: str) -> ExecutionSession:
        """Deep copy of a session, safe to read while a stream is still writing."""
        with self._lock:
            return self.get(session_id).model_copy(deep=True)

    def list(self) -> list[ExecutionSession]:
        """Copies of all sessions, newest first."""
        with self._lock:
            return [s.model_copy(deep=True) for s in reversed(self._sessions.values())]

    @property
    def current(self) -> ExecutionSession | None:
        """Copy of the focused session, if any."""
        with self._lock:
            if self._current_id is None:
                return None
            return self._sessions[self._current_id].model_copy(deep=True)

    def set_current(self, session_id: str) -> ExecutionSession:
        with self._lock:
            session = self.get(session_id)
            self._current_id = session_id
        self._notify(session)
        return session

    def agent_events(self, agent_name: str) -> list[ThreadEvent]:
        """Events of one agent in the current session."""
        session = self.current
        if session is None:
            return []
        return session.events_for(agent_name)

    def token_usage(self, session_id: str) -> TokenUsage:
        with self._lock:
            return self.get(session_id).token_usage()

    def clear(self) -> int:
        """Forget every session that has no open stream; returns how many were dropped."""
        with self._lock:
            keep = {sid: s for sid, s in self._sessions.items() if sid in self._streaming}
            dropped = len(self._sessions) - len(keep)
            self._sessions = keep
            if self._current_id not in keep:
                self._current_id = None
        logger.info(f"Cleared {dropped} execution(s), {len(keep)} still streaming")
        self._notify(self.current)
        return dropped

    # observers

    def subscribe(self, observer: SessionObserver) -> Callable[[], None]:
        """Call `observer` after every change; returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self, session: ExecutionSession | None) -> None:
        for observer in list(self._observers):
            try:
                observer(session)
            except Exception:
                logger.exception(f"Observer {observer!r} failed")

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions
