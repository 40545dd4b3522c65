"""Execution stream frames.

Every line of the execution stream is classified exactly once, at the
parse boundary, into one of four shapes. Ingestion then dispatches on the
frame type instead of probing raw dict keys.

Wire shapes:
    status frame:  {"status": "heartbeat"|"processing"|"update"|"completed"|"error",
                    "message"?: str}
    agent event:   {"source": str, "type": <ThreadEventType>, "content": any,
                    "models_usage"?: {...}, "metadata"?: {...}, "timestamp"?: str}
"""

import json
from typing import Any, ClassVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from teamflow.models.execution_session import UNKNOWN_ERROR_MESSAGE
from teamflow.models.thread_event import ModelsUsage, ThreadEvent, ThreadEventType

STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"
TERMINAL_STATUSES = {STATUS_COMPLETED, STATUS_ERROR}


class StatusFrame(BaseModel):
    """A control frame reporting run status."""

    # error frames from proxies carry error/details/processingStats
    model_config = {"extra": "allow"}

    kind: ClassVar[str] = "status"

    status: str
    message: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def error_message(self) -> str:
        extra = self.model_extra or {}
        return str(self.message or extra.get("error") or UNKNOWN_ERROR_MESSAGE)


class AgentEventFrame(BaseModel):
    """A data frame carrying one agent event."""

    kind: ClassVar[str] = "agent_event"

    source: str
    type: ThreadEventType
    content: Any = None
    models_usage: ModelsUsage | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: str | None = None

    @field_validator("metadata", mode="before")
    @classmethod
    def _null_metadata(cls, value: Any) -> Any:
        return {} if value is None else value

    def to_event(self, default_timestamp: str) -> ThreadEvent:
        return ThreadEvent(
            source=self.source,
            type=self.type,
            content=self.content,
            models_usage=self.models_usage,
            metadata=self.metadata,
            timestamp=self.timestamp or default_timestamp,
        )


class UnknownFrame(BaseModel):
    """Valid JSON that matches neither frame shape."""

    kind: ClassVar[str] = "unknown_format"

    raw: str
    reason: str


class ParseErrorFrame(BaseModel):
    """A line that is not valid JSON."""

    kind: ClassVar[str] = "parse_error"

    raw: str
    error: str


Frame = StatusFrame | AgentEventFrame | UnknownFrame | ParseErrorFrame


def classify_frame(raw: str) -> Frame:
    """Parse one line of the stream and decide what kind of frame it is."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        return ParseErrorFrame(raw=raw, error=str(exc))

    if not isinstance(data, dict):
        return UnknownFrame(raw=raw, reason="frame is not a JSON object")

    if data.get("status"):
        try:
            return StatusFrame.model_validate(data)
        except ValidationError as exc:
            return UnknownFrame(raw=raw, reason=f"invalid status frame: {exc.error_count()} error(s)")

    if data.get("source") and data.get("type"):
        try:
            return AgentEventFrame.model_validate(data)
        except ValidationError as exc:
            return UnknownFrame(raw=raw, reason=f"invalid agent event: {exc.errors()[0]['msg']}")

    return UnknownFrame(raw=raw, reason="frame has neither 'status' nor 'source' and 'type'")
