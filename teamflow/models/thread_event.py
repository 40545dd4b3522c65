"""Thread events: one agent's output as reported by the execution stream."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ThreadEventType(str, Enum):
    """Types of events an agent emits during a run."""

    TextMessage = "TextMessage"
    ToolCallRequestEvent = "ToolCallRequestEvent"
    ToolCallExecutionEvent = "ToolCallExecutionEvent"
    ToolCallSummaryMessage = "ToolCallSummaryMessage"


# event types that describe a tool invocation
TOOL_EVENT_TYPES = {
    ThreadEventType.ToolCallRequestEvent,
    ThreadEventType.ToolCallExecutionEvent,
    ThreadEventType.ToolCallSummaryMessage,
}


class ModelsUsage(BaseModel):
    """Token counts reported for one model call."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None


class ThreadEvent(BaseModel):
    """A single event in an agent's thread."""

    source: str  # agent name
    type: ThreadEventType
    content: Any = None
    models_usage: ModelsUsage | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: str
