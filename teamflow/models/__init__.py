"""Core data models for teamflow."""

from teamflow.models.canvas_graph import (
    EDITOR_ONLY_KEYS,
    CanvasGraph,
    GraphEdge,
    GraphNode,
    NodeKind,
    Position,
)
from teamflow.models.execution_session import (
    ABORTED_MESSAGE,
    ExecutionSession,
    ExecutionStatus,
    TokenUsage,
)
from teamflow.models.frames import (
    AgentEventFrame,
    Frame,
    ParseErrorFrame,
    StatusFrame,
    UnknownFrame,
    classify_frame,
)
from teamflow.models.team_config import AgentSpec, TeamSpec, TeamType, ToolCallParam
from teamflow.models.thread_event import ModelsUsage, ThreadEvent, ThreadEventType
from teamflow.models.workspace import WorkspaceSnapshot, WorkspaceVersion

__all__ = [
    # Team documents
    "AgentSpec",
    "TeamSpec",
    "TeamType",
    "ToolCallParam",
    # Canvas
    "EDITOR_ONLY_KEYS",
    "CanvasGraph",
    "GraphEdge",
    "GraphNode",
    "NodeKind",
    "Position",
    # Execution tracking
    "ABORTED_MESSAGE",
    "ExecutionSession",
    "ExecutionStatus",
    "ModelsUsage",
    "ThreadEvent",
    "ThreadEventType",
    "TokenUsage",
    # Stream frames
    "AgentEventFrame",
    "Frame",
    "ParseErrorFrame",
    "StatusFrame",
    "UnknownFrame",
    "classify_frame",
    # Workspaces
    "WorkspaceSnapshot",
    "WorkspaceVersion",
]
