"""teamflow - compile agent-team canvases to team configs and track their runs."""

from teamflow.compiler import GraphContractor, GraphExpander
from teamflow.errors import (
    BackendError,
    ConfigNotFound,
    CyclicDelegation,
    InvalidConfig,
    MissingNode,
    SessionTerminalViolation,
    StreamParseError,
    StreamTransportError,
    TeamflowError,
    UnknownSession,
    WorkspaceNotFound,
)
from teamflow.models.canvas_graph import CanvasGraph, GraphEdge, GraphNode
from teamflow.models.execution_session import ExecutionSession, ExecutionStatus
from teamflow.models.team_config import AgentSpec, TeamSpec, TeamType
from teamflow.models.thread_event import ThreadEvent
from teamflow.sdk import BackendClient, TeamCompiler
from teamflow.storage import ConfigStore, WorkspaceStore
from teamflow.streaming import (
    ExecutionRegistry,
    IngestOutcome,
    StreamFrameDecoder,
    TeamRunner,
)

__all__ = [
    # Team documents
    "AgentSpec",
    "TeamSpec",
    "TeamType",
    # Canvas
    "CanvasGraph",
    "GraphEdge",
    "GraphNode",
    # Compilation
    "GraphContractor",
    "GraphExpander",
    "TeamCompiler",
    # Execution tracking
    "ExecutionRegistry",
    "ExecutionSession",
    "ExecutionStatus",
    "IngestOutcome",
    "StreamFrameDecoder",
    "TeamRunner",
    "ThreadEvent",
    # Storage and backend
    "BackendClient",
    "ConfigStore",
    "WorkspaceStore",
    # Errors
    "BackendError",
    "ConfigNotFound",
    "CyclicDelegation",
    "InvalidConfig",
    "MissingNode",
    "SessionTerminalViolation",
    "StreamParseError",
    "StreamTransportError",
    "TeamflowError",
    "UnknownSession",
    "WorkspaceNotFound",
]
