"""Analysis utilities for execution sessions."""

from teamflow.analysis.session_summary import (
    AgentTransition,
    SessionSummary,
    ToolUsage,
    summarize_session,
    timeline,
)

__all__ = [
    "AgentTransition",
    "SessionSummary",
    "ToolUsage",
    "summarize_session",
    "timeline",
]
