"""Execution stream consumption: framing, ingestion and run tasks."""

from teamflow.streaming.decoder import StreamFrameDecoder
from teamflow.streaming.registry import ExecutionRegistry, IngestOutcome
from teamflow.streaming.runner import RunHandle, TeamRunner

__all__ = [
    "ExecutionRegistry",
    "IngestOutcome",
    "RunHandle",
    "StreamFrameDecoder",
    "TeamRunner",
]
