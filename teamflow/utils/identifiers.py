"""ID generation and timestamp utilities."""

import uuid
from datetime import datetime, timezone


def generate_execution_id() -> str:
    """Generate a unique execution ID ("exec_" + hex UUID4)."""
    return f"exec_{uuid.uuid4().hex}"


def generate_node_id(kind: str) -> str:
    """Generate a canvas node ID prefixed with its kind ("team_..." / "agent_...")."""
    return f"{kind}_{uuid.uuid4().hex[:12]}"


def edge_id(source: str, target: str) -> str:
    """Deterministic edge ID for a source/target pair."""
    return f"edge_{source}_to_{target}"


def utc_timestamp() -> str:
    """Generate an ISO8601 UTC timestamp."""
    return datetime.now(timezone.utc).isoformat()
