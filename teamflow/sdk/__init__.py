"""Client-facing helpers: the execution backend client and the load/save facade."""

from teamflow.sdk.backend_client import BackendClient
from teamflow.sdk.team_compiler import SaveResult, TeamCompiler

__all__ = [
    "BackendClient",
    "SaveResult",
    "TeamCompiler",
]
