"""Exception types raised by teamflow.

Structural errors (bad documents, bad graphs) are raised to the caller and
abort the whole operation. Stream errors are recorded on the execution
session instead; the classes exist so they can be logged and attached.
"""


class TeamflowError(Exception):
    """Base class for all teamflow errors."""


class InvalidConfig(TeamflowError):
    """A team document is malformed (agents not a list, missing name, ...)."""


class ConfigNotFound(InvalidConfig):
    """A referenced team document does not exist in storage."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Team config not found: {name}")
        self.name = name


class MissingNode(TeamflowError):
    """A graph operation referenced a node id that is not in the graph."""

    def __init__(self, node_id: str, detail: str | None = None) -> None:
        message = f"Node not found: {node_id}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.node_id = node_id


class CyclicDelegation(TeamflowError):
    """A delegation edge points back at a team already being contracted.

    Never raised by the contractor; it truncates the cycle and logs this.
    """


class StreamParseError(TeamflowError):
    """One frame of the execution stream could not be parsed."""


class StreamTransportError(TeamflowError):
    """The execution stream failed at the network level or timed out."""


class SessionTerminalViolation(TeamflowError):
    """Attempted to mutate an execution session that already finished."""

    def __init__(self, session_id: str, status: str) -> None:
        super().__init__(f"Execution {session_id} is already {status}")
        self.session_id = session_id
        self.status = status


class UnknownSession(TeamflowError, KeyError):
    """No execution session with the given id is registered."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Execution not found: {session_id}")
        self.session_id = session_id

    def __str__(self) -> str:
        return self.args[0]


class BackendError(TeamflowError):
    """The execution backend answered with an error for a non-streaming call."""


class WorkspaceNotFound(TeamflowError, KeyError):
    """No saved workspace (or version of one) with the given name."""

    def __str__(self) -> str:
        return self.args[0]
