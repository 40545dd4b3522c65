"""Run a team against the backend and feed its stream into the registry.

One runner task per open stream. The task owns the HTTP response; when it
is cancelled or times out the response and connection are closed by the
`async with` scopes it is suspended in.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import aclosing
from dataclasses import dataclass

import httpx

from teamflow.errors import StreamTransportError
from teamflow.models.execution_session import ExecutionSession
from teamflow.sdk.backend_client import DEFAULT_RUN_TIMEOUT, BackendClient
from teamflow.streaming.decoder import StreamFrameDecoder
from teamflow.streaming.registry import ExecutionRegistry

logger = logging.getLogger(__name__)

TIMEOUT_ERROR = "Request timeout"


@dataclass
class RunHandle:
    """A launched run: its session id and the task consuming the stream."""

    session_id: str
    task: asyncio.Task
    registry: ExecutionRegistry

    def cancel(self) -> None:
        """Stop reading and mark the session aborted right away."""
        self.task.cancel()
        self.registry.abort(self.session_id)

    @property
    def done(self) -> bool:
        return self.task.done()

    async def wait(self) -> ExecutionSession:
        """Wait for the stream to finish; a cancelled run still returns its session."""
        try:
            return await self.task
        except asyncio.CancelledError:
            return self.registry.get(self.session_id)


class TeamRunner:
    """Connects BackendClient, StreamFrameDecoder and ExecutionRegistry."""

    def __init__(
        self,
        registry: ExecutionRegistry,
        client: BackendClient,
        timeout: float = DEFAULT_RUN_TIMEOUT,
    ) -> None:
        self.registry = registry
        self.client = client
        self.timeout = timeout
        self._handles: dict[str, RunHandle] = {}

    async def run(
        self,
        team_name: str,
        content: str = "",
        full_message: bool = True,
        session_id: str | None = None,
    ) -> ExecutionSession:
        """Stream one team run to its end and return the final session.

        Stream problems never raise from here; they end up on the session
        (status "error" with a message). Cancellation aborts the session and
        is re-raised.
        """
        if session_id is None or session_id not in self.registry:
            session_id = self.registry.start(team_name, session_id)
        self.registry.claim_stream(session_id)

        decoder = StreamFrameDecoder()
        try:
            async with asyncio.timeout(self.timeout):
                chunks = self.client.stream_team_call(
                    team_name,
                    execution_id=session_id,
                    content=content,
                    full_message=full_message,
                )
                async with aclosing(chunks):
                    async for chunk in chunks:
                        for frame in decoder.feed(chunk):
                            self.registry.ingest(session_id, frame)

            tail = decoder.flush()
            if tail:
                self.registry.ingest(session_id, tail)
            # stream ended without a terminal frame
            self.registry.complete(session_id)

        except TimeoutError:
            logger.warning(f"[{session_id}] no end of stream after {self.timeout:g}s, giving up")
            if not self.registry.get(session_id).is_terminal:
                self.registry.ingest(session_id, _timeout_frame(self.timeout))

        except asyncio.CancelledError:
            logger.info(f"[{session_id}] run cancelled")
            self.registry.abort(session_id)
            raise

        except httpx.HTTPError as exc:
            error = _transport_error(exc)
            logger.warning(f"[{session_id}] {error}")
            self.registry.fail(session_id, str(error))

        except Exception as exc:
            logger.exception(f"[{session_id}] run failed")
            self.registry.fail(session_id, f"Stream failed: {type(exc).__name__}: {exc}")

        finally:
            self.registry.release_stream(session_id)

        return self.registry.get(session_id)

    def launch(
        self,
        team_name: str,
        content: str = "",
        full_message: bool = True,
    ) -> RunHandle:
        """Start a run in a background task; must be called from a running loop."""
        session_id = self.registry.start(team_name)
        task = asyncio.create_task(
            self.run(team_name, content, full_message, session_id=session_id),
            name=f"team-run-{session_id}",
        )
        handle = RunHandle(session_id=session_id, task=task, registry=self.registry)
        self._handles[session_id] = handle
        task.add_done_callback(lambda _: self._handles.pop(session_id, None))
        return handle

    def get_handle(self, session_id: str) -> RunHandle | None:
        return self._handles.get(session_id)

    def cancel(self, session_id: str) -> bool:
        """Abort a run, whether or not this runner launched it.

        Returns True if the session went from running to error.
        """
        session = self.registry.get(session_id)
        was_running = not session.is_terminal
        handle = self._handles.get(session_id)
        if handle is not None:
            handle.cancel()
        else:
            self.registry.abort(session_id)
        return was_running

    async def shutdown(self) -> None:
        """Cancel every launched run and wait for the tasks to unwind."""
        handles = list(self._handles.values())
        for handle in handles:
            handle.cancel()
        if handles:
            await asyncio.gather(*(handle.task for handle in handles), return_exceptions=True)


def _timeout_frame(timeout: float) -> str:
    return json.dumps(
        {
            "status": "error",
            "error": TIMEOUT_ERROR,
            "message": f"Team execution exceeded {timeout:g} seconds",
        }
    )


def _transport_error(exc: httpx.HTTPError) -> StreamTransportError:
    if isinstance(exc, httpx.HTTPStatusError):
        return StreamTransportError(
            f"Backend answered HTTP {exc.response.status_code}"
        )
    return StreamTransportError(f"Stream failed: {type(exc).__name__}: {exc}")
