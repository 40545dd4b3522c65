"""Client for the agent execution backend.

The backend runs teams and reports progress as newline-delimited JSON.
Only the transport lives here; framing and ingestion are done by the
streaming package.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from teamflow.errors import BackendError

logger = logging.getLogger(__name__)

DEFAULT_BACKEND_URL = "http://localhost:8010"
DEFAULT_RUN_TIMEOUT = 600.0


class BackendClient:
    """Talks to the execution backend over HTTP with a bearer token."""

    def __init__(
        self,
        base_url: str = DEFAULT_BACKEND_URL,
        api_token: str | None = None,
        timeout: float = DEFAULT_RUN_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            base_url: Base URL of the execution backend
            api_token: Bearer token sent with every request
            timeout: Per-request timeout in seconds; the run wall clock is
                enforced separately by the runner
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.api_token = api_token
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_token:
            headers["Authorization"] = f"Bearer {self.api_token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers(),
            timeout=self.timeout,
            transport=self._transport,
        )

    async def stream_team_call(
        self,
        team_name: str,
        execution_id: str,
        content: str = "",
        full_message: bool = True,
    ) -> AsyncIterator[bytes]:
        """Start a team run and yield the raw response body as it arrives.

        Raises httpx errors (including HTTPStatusError for non-2xx answers);
        the caller decides how to record them.
        """
        payload = {
            "team_name": team_name,
            "content": content,
            "full_message": full_message,
            "execution_id": execution_id,
        }
        async with self._client() as client:
            async with client.stream("POST", "/api/tools/team/call_stream", json=payload) as response:
                response.raise_for_status()
                logger.debug(f"Stream opened for {team_name} ({execution_id})")
                async for chunk in response.aiter_bytes():
                    yield chunk

    async def list_jobs(self) -> list[dict[str, Any]]:
        """Jobs currently known to the backend."""
        data = await self._request("GET", "/api/tools/team/job/list")
        if isinstance(data, dict):
            data = data.get("jobs", [])
        if not isinstance(data, list):
            raise BackendError(f"Unexpected job list payload: {type(data).__name__}")
        return data

    async def stop_job(self, team_name: str) -> dict[str, Any]:
        """Ask the backend to stop a running (usually continuous) team."""
        data = await self._request("POST", "/api/tools/team/job/stop", json={"team_name": team_name})
        logger.info(f"Requested stop of job {team_name}")
        return data if isinstance(data, dict) else {"result": data}

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, json=json)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            raise BackendError(
                f"Backend answered {e.response.status_code} for {method} {path}"
            ) from e
        except httpx.RequestError as e:
            raise BackendError(
                f"Failed to connect to backend at {self.base_url}: {e}"
            ) from e
        except ValueError as e:
            raise BackendError(f"Backend returned invalid JSON for {method} {path}") from e
