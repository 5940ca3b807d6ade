"""HTTP client for the remote agent-execution platform."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx

from dfsrelay.config import RelaySettings
from dfsrelay.errors import CreateJobError, GetExecutionError


logger = logging.getLogger(__name__)

CREATE_JOB_PATHS = (
    "/v1/agent-executor-jobs/create/",
    "/v1/agent-executor-jobs/",
)
HANDLE_FIELDS = ("execution_address", "execution_id")
_BODY_PREVIEW = 500


@dataclass(frozen=True)
class JobHandle:
    execution_handle: str
    job_id: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ExecutionLookup:
    """Result of one execution lookup: either not ready yet, or a record."""

    ready: bool
    record: Optional[Dict[str, Any]] = None

    @classmethod
    def not_ready(cls) -> "ExecutionLookup":
        return cls(ready=False)

    @classmethod
    def found(cls, record: Dict[str, Any]) -> "ExecutionLookup":
        return cls(ready=True, record=record)


def _preview(text: str) -> str:
    text = text.strip()
    if not text:
        return "no body"
    return text if len(text) <= _BODY_PREVIEW else text[:_BODY_PREVIEW] + "..."


class JobClient:
    """Creates agent jobs and looks up their executions.

    The underlying :class:`httpx.AsyncClient` can be injected (tests pass one
    backed by :class:`httpx.MockTransport`); otherwise one is created and owned
    by this instance.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        http: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: RelaySettings, *, http: httpx.AsyncClient | None = None) -> "JobClient":
        return cls(settings.base_url, settings.api_key or "", http=http, timeout=settings.http_timeout)

    async def __aenter__(self) -> "JobClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def create_job(self, agent_id: str, payload: Dict[str, Any]) -> JobHandle:
        body = {"agent_id": agent_id, "payload": payload}
        failures: list[str] = []
        for path in CREATE_JOB_PATHS:
            url = f"{self.base_url}{path}"
            try:
                resp = await self._http.post(url, json=body, headers=self._headers)
            except httpx.TransportError as exc:
                logger.debug("Create job transport error for %s at %s: %s", agent_id, url, exc)
                failures.append(f"POST {url} -> {type(exc).__name__}: {exc}")
                continue
            if not resp.is_success:
                logger.debug("Create job for %s at %s returned %s", agent_id, url, resp.status_code)
                failures.append(f"POST {url} -> {resp.status_code}: {_preview(resp.text)}")
                continue
            return self._parse_handle(agent_id, url, resp)

        raise CreateJobError(
            f"Create job failed for agent {agent_id}",
            extra=" | ".join(failures),
        )

    def _parse_handle(self, agent_id: str, url: str, resp: httpx.Response) -> JobHandle:
        try:
            data = resp.json()
        except ValueError as exc:
            raise CreateJobError(
                f"Create job returned invalid JSON for agent {agent_id}",
                extra=f"POST {url} -> {resp.status_code}: {_preview(resp.text)}",
            ) from exc
        handle = None
        if isinstance(data, dict):
            handle = next((data[key] for key in HANDLE_FIELDS if data.get(key)), None)
        if not handle:
            raise CreateJobError(
                f"Create job response for agent {agent_id} has no execution handle",
                extra=f"POST {url} -> {resp.status_code}: {_preview(resp.text)}",
            )
        job_id = data.get("job_id") or data.get("id")
        logger.info("Created job for agent %s (execution %s)", agent_id, handle)
        return JobHandle(
            execution_handle=str(handle),
            job_id=str(job_id) if job_id is not None else None,
            raw=data,
        )

    async def get_execution(self, handle: str) -> ExecutionLookup:
        for url in (
            f"{self.base_url}/v1/executions/{handle}/",
            f"{self.base_url}/v1/executions/{handle}",
        ):
            try:
                resp = await self._http.get(url, headers=self._headers)
            except httpx.TransportError as exc:
                logger.warning("Transient error fetching execution %s at %s: %s", handle, url, exc)
                continue
            if resp.status_code == 404:
                continue
            if not resp.is_success:
                raise GetExecutionError(
                    f"Execution {handle} lookup failed ({resp.status_code})",
                    extra=f"GET {url} -> {resp.status_code}: {_preview(resp.text)}",
                )
            try:
                data = resp.json()
            except ValueError as exc:
                raise GetExecutionError(
                    f"Execution {handle} returned invalid JSON",
                    extra=f"GET {url}: {_preview(resp.text)}",
                ) from exc
            if not isinstance(data, dict):
                raise GetExecutionError(
                    f"Execution {handle} returned an unexpected body",
                    extra=f"GET {url}: {_preview(resp.text)}",
                )
            return ExecutionLookup.found(data)
        return ExecutionLookup.not_ready()
