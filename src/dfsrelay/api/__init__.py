"""REST API that relays uploaded slates through the remote agent pipeline."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable

import httpx
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dfsrelay.api.schemas import (
    DebugTraceResponse,
    EchoResponse,
    ErrorResponse,
    SubmitResponse,
    UploadDetails,
    UploadResponse,
)
from dfsrelay.config import RelaySettings, load_settings
from dfsrelay.errors import ConfigurationError, InputError, RelayError
from dfsrelay.models import PipelineOptions, Slate, base_payload
from dfsrelay.pipeline import PipelineOrchestrator, PipelineTrace
from dfsrelay.remote import JobClient


logger = logging.getLogger(__name__)

DEFAULT_SPORT = "NBA"
DEFAULT_SITE = "DK"
ECHO_PREVIEW_CHARS = 200
MIN_UPLOAD_CSV_CHARS = 50
PIPELINE_FLOW = "INGEST → SIGNALS → PROJECTIONS → CONSENSUS → OPTIMIZER"


def _decode(contents: bytes) -> str:
    return contents.decode("utf-8-sig", errors="replace")


async def _read_slate(file: UploadFile | None, *, sport: str, site: str) -> Slate:
    if file is None:
        raise InputError("Missing file")
    csv_text = _decode(await file.read())
    if not csv_text.strip():
        raise InputError("Empty file")
    return Slate(sport=sport or DEFAULT_SPORT, site=site or DEFAULT_SITE, csv_text=csv_text)


def _csv_from_body(raw: str) -> str:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return raw
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        value = data.get("csv") or data.get("csvText") or ""
        return value if isinstance(value, str) else ""
    return ""


def _error_response(exc: RelayError, trace: PipelineTrace | None = None) -> JSONResponse:
    debug = None
    if trace is not None and not isinstance(exc, (InputError, ConfigurationError)):
        debug = DebugTraceResponse(**trace.as_dict())
    body = ErrorResponse(error=exc.message, extra=exc.extra, debug=debug).model_dump(mode="json")
    content = {key: value for key, value in body.items() if value is not None}
    return JSONResponse(status_code=exc.status_code, content=content)


def create_app(
    settings: RelaySettings | None = None,
    *,
    http: httpx.AsyncClient | None = None,
    options_factory: Callable[[], PipelineOptions] = PipelineOptions,
) -> FastAPI:
    app = FastAPI(title="dfsrelay")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings or load_settings()
    app.state.http = http

    def job_client() -> JobClient:
        return JobClient.from_settings(app.state.settings, http=app.state.http)

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        logger.warning("Rejected %s request with invalid fields: %s", request.url.path, fields)
        if "file" in fields:
            message = "No file" if request.url.path == "/api/echo" else "Missing file"
            return _error_response(InputError(message))
        return _error_response(InputError("Invalid request", extra=", ".join(fields) or None))

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/echo", response_model=EchoResponse)
    async def echo(file: UploadFile | None = File(None)) -> Any:
        if file is None:
            return _error_response(InputError("No file"))
        contents = await file.read()
        return EchoResponse(bytes=len(contents), preview=_decode(contents)[:ECHO_PREVIEW_CHARS])

    @app.post("/api/submit", response_model=SubmitResponse)
    async def submit(
        file: UploadFile | None = File(None),
        sport: str = Form(DEFAULT_SPORT),
        site: str = Form(DEFAULT_SITE),
    ) -> Any:
        trace = PipelineTrace()
        try:
            slate = await _read_slate(file, sport=sport, site=site)
            current: RelaySettings = app.state.settings
            current.require()
            logger.info("Running pipeline for %s %s slate (%s bytes)", slate.site, slate.sport, len(slate.csv_text))
            async with job_client() as client:
                orchestrator = PipelineOrchestrator(client, current, options=options_factory())
                result = await orchestrator.run(slate, trace)
        except RelayError as exc:
            logger.warning("Pipeline request failed: %s", exc.message)
            return _error_response(exc, trace)
        return SubmitResponse(lineups=result.lineups, debug=DebugTraceResponse(**trace.as_dict()))

    @app.post("/api/upload", response_model=UploadResponse)
    async def upload(request: Request) -> Any:
        try:
            csv_text = _csv_from_body(_decode(await request.body()))
            if len(csv_text.strip()) < MIN_UPLOAD_CSV_CHARS:
                raise InputError("Invalid CSV data", extra="CSV text is too short or empty")
            current: RelaySettings = app.state.settings
            current.require("ingest")
            payload = base_payload(Slate(csv_text=csv_text), options_factory())
            async with job_client() as client:
                job = await client.create_job(current.agents.ingest or "", payload)
        except RelayError as exc:
            logger.warning("Upload request failed: %s", exc.message)
            return _error_response(exc)
        return UploadResponse(
            message="CSV processed! Your DFS optimizer pipeline is running.",
            job_id=job.job_id,
            execution_address=job.execution_handle,
            details=UploadDetails(csv_length=len(csv_text), flow=PIPELINE_FLOW),
        )

    return app


__all__ = ["create_app"]
