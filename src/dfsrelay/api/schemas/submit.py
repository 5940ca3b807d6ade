from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field


class DebugTraceResponse(BaseModel):
    ingest_exec: Optional[str] = None
    signals_exec: Optional[str] = None
    proj_execs: List[Optional[str]] = Field(default_factory=list)
    cons_exec: Optional[str] = None
    opt_exec: Optional[str] = None
    ingest_source: Optional[str] = None
    player_count: int = 0


class SubmitResponse(BaseModel):
    ok: bool = True
    lineups: Any = None
    debug: DebugTraceResponse


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    extra: Any = None
    debug: DebugTraceResponse | None = None


class EchoResponse(BaseModel):
    ok: bool = True
    bytes: int
    preview: str


class UploadDetails(BaseModel):
    csv_length: int
    flow: str


class UploadResponse(BaseModel):
    success: bool = True
    message: str
    job_id: Optional[str] = None
    execution_address: str
    details: UploadDetails
