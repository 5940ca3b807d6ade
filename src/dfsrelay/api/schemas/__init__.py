"""Pydantic models for API I/O."""

from .submit import (
    DebugTraceResponse,
    EchoResponse,
    ErrorResponse,
    SubmitResponse,
    UploadDetails,
    UploadResponse,
)

__all__ = [
    "DebugTraceResponse",
    "EchoResponse",
    "ErrorResponse",
    "SubmitResponse",
    "UploadDetails",
    "UploadResponse",
]
