"""Error taxonomy shared by the remote client, orchestrator and API layers."""

from __future__ import annotations

from typing import Any


class RelayError(Exception):
    """Base error; carries the HTTP status and diagnostic text for the API envelope."""

    status_code = 500

    def __init__(self, message: str, *, extra: Any = None, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.extra = extra
        if status_code is not None:
            self.status_code = status_code


class InputError(RelayError):
    status_code = 400


class ConfigurationError(RelayError):
    pass


class RemoteError(RelayError):
    """A remote platform call failed for the named pipeline stage."""

    def __init__(self, message: str, *, stage: str | None = None, extra: Any = None):
        super().__init__(message, extra=extra)
        self.stage = stage

    def with_stage(self, stage: str) -> "RemoteError":
        if self.stage is None:
            self.stage = stage
            self.message = f"[{stage}] {self.message}"
            self.args = (self.message,)
        return self


class RemoteCreateError(RemoteError):
    pass


class RemotePollError(RemoteError):
    pass


class PollTimeoutError(RemoteError):
    def __init__(self, label: str, timeout: float, *, handle: str | None = None):
        super().__init__(
            f"[{label}] execution {handle or '?'} did not finish within {timeout:g}s",
            stage=label,
        )
        self.label = label
        self.timeout = timeout
        self.handle = handle


class RemoteExecutionError(RemoteError):
    """The execution reached a terminal state but reported a failure."""


class IngestionExhaustedError(RelayError):
    pass


CreateJobError = RemoteCreateError
GetExecutionError = RemotePollError

__all__ = [
    "RelayError",
    "InputError",
    "ConfigurationError",
    "RemoteError",
    "RemoteCreateError",
    "RemotePollError",
    "PollTimeoutError",
    "RemoteExecutionError",
    "IngestionExhaustedError",
    "CreateJobError",
    "GetExecutionError",
]
