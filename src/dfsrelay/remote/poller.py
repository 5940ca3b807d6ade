"""Polling loop that waits for a remote execution to reach a terminal state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Tuple

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_before_delay, wait_fixed

from dfsrelay.config import RelaySettings
from dfsrelay.config.settings import DEFAULT_PENDING_STATUSES, DEFAULT_RESULT_FIELDS
from dfsrelay.errors import GetExecutionError, PollTimeoutError
from dfsrelay.remote.client import ExecutionLookup, JobClient


logger = logging.getLogger(__name__)

DEFAULT_FAILED_STATUSES = ("failed", "failure", "error", "errored", "cancelled", "canceled", "timeout", "timed_out")


def execution_status(record: Mapping[str, Any]) -> str:
    raw = record.get("status") or record.get("state") or ""
    return str(raw).strip().lower()


@dataclass(frozen=True)
class TerminalPolicy:
    """Best-effort heuristic for deciding when an execution is finished.

    The platform's status vocabulary varies between deployments, so an
    execution counts as terminal when it reports a status outside
    ``pending_statuses`` or when any of ``result_fields`` is present.
    """

    pending_statuses: Tuple[str, ...] = DEFAULT_PENDING_STATUSES
    result_fields: Tuple[str, ...] = DEFAULT_RESULT_FIELDS
    failed_statuses: Tuple[str, ...] = DEFAULT_FAILED_STATUSES

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "TerminalPolicy":
        return cls(pending_statuses=settings.pending_statuses, result_fields=settings.result_fields)

    def _has_result_field(self, record: Mapping[str, Any]) -> bool:
        containers: Iterable[Any] = (record.get("result"), record)
        for container in containers:
            if isinstance(container, Mapping) and any(
                container.get(name) is not None for name in self.result_fields
            ):
                return True
        return False

    def is_terminal(self, record: Mapping[str, Any]) -> bool:
        status = execution_status(record)
        if status and status not in self.pending_statuses:
            return True
        return self._has_result_field(record)

    def is_failed(self, record: Mapping[str, Any]) -> bool:
        return execution_status(record) in self.failed_statuses

    def accepts(self, lookup: ExecutionLookup) -> bool:
        return lookup.ready and lookup.record is not None and self.is_terminal(lookup.record)


DEFAULT_POLICY = TerminalPolicy()


async def wait_for_execution(
    client: JobClient,
    handle: str,
    *,
    label: str,
    timeout: float,
    interval: float,
    policy: TerminalPolicy = DEFAULT_POLICY,
) -> Dict[str, Any]:
    """Poll ``handle`` every ``interval`` seconds and return the first terminal record.

    Not-ready lookups are retried until ``timeout`` seconds have elapsed since
    the first attempt, then :class:`PollTimeoutError` is raised. Hard lookup
    failures are raised immediately, tagged with ``label``.
    """

    def _log_pending(retry_state: Any) -> None:
        lookup = retry_state.outcome.result()
        status = execution_status(lookup.record) if lookup.record else "not-ready"
        logger.debug(
            "%s execution %s still %s (attempt %s)", label, handle, status, retry_state.attempt_number
        )

    retrying = AsyncRetrying(
        stop=stop_before_delay(timeout),
        wait=wait_fixed(interval),
        retry=retry_if_result(lambda lookup: not policy.accepts(lookup)),
        before_sleep=_log_pending,
    )
    try:
        lookup = await retrying(client.get_execution, handle)
    except RetryError:
        logger.warning("%s execution %s timed out after %.1fs", label, handle, timeout)
        raise PollTimeoutError(label, timeout, handle=handle) from None
    except GetExecutionError as exc:
        raise exc.with_stage(label)

    record = lookup.record or {}
    logger.info("%s execution %s finished (%s)", label, handle, execution_status(record) or "result")
    return record
