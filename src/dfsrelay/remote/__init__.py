"""Remote agent platform integration: job creation and execution polling."""

from .client import ExecutionLookup, JobClient, JobHandle
from .poller import TerminalPolicy, execution_status, wait_for_execution

__all__ = [
    "ExecutionLookup",
    "JobClient",
    "JobHandle",
    "TerminalPolicy",
    "execution_status",
    "wait_for_execution",
]
