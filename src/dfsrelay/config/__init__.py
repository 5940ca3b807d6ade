"""Configuration helpers for the remote platform and pipeline agents."""

from .settings import AGENT_ENV_VARS, AgentIds, RelaySettings, load_settings

__all__ = [
    "AGENT_ENV_VARS",
    "AgentIds",
    "RelaySettings",
    "load_settings",
]
