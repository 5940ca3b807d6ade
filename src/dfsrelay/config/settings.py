"""Environment-driven settings for the remote agent platform."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

from pydantic import ValidationError

from dfsrelay.errors import ConfigurationError
from dfsrelay.models import DEFAULT_PROJECTION_MODELS, ModelDescriptor


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.swarmnode.ai"
DEFAULT_PENDING_STATUSES = ("queued", "pending", "running", "in_progress")
DEFAULT_RESULT_FIELDS = ("players", "lineups", "consensus", "output")

_API_KEY_ENV = "SWARMNODE_API_KEY"
_BASE_URL_ENV = "SWARMNODE_BASE"
_POLL_TIMEOUT_ENV = "DFSRELAY_POLL_TIMEOUT"
_POLL_INTERVAL_ENV = "DFSRELAY_POLL_INTERVAL"
_HTTP_TIMEOUT_ENV = "DFSRELAY_HTTP_TIMEOUT"
_PROJECTION_MODELS_ENV = "DFSRELAY_PROJECTION_MODELS"
_PENDING_STATUSES_ENV = "DFSRELAY_PENDING_STATUSES"
_RESULT_FIELDS_ENV = "DFSRELAY_RESULT_FIELDS"

AGENT_ENV_VARS = {
    "ingest": "INGEST_AGENT_ID",
    "signals": "SIGNALS_AGENT_ID",
    "projections": "PROJECTIONS_AGENT_ID",
    "consensus": "CONSENSUS_AGENT_ID",
    "optimizer": "OPTIMIZER_AGENT_ID",
}
REQUIRED_AGENTS = ("ingest", "projections", "consensus", "optimizer")


@dataclass(frozen=True)
class AgentIds:
    ingest: Optional[str] = None
    signals: Optional[str] = None
    projections: Optional[str] = None
    consensus: Optional[str] = None
    optimizer: Optional[str] = None


@dataclass(frozen=True)
class RelaySettings:
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    agents: AgentIds = field(default_factory=AgentIds)
    poll_timeout: float = 120.0
    poll_interval: float = 1.5
    http_timeout: float = 30.0
    projection_models: Tuple[ModelDescriptor, ...] = DEFAULT_PROJECTION_MODELS
    pending_statuses: Tuple[str, ...] = DEFAULT_PENDING_STATUSES
    result_fields: Tuple[str, ...] = DEFAULT_RESULT_FIELDS

    def missing(self, *agents: str) -> list[str]:
        """Return the environment variable names that are unset for the given agents."""

        names: list[str] = []
        if not self.api_key:
            names.append(_API_KEY_ENV)
        for agent in agents or REQUIRED_AGENTS:
            if not getattr(self.agents, agent):
                names.append(AGENT_ENV_VARS[agent])
        return names

    def require(self, *agents: str) -> None:
        names = self.missing(*agents)
        if names:
            raise ConfigurationError(
                "Missing configuration",
                extra=f"Set {', '.join(names)} in the environment",
            )


def _env_str(env: Mapping[str, str], name: str) -> Optional[str]:
    raw = env.get(name)
    if raw is None:
        return None
    value = raw.strip()
    return value or None


def _env_float(
    env: Mapping[str, str],
    name: str,
    default: float,
    *,
    clamp_min: float | None = None,
    clamp_max: float | None = None,
) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %.2f", name, raw, default)
        return default
    if clamp_min is not None:
        value = max(clamp_min, value)
    if clamp_max is not None:
        value = min(clamp_max, value)
    return value


def _env_list(env: Mapping[str, str], name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    raw = env.get(name)
    if raw is None:
        return default
    items = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    return items or default


def _env_models(env: Mapping[str, str]) -> Tuple[ModelDescriptor, ...]:
    raw = env.get(_PROJECTION_MODELS_ENV)
    if raw is None or not raw.strip():
        return DEFAULT_PROJECTION_MODELS
    try:
        data = json.loads(raw)
        if not isinstance(data, list) or not data:
            raise ValueError("expected a non-empty JSON list")
        return tuple(ModelDescriptor.model_validate(item) for item in data)
    except (ValueError, ValidationError) as exc:
        raise ConfigurationError(
            f"Invalid {_PROJECTION_MODELS_ENV}",
            extra=str(exc),
        ) from exc


def load_settings(environ: Mapping[str, str] | None = None) -> RelaySettings:
    env = os.environ if environ is None else environ
    agents = AgentIds(**{key: _env_str(env, var) for key, var in AGENT_ENV_VARS.items()})
    return RelaySettings(
        api_key=_env_str(env, _API_KEY_ENV),
        base_url=(_env_str(env, _BASE_URL_ENV) or DEFAULT_BASE_URL).rstrip("/"),
        agents=agents,
        poll_timeout=_env_float(env, _POLL_TIMEOUT_ENV, 120.0, clamp_min=1.0, clamp_max=3600.0),
        poll_interval=_env_float(env, _POLL_INTERVAL_ENV, 1.5, clamp_min=0.0, clamp_max=60.0),
        http_timeout=_env_float(env, _HTTP_TIMEOUT_ENV, 30.0, clamp_min=1.0),
        projection_models=_env_models(env),
        pending_statuses=_env_list(env, _PENDING_STATUSES_ENV, DEFAULT_PENDING_STATUSES),
        result_fields=_env_list(env, _RESULT_FIELDS_ENV, DEFAULT_RESULT_FIELDS),
    )
