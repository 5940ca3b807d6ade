"""Request-scoped inputs threaded through every pipeline stage."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


def _today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


class Slate(BaseModel):
    sport: str = "NBA"
    site: str = "DK"
    date: str = Field(default_factory=_today)
    csv_text: str

    model_config = ConfigDict(frozen=True)


class PipelineOptions(BaseModel):
    """Flat option record sent unmodified to every remote agent."""

    n_lineups: int = Field(default=20, ge=1)
    salary_cap: int = Field(default=50_000, ge=0)
    min_players: int = Field(default=8, ge=1)
    include_injuries: bool = True
    format: str = "classic"
    version: str = "v1"
    ingest_min_salary: float = Field(default=3500.0, ge=0.0)
    ingest_max_players: int = Field(default=120, ge=1)

    model_config = ConfigDict(frozen=True)


class ModelDescriptor(BaseModel):
    """LLM provider/model/temperature tuple for one projection fan-out branch."""

    provider: str
    model: str
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)

    model_config = ConfigDict(frozen=True)


DEFAULT_PROJECTION_MODELS = (
    ModelDescriptor(provider="anthropic", model="claude-3-5-sonnet", temperature=0.2),
    ModelDescriptor(provider="openai", model="gpt-4o-mini", temperature=0.2),
)


def base_payload(slate: Slate, options: PipelineOptions) -> Dict[str, Any]:
    return {
        "slate": slate.model_dump(mode="json"),
        "options": options.model_dump(mode="json"),
    }
