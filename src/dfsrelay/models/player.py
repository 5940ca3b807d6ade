"""Canonical player model shared by remote ingestion and the local fallback parser."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


class PlayerRecord(BaseModel):
    """Normalized player payload handed to downstream pipeline stages."""

    player_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    team: str = ""
    positions: List[str] = Field(..., min_length=1)
    salary: float = Field(..., ge=0.0)

    model_config = ConfigDict(frozen=True)
