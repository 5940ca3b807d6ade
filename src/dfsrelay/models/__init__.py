"""Domain models shared across ingestion, orchestration and the API."""

from .pipeline import DEFAULT_PROJECTION_MODELS, ModelDescriptor, PipelineOptions, Slate, base_payload
from .player import PlayerRecord

__all__ = [
    "DEFAULT_PROJECTION_MODELS",
    "ModelDescriptor",
    "PipelineOptions",
    "PlayerRecord",
    "Slate",
    "base_payload",
]
