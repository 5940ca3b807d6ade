"""Pipeline orchestration over the remote agent platform."""

from .orchestrator import PipelineOrchestrator, PipelineResult, PipelineTrace

__all__ = ["PipelineOrchestrator", "PipelineResult", "PipelineTrace"]
