"""Render request and segment plan models."""

from .models import (
    AspectRatio,
    PlanSegment,
    RenderPlan,
    RenderRequest,
    freeze_job_config,
)

__all__ = [
    "AspectRatio",
    "PlanSegment",
    "RenderPlan",
    "RenderRequest",
    "freeze_job_config",
]
