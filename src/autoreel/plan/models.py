"""Pydantic models for render requests and segment plans.

Field names are snake_case in Python and camelCase on the wire; both
spellings are accepted on input. Job config is stored camelCase so it
matches what callers submitted.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

AspectRatio = Literal["9:16", "1:1"]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class RenderRequest(_WireModel):
    """Validated parameters of a render submission."""

    source_reference: str = Field(min_length=1, max_length=2048)
    tone: str = Field(default="bold", min_length=2, max_length=32)
    highlight_count: int = Field(default=3, ge=1, le=6)
    highlight_duration_seconds: int = Field(default=15, ge=5, le=45)
    call_to_action: str | None = Field(default=None, max_length=180)
    title: str | None = Field(default=None, max_length=200)

    @field_validator("call_to_action", "title")
    @classmethod
    def empty_to_none(cls, v: str | None) -> str | None:
        """Treat blank optional strings as absent."""
        return v or None


class PlanSegment(_WireModel):
    """One planned highlight: a time range plus its on-screen text."""

    label: str = Field(min_length=1, max_length=120)
    start_seconds: float = Field(ge=0)
    # An end at or before the start is clamped to the minimum clip length
    # when the job renders
    end_seconds: float = Field(ge=0)
    hook: str = Field(min_length=1, max_length=240)
    overlay_text: str | None = Field(default=None, max_length=240)
    caption: str | None = None
    call_to_action: str | None = Field(default=None, max_length=180)

    @property
    def display_text(self) -> str:
        """Text burned onto the clip: explicit overlay text, else the hook."""
        return self.overlay_text or self.hook


class RenderPlan(_WireModel):
    """Externally produced segment plan, frozen into job config."""

    aspect_ratio: AspectRatio = "9:16"
    tone: str | None = None
    segments: list[PlanSegment] = Field(min_length=1)
    captions: list[str] | None = None

    def with_request_defaults(self, request: RenderRequest) -> "RenderPlan":
        """Fill plan gaps from the request.

        The request's tone applies to the plan, and segments without their
        own call to action inherit the request's.
        """
        segments = [
            segment
            if segment.call_to_action or not request.call_to_action
            else segment.model_copy(update={"call_to_action": request.call_to_action})
            for segment in self.segments
        ]
        return self.model_copy(update={"tone": request.tone, "segments": segments})


def freeze_job_config(request: RenderRequest, plan: RenderPlan) -> dict[str, Any]:
    """Build the immutable config snapshot stored on a job."""
    return {
        "request": request.model_dump(mode="json", by_alias=True),
        "plan": plan.with_request_defaults(request).model_dump(
            mode="json", by_alias=True
        ),
    }
