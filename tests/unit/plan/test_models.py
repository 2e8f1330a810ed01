"""Tests for render request and plan models."""

import pytest
from pydantic import ValidationError

from autoreel.plan import PlanSegment, RenderPlan, RenderRequest, freeze_job_config


class TestRenderRequest:
    """Tests for RenderRequest validation."""

    def test_defaults(self):
        request = RenderRequest.model_validate({"sourceReference": "/media/a.mp4"})

        assert request.tone == "bold"
        assert request.highlight_count == 3
        assert request.highlight_duration_seconds == 15
        assert request.call_to_action is None

    def test_snake_case_accepted(self):
        request = RenderRequest.model_validate({"source_reference": "/media/a.mp4"})
        assert request.source_reference == "/media/a.mp4"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("highlightCount", 0),
            ("highlightCount", 7),
            ("highlightDurationSeconds", 4),
            ("highlightDurationSeconds", 46),
            ("tone", "x"),
        ],
    )
    def test_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            RenderRequest.model_validate(
                {"sourceReference": "/media/a.mp4", field: value}
            )

    def test_blank_source_rejected(self):
        with pytest.raises(ValidationError):
            RenderRequest.model_validate({"sourceReference": "   "})

    def test_blank_optional_strings_become_none(self):
        request = RenderRequest.model_validate(
            {"sourceReference": "/media/a.mp4", "callToAction": "", "title": ""}
        )
        assert request.call_to_action is None
        assert request.title is None

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            RenderRequest.model_validate({"sourceReference": "/a.mp4", "speed": 2})


class TestPlanSegment:
    """Tests for PlanSegment."""

    def test_accepts_end_at_start(self):
        segment = PlanSegment.model_validate(
            {"label": "A", "startSeconds": 30, "endSeconds": 30, "hook": "h"}
        )
        assert segment.end_seconds == segment.start_seconds

    def test_rejects_negative_start(self):
        with pytest.raises(ValidationError):
            PlanSegment.model_validate(
                {"label": "A", "startSeconds": -1, "endSeconds": 30, "hook": "h"}
            )

    def test_display_text_prefers_overlay(self):
        segment = PlanSegment.model_validate(
            {
                "label": "A",
                "startSeconds": 0,
                "endSeconds": 10,
                "hook": "Hook",
                "overlayText": "Overlay",
            }
        )
        assert segment.display_text == "Overlay"
        assert segment.model_copy(update={"overlay_text": None}).display_text == "Hook"


class TestRenderPlan:
    """Tests for RenderPlan and freeze_job_config()."""

    def test_requires_segments(self, plan_data):
        with pytest.raises(ValidationError):
            RenderPlan.model_validate({**plan_data, "segments": []})

    def test_unsupported_aspect_ratio(self, plan_data):
        with pytest.raises(ValidationError):
            RenderPlan.model_validate({**plan_data, "aspectRatio": "16:9"})

    def test_freeze_applies_request_defaults(self, request_data, plan_data):
        plan_data["segments"][2]["callToAction"] = "Subscribe"
        request = RenderRequest.model_validate({**request_data, "tone": "calm"})
        plan = RenderPlan.model_validate(plan_data)

        config = freeze_job_config(request, plan)

        assert config["request"]["sourceReference"] == request.source_reference
        assert config["plan"]["tone"] == "calm"
        ctas = [s["callToAction"] for s in config["plan"]["segments"]]
        assert ctas == ["Follow for more", "Follow for more", "Subscribe"]
        assert config["plan"]["segments"][1]["overlayText"] == "Live demo: 2x faster"
        assert RenderPlan.model_validate(config["plan"]).segments[0].label == "Opening"
