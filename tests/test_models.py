# -*- coding: utf-8 -*-
"""
Tests for the capture request model and validator.
"""
import pytest
from pydantic import ValidationError as PydanticValidationError

from allscreenshots.errors import ValidationError
from allscreenshots.models import (
    BlockLevel,
    CaptureOptions,
    CaptureRequest,
    ImageFormat,
    Job,
    JobHandle,
    JobStatus,
    WaitUntil,
)


class TestCaptureRequestBuilder:
    """Tests for CaptureRequest.builder()."""

    def test_builder_valid(self):
        """Should build a fully populated request."""
        request = (
            CaptureRequest.builder()
            .url("https://example.com")
            .device("Desktop HD")
            .full_page(True)
            .format(ImageFormat.JPEG)
            .quality(90)
            .wait_until(WaitUntil.NETWORK_IDLE)
            .block_level(BlockLevel.ADS_AND_TRACKERS)
            .build()
        )

        assert request.url == "https://example.com"
        assert request.device == "Desktop HD"
        assert request.full_page is True
        assert request.format is ImageFormat.JPEG
        assert request.quality == 90
        assert request.block_level is BlockLevel.NORMAL

    def test_missing_url(self):
        """Should fail when no URL was given."""
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.builder().device("Desktop HD").build()
        assert exc_info.value.field == "url"

    def test_empty_url(self):
        """Should reject an empty URL."""
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.builder().url("   ").build()
        assert exc_info.value.field == "url"

    def test_relative_url(self):
        """Should reject a URL that is not absolute."""
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.builder().url("not-a-valid-url").build()
        assert exc_info.value.field == "url"
        assert "http" in exc_info.value.reason

    def test_quality_out_of_range_on_lossy_format(self):
        """quality=150 on webp must fail naming the quality field."""
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.create(url="https://example.com", format="webp", quality=150)

        assert exc_info.value.field == "quality"
        assert "between 1 and 100" in exc_info.value.reason

    @pytest.mark.parametrize("quality", [0, -5, 101, 150])
    def test_quality_bounds_jpeg(self, quality):
        """Should enforce [1, 100] for jpeg."""
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.create(url="https://example.com", format="jpeg", quality=quality)
        assert exc_info.value.field == "quality"

    def test_quality_ignored_for_lossless_format(self):
        """Quality is dropped for png and pdf, even out of range."""
        png = CaptureRequest.create(url="https://example.com", format="png", quality=150)
        default = CaptureRequest.create(url="https://example.com", quality=80)

        assert png.quality is None
        assert default.quality is None
        assert "quality" not in png.to_wire()

    @pytest.mark.parametrize("delay", [-1, 30001])
    def test_delay_bounds(self, delay):
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.builder().url("https://example.com").delay(delay).build()
        assert exc_info.value.field == "delay"

    @pytest.mark.parametrize("timeout", [999, 60001])
    def test_timeout_bounds(self, timeout):
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.builder().url("https://example.com").timeout(timeout).build()
        assert exc_info.value.field == "timeout"

    def test_timeout_and_delay_limits_accepted(self):
        request = CaptureRequest.create(url="https://example.com", delay=30000, timeout=1000)
        assert request.delay == 30000
        assert request.timeout == 1000

    def test_unknown_device_preset(self):
        """An unrecognized preset fails at build time."""
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.builder().url("https://example.com").device("Nokia 3310").build()
        assert exc_info.value.field == "device"

    def test_device_preset_is_case_insensitive(self):
        request = CaptureRequest.create(url="https://example.com", device="iphone 14")
        assert request.device == "iPhone 14"

    def test_device_preset_wins_over_viewport(self):
        """When both are given the viewport is dropped."""
        request = (
            CaptureRequest.builder()
            .url("https://example.com")
            .viewport(1280, 720)
            .device("iPad")
            .build()
        )
        assert request.device == "iPad"
        assert request.viewport is None

    def test_viewport_only(self):
        request = CaptureRequest.builder().url("https://example.com").viewport(1920, 1080, 2).build()
        assert request.viewport.width == 1920
        assert request.viewport.device_scale_factor == 2

    def test_invalid_viewport_names_nested_field(self):
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.builder().url("https://example.com").viewport(0, 720).build()
        assert exc_info.value.field == "viewport.width"

    def test_hide_selectors_deduplicated(self):
        request = (
            CaptureRequest.builder()
            .url("https://example.com")
            .hide_selectors(".ad", "#popup", ".ad")
            .build()
        )
        assert request.hide_selectors == (".ad", "#popup")

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            CaptureRequest.create(url="https://example.com", zoom=2)
        assert exc_info.value.field == "zoom"

    def test_request_is_immutable(self):
        """Built requests cannot be modified."""
        request = CaptureRequest.create(url="https://example.com")
        with pytest.raises(PydanticValidationError):
            request.full_page = True

    def test_copy_with_update_is_validated(self):
        request = CaptureRequest.create(url="https://example.com", format="webp", quality=70)

        with pytest.raises(ValidationError) as exc_info:
            request.model_copy(update={"quality": 150})

        assert exc_info.value.field == "quality"
        assert request.quality == 70

    def test_copy_with_update(self):
        request = CaptureRequest.create(url="https://example.com", viewport={"width": 1280, "height": 720})

        copy = request.model_copy(update={"device": "iPhone 14"})

        assert copy.device == "iPhone 14"
        assert copy.viewport is None
        assert request.device is None

    def test_same_input_same_result(self):
        first = CaptureRequest.create(url="https://example.com", format="webp", quality=70)
        second = CaptureRequest.create(url="https://example.com", format="webp", quality=70)
        assert first == second


class TestWireFormat:
    """Tests for the JSON body sent to the API."""

    def test_camel_case_keys_and_unset_fields_omitted(self):
        request = (
            CaptureRequest.builder()
            .url("https://example.com")
            .device("Desktop HD")
            .full_page()
            .wait_for("#main")
            .block_cookie_banners()
            .build()
        )

        assert request.to_wire() == {
            "url": "https://example.com",
            "device": "Desktop HD",
            "fullPage": True,
            "waitFor": "#main",
            "blockCookieBanners": True,
        }

    def test_enum_values_serialized(self):
        request = CaptureRequest.create(
            url="https://example.com",
            format="jpg",
            quality=80,
            wait_until="domcontentloaded",
            response_type="JSON",
        )
        wire = request.to_wire()

        assert wire["format"] == "jpeg"
        assert wire["quality"] == 80
        assert wire["waitUntil"] == "domcontentloaded"
        assert wire["responseType"] == "JSON"

    def test_accepts_camel_case_input(self):
        request = CaptureRequest.create(url="https://example.com", fullPage=True, darkMode=True)
        assert request.full_page is True
        assert request.dark_mode is True


class TestCaptureOptions:
    """Tests for partial option records."""

    def test_quality_kept_without_format(self):
        """The format may come from another record, so quality is kept."""
        options = CaptureOptions(quality=80)
        assert options.quality == 80

    def test_quality_range_checked_without_format(self):
        with pytest.raises(ValidationError) as exc_info:
            CaptureOptions(quality=0)
        assert exc_info.value.field == "quality"

    def test_quality_kept_for_lossless_format(self):
        """Options records keep quality: a merge may still switch the format."""
        options = CaptureOptions(format="png", quality=80)
        assert options.quality == 80

    def test_quality_range_checked_for_lossless_format(self):
        with pytest.raises(ValidationError) as exc_info:
            CaptureOptions(format="pdf", quality=150)
        assert exc_info.value.field == "quality"

    def test_merge_override_precedence(self):
        base = CaptureOptions(device="Desktop HD", full_page=True, delay=500)
        merged = base.merged_with(CaptureOptions(delay=1000, dark_mode=True))

        assert merged.device == "Desktop HD"
        assert merged.full_page is True
        assert merged.delay == 1000
        assert merged.dark_mode is True

    def test_merge_viewport_replaces_default_device(self):
        base = CaptureOptions(device="Desktop HD")
        merged = base.merged_with(CaptureOptions(viewport={"width": 390, "height": 844}))

        assert merged.device is None
        assert merged.viewport.width == 390

    def test_merge_with_none(self):
        base = CaptureOptions(device="Desktop HD")
        assert base.merged_with(None) is base


class TestJobModels:
    """Tests for job status parsing."""

    def test_job_status_terminal(self):
        assert JobStatus.COMPLETED.is_terminal
        assert JobStatus.FAILED.is_terminal
        assert JobStatus.CANCELLED.is_terminal
        assert not JobStatus.QUEUED.is_terminal
        assert not JobStatus.PROCESSING.is_terminal

    def test_job_status_success(self):
        assert JobStatus.COMPLETED.is_success
        assert not JobStatus.FAILED.is_success
        assert not JobStatus.CANCELLED.is_success

    def test_job_parses_upper_case_status(self):
        job = Job.model_validate(
            {"id": "job-123", "status": "COMPLETED", "url": "https://example.com"}
        )
        assert job.status is JobStatus.COMPLETED
        assert job.url == "https://example.com"

    def test_job_accepts_snake_case_keys(self):
        job = Job.model_validate(
            {"id": "job-1", "status": "failed", "error_message": "Navigation timeout"}
        )
        assert job.error_message == "Navigation timeout"

    def test_job_handle_uses_created_at(self):
        handle = JobHandle.model_validate(
            {"id": "job-1", "status": "QUEUED", "createdAt": "2024-01-15T10:00:00Z"}
        )
        assert handle.submitted_at.year == 2024
        assert handle.status is JobStatus.QUEUED

    def test_job_handle_defaults_submission_time(self):
        handle = JobHandle.model_validate({"id": "job-1"})
        assert handle.submitted_at is not None
