# -*- coding: utf-8 -*-
"""
Bulk and compose request/response models.
"""
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import Field, field_validator, model_validator

from .errors import ValidationError
from .models import (
    CaptureOptions,
    CaptureRequest,
    ImageFormat,
    RequestModel,
    ResponseModel,
    Viewport,
    check_device,
    check_url,
    prefer_device_over_viewport,
)


# =============================================================================
# Bulk
# =============================================================================


class BulkItem(RequestModel):
    """One target of a bulk job, with optional per-URL overrides."""

    url: str
    options: CaptureOptions | None = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value):
        return check_url(value)


class BulkRequest(RequestModel):
    """
    Many capture targets submitted as one job.

    Per-item options override `defaults` field by field; unset item
    fields inherit the default.
    """

    items: tuple[BulkItem, ...] = Field(..., min_length=1, alias="urls")
    defaults: CaptureOptions | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None

    @field_validator("items", mode="before")
    @classmethod
    def _coerce_items(cls, value):
        # Plain URL strings are accepted as items without overrides
        if isinstance(value, (list, tuple)):
            return tuple({"url": item} if isinstance(item, str) else item for item in value)
        return value

    @field_validator("webhook_url")
    @classmethod
    def _check_webhook(cls, value):
        return check_url(value, required=False)

    @model_validator(mode="after")
    def _check_merged(self):
        # Every merged item must itself be a valid capture request
        for index, item in enumerate(self.items):
            try:
                CaptureRequest.from_options(item.url, self._merge(item))
            except ValidationError as exc:
                raise ValidationError(f"items.{index}.{exc.field}", exc.reason) from None
        return self

    def _merge(self, item: BulkItem) -> CaptureOptions:
        return (self.defaults or CaptureOptions()).merged_with(item.options)

    def merged_options(self) -> list[CaptureOptions]:
        """Effective options for each item, in submission order."""
        return [self._merge(item) for item in self.items]

    def merged_items(self) -> list[CaptureRequest]:
        """Fully merged and validated capture request per item."""
        return [CaptureRequest.from_options(item.url, self._merge(item)) for item in self.items]

    def to_wire(self) -> dict[str, Any]:
        payload = super().to_wire()
        urls = []
        for request in self.merged_items():
            entry = request.to_wire()
            url = entry.pop("url")
            urls.append({"url": url, "options": entry} if entry else {"url": url})
        payload["urls"] = urls
        return payload


class BulkJobInfo(ResponseModel):
    """Per-URL job inside a bulk job."""

    id: str
    url: str
    status: str
    result_url: str | None = None
    storage_url: str | None = None
    format: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int | None = None
    render_time_ms: int | None = None
    error_code: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


class BulkJob(ResponseModel):
    """Bulk job progress, returned by create, status and list calls."""

    id: str
    status: str
    total_jobs: int = 0
    completed_jobs: int = 0
    failed_jobs: int = 0
    progress: int = 0
    jobs: list[BulkJobInfo] | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @property
    def is_finished(self) -> bool:
        return self.status.upper() in ("COMPLETED", "FAILED", "CANCELLED", "PARTIAL")


# =============================================================================
# Compose
# =============================================================================


class LayoutType(str, Enum):
    """Arrangement of composed captures."""

    GRID = "GRID"
    HORIZONTAL = "HORIZONTAL"
    VERTICAL = "VERTICAL"
    MASONRY = "MASONRY"
    MONDRIAN = "MONDRIAN"
    PARTITIONING = "PARTITIONING"
    AUTO = "AUTO"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            upper = value.strip().upper()
            for member in cls:
                if member.value == upper:
                    return member
        return None


class Alignment(str, Enum):
    TOP = "top"
    CENTER = "center"
    BOTTOM = "bottom"


class CaptureItem(RequestModel):
    """One capture inside a composition."""

    url: str
    id: str | None = None
    label: str | None = None
    viewport: Viewport | None = None
    device: str | None = None
    full_page: bool | None = None
    dark_mode: bool | None = None
    delay: int | None = Field(default=None, ge=0, le=30000)

    @model_validator(mode="before")
    @classmethod
    def _device_wins(cls, data):
        return prefer_device_over_viewport(data)

    @field_validator("url")
    @classmethod
    def _check_url(cls, value):
        return check_url(value)

    @field_validator("device")
    @classmethod
    def _check_device(cls, value):
        return check_device(value)


class ComposeOutput(RequestModel):
    """Output layout configuration."""

    layout: LayoutType = LayoutType.GRID
    format: ImageFormat | None = None
    quality: int | None = Field(default=None, ge=1, le=100)
    columns: int | None = Field(default=None, ge=1)
    spacing: int | None = Field(default=None, ge=0)
    padding: int | None = Field(default=None, ge=0)
    background: str | None = None
    alignment: Alignment | None = None
    max_width: int | None = Field(default=None, ge=1)
    max_height: int | None = Field(default=None, ge=1)
    thumbnail_width: int | None = Field(default=None, ge=1)

    @field_validator("background")
    @classmethod
    def _non_blank(cls, value):
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value


class ComposeRequest(RequestModel):
    """Ordered captures combined into one image."""

    captures: tuple[CaptureItem, ...] = Field(..., min_length=1)
    output: ComposeOutput | None = None
    defaults: CaptureOptions | None = None
    is_async: bool | None = Field(default=None, alias="async")
    webhook_url: str | None = None
    webhook_secret: str | None = None

    @field_validator("webhook_url")
    @classmethod
    def _check_webhook(cls, value):
        return check_url(value, required=False)


class ComposeMetadata(ResponseModel):
    capture_count: int | None = None
    layout_type: str | None = None


class ComposeResult(ResponseModel):
    """
    Result of a composition.

    Either `image` holds the bytes (binary response) or `url` points at
    the stored image.
    """

    url: str | None = None
    storage_url: str | None = None
    expires_at: datetime | None = None
    width: int | None = None
    height: int | None = None
    format: str | None = None
    file_size: int | None = None
    render_time_ms: int | None = None
    layout: str | None = None
    metadata: ComposeMetadata | None = None
    image: bytes | None = Field(default=None, exclude=True)


class ComposeJob(ResponseModel):
    """Status of an async composition."""

    job_id: str
    status: str
    progress: int | None = None
    total_captures: int | None = None
    completed_captures: int | None = None
    failed_captures: int | None = None
    layout_type: str | None = None
    result: ComposeResult | None = None
    error_code: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


class PlacementPreview(ResponseModel):
    index: int
    x: int
    y: int
    width: int
    height: int
    label: str | None = None


class LayoutPreview(ResponseModel):
    """Computed placement of images for a layout, without rendering."""

    layout: str
    resolved_layout: str | None = None
    canvas_width: int
    canvas_height: int
    placements: list[PlacementPreview] = Field(default_factory=list)
    metadata: dict[str, Any] | None = None
