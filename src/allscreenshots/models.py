# -*- coding: utf-8 -*-
"""
Pydantic data models for capture requests and job status.

Requests are frozen and validated at construction: a CaptureRequest that
exists is always consistent. Validation failures surface as
errors.ValidationError naming the offending field.
"""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .errors import ValidationError

logger = logging.getLogger(__name__)

# Device presets recognised by the rendering service
DEVICE_PRESETS = (
    "Desktop HD",
    "Desktop",
    "Desktop 4K",
    "Laptop",
    "MacBook Pro 16",
    "iPhone 14",
    "iPhone 14 Pro Max",
    "iPhone 15",
    "iPhone SE",
    "iPad",
    "iPad Mini",
    "iPad Pro",
    "Pixel 7",
    "Samsung Galaxy S23",
)
_PRESET_LOOKUP = {name.lower(): name for name in DEVICE_PRESETS}

_HTTP_URL = TypeAdapter(HttpUrl)


# =============================================================================
# Enumerations
# =============================================================================


class ImageFormat(str, Enum):
    """Output format."""

    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"
    PDF = "pdf"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "jpg":
                return cls.JPEG
            for member in cls:
                if member.value == lowered:
                    return member
        return None

    @property
    def is_lossy(self) -> bool:
        """Formats for which a quality setting applies."""
        return self in (ImageFormat.JPEG, ImageFormat.WEBP)

    @property
    def media_type(self) -> str:
        return "application/pdf" if self is ImageFormat.PDF else f"image/{self.value}"


class WaitUntil(str, Enum):
    """Page load condition to wait for before capture."""

    LOAD = "load"
    DOM_CONTENT_LOADED = "domcontentloaded"
    NETWORK_IDLE = "networkidle"


class BlockLevel(str, Enum):
    """Content blocking level."""

    NONE = "none"
    LIGHT = "light"
    NORMAL = "normal"
    PRO = "pro"
    PRO_PLUS = "pro_plus"
    ULTIMATE = "ultimate"

    # Descriptive aliases
    ADS = "light"
    ADS_AND_TRACKERS = "normal"
    STRICT = "pro"


class ResponseType(str, Enum):
    """How the service returns a synchronous capture."""

    BINARY = "BINARY"
    JSON = "JSON"


class JobStatus(str, Enum):
    """Async job lifecycle status."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "canceled":
                return cls.CANCELLED
            for member in cls:
                if member.value == lowered:
                    return member
        return None

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)

    @property
    def is_success(self) -> bool:
        return self is JobStatus.COMPLETED


# =============================================================================
# Shared validators
# =============================================================================


def check_url(value: str | None, required: bool = True) -> str | None:
    """Validate an absolute http(s) URL, returning it unchanged (stripped)."""
    if value is None:
        if required:
            raise ValueError("URL is required")
        return None
    value = value.strip()
    if not value:
        raise ValueError("URL is required")
    if not value.lower().startswith(("http://", "https://")):
        raise ValueError("URL must start with http:// or https://")
    try:
        _HTTP_URL.validate_python(value)
    except PydanticValidationError:
        raise ValueError(f"'{value}' is not a well-formed absolute URL") from None
    return value


def check_device(value: str | None) -> str | None:
    """Resolve a device preset name to its canonical spelling."""
    if value is None:
        return None
    canonical = _PRESET_LOOKUP.get(value.strip().lower())
    if canonical is None:
        raise ValueError(
            f"unrecognized device preset '{value}' (known: {', '.join(DEVICE_PRESETS)})"
        )
    return canonical


def prefer_device_over_viewport(data: Any) -> Any:
    """A device preset wins when both a preset and a viewport are supplied."""
    if isinstance(data, dict) and data.get("device") is not None and data.get("viewport") is not None:
        logger.debug(
            "Both device and viewport supplied, keeping device preset",
            extra={"device": data.get("device")},
        )
        data = {key: value for key, value in data.items() if key != "viewport"}
    return data


# =============================================================================
# Base models
# =============================================================================


class RequestModel(BaseModel):
    """
    Base for caller-built request values.

    Frozen, camelCase on the wire, unknown fields rejected. Pydantic errors
    are re-raised as errors.ValidationError.
    """

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="forbid",
        loc_by_alias=False,
    )

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except PydanticValidationError as exc:
            raise ValidationError.from_pydantic(exc) from None

    @classmethod
    def create(cls, **fields: Any):
        """Validating constructor: returns a valid instance or raises ValidationError."""
        return cls(**fields)

    def model_copy(self, *, update: dict[str, Any] | None = None, deep: bool = False):
        """Copy with `update` applied; updated copies are validated again."""
        if not update:
            return super().model_copy(deep=deep)
        fields = self.model_dump(exclude_none=True)
        fields.update(update)
        return type(self)(**fields)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and unset fields omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ResponseModel(BaseModel):
    """Base for service responses: tolerant of extra and snake_case keys."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


# =============================================================================
# Capture request
# =============================================================================


class Viewport(RequestModel):
    """Explicit viewport size."""

    width: int = Field(..., ge=1, le=7680)
    height: int = Field(..., ge=1, le=7680)
    device_scale_factor: int | None = Field(default=None, ge=1, le=3)


class CaptureOptions(RequestModel):
    """
    Capture settings without a target URL.

    Used on its own for bulk defaults, per-item overrides and schedule
    options, where the output format may be supplied by another record.
    """

    # Options records may not know their final format yet
    _format_is_final: ClassVar[bool] = False

    device: str | None = None
    viewport: Viewport | None = None
    format: ImageFormat | None = None
    full_page: bool | None = None
    quality: int | None = None
    delay: int | None = Field(default=None, ge=0, le=30000)
    wait_for: str | None = None
    wait_until: WaitUntil | None = None
    timeout: int | None = Field(default=None, ge=1000, le=60000)
    dark_mode: bool | None = None
    custom_css: str | None = None
    hide_selectors: tuple[str, ...] | None = None
    selector: str | None = None
    block_ads: bool | None = None
    block_cookie_banners: bool | None = None
    block_level: BlockLevel | None = None

    @model_validator(mode="before")
    @classmethod
    def _device_wins(cls, data):
        return prefer_device_over_viewport(data)

    @field_validator("device")
    @classmethod
    def _check_device(cls, value):
        return check_device(value)

    @field_validator("quality")
    @classmethod
    def _check_quality(cls, value: int | None, info: ValidationInfo):
        if value is None:
            return None
        fmt = info.data.get("format")
        if cls._format_is_final and (fmt is None or not fmt.is_lossy):
            # PNG (the service default) and PDF ignore quality
            return None
        if not 1 <= value <= 100:
            raise ValueError("must be between 1 and 100")
        return value

    @field_validator("hide_selectors", mode="before")
    @classmethod
    def _normalize_selectors(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        elif isinstance(value, (set, frozenset)):
            value = sorted(value)
        seen: list[str] = []
        for selector in value:
            selector = str(selector).strip()
            if not selector:
                raise ValueError("selectors must be non-empty")
            if selector not in seen:
                seen.append(selector)
        return tuple(seen)

    @field_validator("wait_for", "selector", "custom_css")
    @classmethod
    def _non_blank(cls, value):
        if value is not None and not value.strip():
            raise ValueError("must not be blank")
        return value

    def merged_with(self, override: "CaptureOptions | None") -> "CaptureOptions":
        """
        Field-by-field merge, `override` taking precedence.

        The device/viewport pair is treated as one setting: an override that
        sets either replaces both.
        """
        if override is None:
            return self
        base = self.model_dump(exclude_none=True)
        updates = override.model_dump(exclude_none=True)
        if "device" in updates or "viewport" in updates:
            base.pop("device", None)
            base.pop("viewport", None)
        base.update(updates)
        return CaptureOptions(**base)


class CaptureRequest(CaptureOptions):
    """
    Screenshot capture request.

    Build with CaptureRequest.builder() or CaptureRequest.create(url=...).
    """

    _format_is_final: ClassVar[bool] = True

    url: str
    webhook_url: str | None = None
    webhook_secret: str | None = None
    response_type: ResponseType | None = None

    @field_validator("url", mode="before")
    @classmethod
    def _check_url(cls, value):
        if value is not None and not isinstance(value, str):
            value = str(value)
        return check_url(value)

    @field_validator("webhook_url")
    @classmethod
    def _check_webhook(cls, value):
        return check_url(value, required=False)

    @classmethod
    def builder(cls) -> "CaptureRequestBuilder":
        return CaptureRequestBuilder()

    @classmethod
    def from_options(cls, url: str, options: CaptureOptions | None = None) -> "CaptureRequest":
        """Combine a URL with an options record."""
        fields = options.model_dump(exclude_none=True) if options else {}
        return cls(url=url, **fields)

    @property
    def effective_format(self) -> ImageFormat:
        return self.format or ImageFormat.PNG


class CaptureRequestBuilder:
    """
    Fluent builder for CaptureRequest.

    The builder only collects values; build() runs the validation and
    returns a frozen CaptureRequest or raises ValidationError.
    """

    def __init__(self):
        self._fields: dict[str, Any] = {}

    def _set(self, name: str, value: Any) -> "CaptureRequestBuilder":
        self._fields[name] = value
        return self

    def url(self, url: str):
        return self._set("url", url)

    def device(self, device: str):
        return self._set("device", device)

    def viewport(self, width: int, height: int, device_scale_factor: int | None = None):
        return self._set(
            "viewport",
            {"width": width, "height": height, "device_scale_factor": device_scale_factor},
        )

    def format(self, fmt: ImageFormat | str):
        return self._set("format", fmt)

    def full_page(self, full_page: bool = True):
        return self._set("full_page", full_page)

    def quality(self, quality: int):
        return self._set("quality", quality)

    def delay(self, delay_ms: int):
        return self._set("delay", delay_ms)

    def wait_for(self, selector: str):
        return self._set("wait_for", selector)

    def wait_until(self, condition: WaitUntil | str):
        return self._set("wait_until", condition)

    def timeout(self, timeout_ms: int):
        return self._set("timeout", timeout_ms)

    def dark_mode(self, dark_mode: bool = True):
        return self._set("dark_mode", dark_mode)

    def custom_css(self, css: str):
        return self._set("custom_css", css)

    def hide_selectors(self, *selectors: str):
        return self._set("hide_selectors", selectors)

    def selector(self, selector: str):
        return self._set("selector", selector)

    def block_ads(self, block: bool = True):
        return self._set("block_ads", block)

    def block_cookie_banners(self, block: bool = True):
        return self._set("block_cookie_banners", block)

    def block_level(self, level: BlockLevel | str):
        return self._set("block_level", level)

    def webhook(self, url: str, secret: str | None = None):
        self._set("webhook_url", url)
        return self._set("webhook_secret", secret)

    def response_type(self, response_type: ResponseType | str):
        return self._set("response_type", response_type)

    def build(self) -> CaptureRequest:
        if "url" not in self._fields:
            raise ValidationError("url", "URL is required")
        return CaptureRequest(**self._fields)


# =============================================================================
# Async jobs
# =============================================================================


class JobHandle(ResponseModel):
    """Identifier of a submitted async job."""

    id: str
    submitted_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        validation_alias="createdAt",
    )
    status: JobStatus | None = None
    status_url: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_snake_case(cls, data):
        if isinstance(data, dict):
            data = dict(data)
            for key in ("created_at", "submitted_at", "submittedAt"):
                if key in data and "createdAt" not in data:
                    data["createdAt"] = data.pop(key)
            if data.get("createdAt") is None:
                data.pop("createdAt", None)
        return data


class Job(ResponseModel):
    """Status snapshot of an async screenshot job."""

    id: str
    status: JobStatus
    url: str | None = None
    result_url: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    expires_at: datetime | None = None
    metadata: dict[str, Any] | None = None
