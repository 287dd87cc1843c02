# -*- coding: utf-8 -*-
"""
Schedule and usage models.

Cron expressions are only checked for shape here; field ranges and
day-of-month/day-of-week interplay are validated by the service.
"""
import re
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from .models import CaptureOptions, RequestModel, ResponseModel, check_url

CRON_MACROS = frozenset(
    {"@yearly", "@annually", "@monthly", "@weekly", "@daily", "@midnight", "@hourly"}
)

# One comma-separated element of a cron field: "*", "?", "5", "1-5", "MON-FRI",
# "*/15", "0-30/5", "L", "15W", "5#3", "5L"
_CRON_ELEMENT = re.compile(
    r"^(?:\*|\?|[0-9A-Za-z]+(?:-[0-9A-Za-z]+)?|[0-9]+[LW]|[0-9]+#[0-9]+|L|LW)(?:/[0-9]+)?$"
)
# IANA zone names: "UTC", "Japan", "EST5EDT", "America/New_York", "Etc/GMT+5"
_TIMEZONE = re.compile(r"^[A-Za-z][A-Za-z0-9_+\-]*(?:/[A-Za-z0-9_+\-]+)*$")


def check_cron(expression: str | None, required: bool = True) -> str | None:
    """Syntactic cron check: a macro, or 5 or 6 well-formed fields."""
    if expression is None:
        if required:
            raise ValueError("cron expression is required")
        return None
    expression = " ".join(expression.split())
    if not expression:
        raise ValueError("cron expression is required")
    if expression.startswith("@"):
        if expression.lower() not in CRON_MACROS:
            raise ValueError(f"unknown cron macro '{expression}'")
        return expression.lower()

    fields = expression.split(" ")
    if len(fields) not in (5, 6):
        raise ValueError(f"expected 5 or 6 fields, got {len(fields)}")
    for position, cron_field in enumerate(fields, start=1):
        for element in cron_field.split(","):
            if not _CRON_ELEMENT.match(element):
                raise ValueError(f"field {position} ('{cron_field}') is malformed")
    return expression


def check_timezone(value: str | None) -> str | None:
    """IANA-shaped zone name such as 'UTC' or 'America/New_York'."""
    if value is None:
        return None
    value = value.strip()
    if not _TIMEZONE.match(value):
        raise ValueError(f"'{value}' is not an IANA timezone name")
    return value


class ScheduleRequest(RequestModel):
    """Recurring capture definition."""

    name: str = Field(..., min_length=1, max_length=255)
    url: str
    schedule: str
    timezone: str | None = None
    options: CaptureOptions | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None
    retention_days: int | None = Field(default=None, ge=1, le=365)
    starts_at: datetime | None = None
    ends_at: datetime | None = None

    @field_validator("url")
    @classmethod
    def _check_url(cls, value):
        return check_url(value)

    @field_validator("webhook_url")
    @classmethod
    def _check_webhook(cls, value):
        return check_url(value, required=False)

    @field_validator("schedule")
    @classmethod
    def _check_schedule(cls, value):
        return check_cron(value)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value):
        return check_timezone(value)

    @field_validator("ends_at")
    @classmethod
    def _check_window(cls, value, info):
        starts_at = info.data.get("starts_at")
        if value is not None and starts_at is not None and value <= starts_at:
            raise ValueError("must be after starts_at")
        return value


class ScheduleUpdate(RequestModel):
    """Partial update of a schedule; only set fields are sent."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    url: str | None = None
    schedule: str | None = None
    timezone: str | None = None
    options: CaptureOptions | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None
    retention_days: int | None = Field(default=None, ge=1, le=365)
    starts_at: datetime | None = None
    ends_at: datetime | None = None

    @field_validator("url", "webhook_url")
    @classmethod
    def _check_urls(cls, value):
        return check_url(value, required=False)

    @field_validator("schedule")
    @classmethod
    def _check_schedule(cls, value):
        return check_cron(value, required=False)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value):
        return check_timezone(value)


class ScheduleExecution(ResponseModel):
    """One past run of a schedule."""

    id: str
    executed_at: datetime
    status: str
    result_url: str | None = None
    storage_url: str | None = None
    file_size: int | None = None
    render_time_ms: int | None = None
    error_code: str | None = None
    error_message: str | None = None
    expires_at: datetime | None = None


class Schedule(ResponseModel):
    """Schedule as stored by the service."""

    id: str
    name: str
    url: str
    schedule: str
    schedule_description: str | None = None
    timezone: str | None = None
    status: str
    options: dict[str, Any] | None = None
    webhook_url: str | None = None
    retention_days: int | None = None
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    last_executed_at: datetime | None = None
    next_execution_at: datetime | None = None
    execution_count: int | None = None
    success_count: int | None = None
    failure_count: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_paused(self) -> bool:
        return self.status.upper() == "PAUSED"


class ScheduleList(ResponseModel):
    schedules: list[Schedule] = Field(default_factory=list)
    total: int = 0


class ScheduleHistory(ResponseModel):
    """Append-only execution history of a schedule, newest first."""

    schedule_id: str
    total_executions: int = 0
    executions: list[ScheduleExecution] = Field(default_factory=list)


# =============================================================================
# Usage
# =============================================================================


class PeriodUsage(ResponseModel):
    period_start: str
    period_end: str
    screenshots_count: int
    bandwidth_bytes: int
    bandwidth_formatted: str


class UsageTotals(ResponseModel):
    screenshots_count: int
    bandwidth_bytes: int
    bandwidth_formatted: str


class UsageQuota(ResponseModel):
    monthly_limit: int
    monthly_bandwidth_bytes: int | None = None
    monthly_bandwidth_formatted: str | None = None


class UsageReport(ResponseModel):
    """Account usage for the current and past billing periods."""

    tier: str
    current_period: PeriodUsage
    quota: UsageQuota | None = None
    history: list[PeriodUsage] | None = None
    totals: UsageTotals | None = None


class QuotaDetail(ResponseModel):
    limit: int
    used: int
    remaining: int
    percent_used: int


class BandwidthQuota(ResponseModel):
    limit_bytes: int
    limit_formatted: str
    used_bytes: int
    used_formatted: str
    remaining_bytes: int
    remaining_formatted: str
    percent_used: int


class QuotaStatus(ResponseModel):
    """Remaining quota in the current period."""

    tier: str
    screenshots: QuotaDetail
    bandwidth: BandwidthQuota
    period_ends: str | None = None
