# -*- coding: utf-8 -*-
"""
Async client for the Allscreenshots REST API.

Every call goes through one path: build headers, send via the transport,
classify non-success responses into ApiError, and retry transient
failures according to the client's RetryPolicy.
"""
import base64
import binascii
import json
import logging
from typing import Any, Awaitable, Callable, Mapping, TypeVar
from urllib.parse import quote, urlencode

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from . import __version__
from .batch_models import (
    BulkJob,
    BulkRequest,
    ComposeJob,
    ComposeRequest,
    ComposeResult,
    LayoutPreview,
    LayoutType,
)
from .config import API_KEY_HEADER, ClientConfig, Settings, settings
from .context import operation_scope
from .errors import (
    ApiError,
    ConfigurationError,
    ErrorCode,
    ResponseDecodeError,
    ValidationError,
)
from .models import CaptureRequest, ImageFormat, Job, JobHandle
from .retry import RetryPolicy
from .schedule_models import (
    QuotaStatus,
    Schedule,
    ScheduleHistory,
    ScheduleList,
    ScheduleRequest,
    ScheduleUpdate,
    UsageReport,
)
from .transport import HttpxTransport, Transport, TransportResponse

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

JSON_CONTENT_TYPE = "application/json"
IMAGE_ACCEPT = "image/*, application/pdf, application/json"


# =============================================================================
# Response decoding
# =============================================================================


def _load_json(body: bytes) -> Any:
    try:
        return json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise ResponseDecodeError(f"Response is not valid JSON: {e}") from e


def parse_error_response(response: TransportResponse) -> ApiError:
    """Classify a non-success response, keeping status and message intact."""
    status = response.status_code
    raw_code = None
    message = None

    try:
        data = json.loads(response.body.decode("utf-8")) if response.body else None
    except (UnicodeDecodeError, ValueError):
        data = None

    if isinstance(data, dict):
        raw_code = data.get("errorCode") or data.get("error_code") or data.get("code")
        for key in ("errorMessage", "error_message", "message", "error", "detail"):
            if data.get(key):
                message = data[key] if isinstance(data[key], str) else json.dumps(data[key])
                break

    if raw_code is not None:
        raw_code = str(raw_code)
        code = ErrorCode.parse(raw_code)
    else:
        code = ErrorCode.from_status(status)

    return ApiError(
        code=code,
        message=message or f"HTTP {status} error",
        http_status=status,
        raw_code=raw_code,
    )


def decode_data_uri(value: str) -> bytes:
    """Decode a base64 data URI ("data:image/png;base64,...") or bare base64."""
    payload = value.split(",", 1)[1] if value.startswith("data:") else value
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ResponseDecodeError(f"Image payload is not valid base64: {e}") from e


def decode_image_response(response: TransportResponse) -> bytes:
    """
    Extract image bytes from a successful capture response.

    Supports a raw binary body (Content-Type image/* or application/pdf)
    and the JSON envelope {"success": bool, "image": str, "error": str|null}.
    """
    if response.content_type != JSON_CONTENT_TYPE:
        if not response.body:
            raise ResponseDecodeError("Empty response body")
        return response.body

    data = _load_json(response.body)
    if not isinstance(data, dict):
        raise ResponseDecodeError("Unexpected JSON response shape")

    if data.get("success") is False:
        raw_code = data.get("errorCode")
        raise ApiError(
            code=ErrorCode.parse(raw_code),
            message=data.get("error") or "Capture failed",
            http_status=response.status_code,
            raw_code=raw_code,
        )

    image = data.get("image")
    if not image:
        raise ResponseDecodeError("JSON response carries no image")
    return decode_data_uri(image)


def _parse_model(model: type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ResponseDecodeError(f"Unexpected {model.__name__} payload: {e}") from e


def _parse_list(model: type[M], data: Any) -> list[M]:
    # Some list endpoints wrap results: {"jobs": [...]} / {"items": [...]}
    if isinstance(data, dict):
        for key in ("items", "jobs", "data", "results"):
            if isinstance(data.get(key), list):
                data = data[key]
                break
    try:
        return TypeAdapter(list[model]).validate_python(data)
    except PydanticValidationError as e:
        raise ResponseDecodeError(f"Unexpected {model.__name__} list payload: {e}") from e


def _path_id(value: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError("id", "must not be empty")
    return quote(str(value), safe="")


# =============================================================================
# Client
# =============================================================================


class AllscreenshotsClient:
    """
    Async client for the Allscreenshots API.

    Configuration is read once at construction and never changes; the
    client keeps no per-operation state, so one instance can serve many
    concurrent tasks.

    Example:
        async with AllscreenshotsClient() as client:
            request = CaptureRequest.builder().url("https://github.com").device("Desktop HD").build()
            image = await client.screenshot(request)
    """

    def __init__(
            self,
            api_key: str | None = None,
            base_url: str | None = None,
            timeout: float | None = None,
            max_retries: int | None = None,
            *,
            transport: Transport | None = None,
            retry_policy: RetryPolicy | None = None,
            sleep: Callable[[float], Awaitable[None]] | None = None,
            config: Settings | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: API key. Defaults to ALLSCREENSHOTS_API_KEY.
            base_url: API root. Defaults to ALLSCREENSHOTS_BASE_URL.
            timeout: Per-call timeout in seconds. Defaults to ALLSCREENSHOTS_TIMEOUT.
            max_retries: Retries after the first attempt. Defaults to ALLSCREENSHOTS_MAX_RETRIES.
            transport: Custom transport (tests, alternative HTTP stacks).
            retry_policy: Full backoff policy; overrides max_retries.
            sleep: Awaitable sleep used by retries and polling.
            config: Settings instance to read defaults from.
        """
        source = config or settings
        key = api_key if api_key is not None else source.API_KEY
        if not key or not key.strip():
            raise ConfigurationError(
                "API key is required: pass api_key or set ALLSCREENSHOTS_API_KEY"
            )

        retries = max_retries if max_retries is not None else source.MAX_RETRIES
        if retry_policy is None:
            retry_policy = RetryPolicy(
                max_retries=retries,
                base_delay=source.RETRY_BASE_DELAY,
                max_delay=source.RETRY_MAX_DELAY,
                jitter=source.RETRY_JITTER,
            )

        self.config = ClientConfig(
            api_key=key.strip(),
            base_url=(base_url or source.BASE_URL).rstrip("/"),
            timeout=timeout if timeout is not None else source.TIMEOUT,
            max_retries=retry_policy.max_retries,
            retry_base_delay=retry_policy.base_delay,
            retry_max_delay=retry_policy.max_delay,
            retry_jitter=retry_policy.jitter,
            poll_interval=source.POLL_INTERVAL,
            poll_deadline=source.POLL_DEADLINE,
            user_agent=source.USER_AGENT or f"allscreenshots-python/{__version__}",
        )
        self.retry_policy = retry_policy
        self.sleep = sleep
        self._transport = transport or HttpxTransport(
            self.config.base_url, timeout=self.config.timeout
        )

    @classmethod
    def from_env(cls, **kwargs) -> "AllscreenshotsClient":
        """Create a client configured entirely from ALLSCREENSHOTS_* variables."""
        return cls(config=Settings(), **kwargs)

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def __aenter__(self) -> "AllscreenshotsClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # =========================================================================
    # Request path
    # =========================================================================

    def _headers(self, accept: str, has_body: bool) -> dict[str, str]:
        headers = {
            API_KEY_HEADER: self.config.api_key,
            "Accept": accept,
            "User-Agent": self.config.user_agent,
        }
        if has_body:
            headers["Content-Type"] = JSON_CONTENT_TYPE
        return headers

    async def request(
            self,
            method: str,
            path: str,
            body: Mapping[str, Any] | None = None,
            accept: str = JSON_CONTENT_TYPE,
    ) -> TransportResponse:
        """
        Send one logical request, retrying transient failures.

        The identical request is re-sent on each attempt. Non-retryable
        errors and the last error after the budget is spent propagate
        unchanged.
        """
        payload = json.dumps(body).encode("utf-8") if body is not None else None
        headers = self._headers(accept, payload is not None)

        async def attempt() -> TransportResponse:
            response = await self._transport.send(method, path, headers, payload)
            if not response.is_success:
                raise parse_error_response(response)
            return response

        with operation_scope():
            logger.debug(f"{method} {path}", extra={"method": method, "path": path})
            try:
                return await self.retry_policy.run(attempt, sleep=self.sleep)
            except ApiError as e:
                logger.warning(
                    f"{method} {path} failed: {e}",
                    extra={"http_status": e.http_status, "error_code": e.raw_code},
                )
                raise

    async def _get(self, path: str, model: type[M]) -> M:
        response = await self.request("GET", path)
        return _parse_model(model, _load_json(response.body))

    async def _get_list(self, path: str, model: type[M]) -> list[M]:
        response = await self.request("GET", path)
        return _parse_list(model, _load_json(response.body))

    async def _post(self, path: str, body: Mapping[str, Any] | None, model: type[M]) -> M:
        response = await self.request("POST", path, body)
        return _parse_model(model, _load_json(response.body))

    async def _put(self, path: str, body: Mapping[str, Any], model: type[M]) -> M:
        response = await self.request("PUT", path, body)
        return _parse_model(model, _load_json(response.body))

    # =========================================================================
    # Screenshots
    # =========================================================================

    async def screenshot(self, request: CaptureRequest) -> bytes:
        """
        Capture a screenshot synchronously.

        Args:
            request: Validated capture request

        Returns:
            Raw image bytes in the request's format
        """
        with operation_scope():
            logger.info(
                "Capturing screenshot",
                extra={"url": request.url[:80], "format": request.effective_format.value},
            )
            response = await self.request(
                "POST", "/v1/screenshots", request.to_wire(), accept=IMAGE_ACCEPT
            )
            image = decode_image_response(response)
            logger.info(
                "Capture success",
                extra={"url": request.url[:60], "size_bytes": len(image)},
            )
            return image

    async def screenshot_async(self, request: CaptureRequest) -> JobHandle:
        """Submit a capture as an async job and return its handle."""
        handle = await self._post("/v1/screenshots/async", request.to_wire(), JobHandle)
        logger.info("Async job submitted", extra={"job_id": handle.id, "url": request.url[:60]})
        return handle

    async def list_jobs(self) -> list[Job]:
        return await self._get_list("/v1/screenshots/jobs", Job)

    async def get_job(self, job_id: str) -> Job:
        """Current status of an async job."""
        return await self._get(f"/v1/screenshots/jobs/{_path_id(job_id)}", Job)

    async def get_job_result(self, job_id: str) -> bytes:
        """Image bytes of a completed job."""
        response = await self.request(
            "GET", f"/v1/screenshots/jobs/{_path_id(job_id)}/result", accept=IMAGE_ACCEPT
        )
        return decode_image_response(response)

    async def cancel_job(self, job_id: str) -> Job:
        return await self._post(f"/v1/screenshots/jobs/{_path_id(job_id)}/cancel", None, Job)

    # =========================================================================
    # Bulk
    # =========================================================================

    async def create_bulk_job(self, request: BulkRequest) -> BulkJob:
        """
        Submit many URLs as one job.

        Items are sent with their defaults already merged in. Progress is
        queried with get_bulk_job().
        """
        job = await self._post("/v1/screenshots/bulk", request.to_wire(), BulkJob)
        logger.info(
            "Bulk job submitted",
            extra={"job_id": job.id, "total_jobs": job.total_jobs or len(request.items)},
        )
        return job

    async def list_bulk_jobs(self) -> list[BulkJob]:
        return await self._get_list("/v1/screenshots/bulk", BulkJob)

    async def get_bulk_job(self, job_id: str) -> BulkJob:
        return await self._get(f"/v1/screenshots/bulk/{_path_id(job_id)}", BulkJob)

    async def cancel_bulk_job(self, job_id: str) -> BulkJob:
        return await self._post(f"/v1/screenshots/bulk/{_path_id(job_id)}/cancel", None, BulkJob)

    # =========================================================================
    # Compose
    # =========================================================================

    async def compose(self, request: ComposeRequest) -> ComposeResult:
        """
        Capture several pages and combine them into one image.

        Returns:
            ComposeResult with inline `image` bytes when the service answers
            with an image, otherwise with a retrievable `url`.
        """
        wire = request.to_wire()
        wire.pop("async", None)
        response = await self.request(
            "POST", "/v1/screenshots/compose", wire, accept=IMAGE_ACCEPT
        )
        if response.content_type != JSON_CONTENT_TYPE:
            fmt = response.content_type.split("/")[-1] or None
            return ComposeResult(image=decode_image_response(response), format=fmt)
        result = _parse_model(ComposeResult, _load_json(response.body))
        if result.url is None and result.storage_url is None:
            raise ResponseDecodeError("Compose response carries neither image nor URL")
        return result

    async def compose_async(self, request: ComposeRequest) -> ComposeJob:
        """Submit a composition as an async job."""
        wire = request.to_wire()
        wire["async"] = True
        return await self._post("/v1/screenshots/compose", wire, ComposeJob)

    async def list_compose_jobs(self) -> list[ComposeJob]:
        return await self._get_list("/v1/screenshots/compose/jobs", ComposeJob)

    async def get_compose_job(self, job_id: str) -> ComposeJob:
        return await self._get(f"/v1/screenshots/compose/jobs/{_path_id(job_id)}", ComposeJob)

    async def preview_layout(
            self,
            layout: LayoutType | str,
            image_count: int,
            canvas_width: int | None = None,
            canvas_height: int | None = None,
            aspect_ratios: list[float] | str | None = None,
    ) -> LayoutPreview:
        """Compute image placement for a layout without rendering anything."""
        try:
            layout = LayoutType(layout)
        except ValueError:
            raise ValidationError("layout", f"unknown layout '{layout}'") from None
        if image_count < 1:
            raise ValidationError("image_count", "must be at least 1")
        params: dict[str, Any] = {"layout": layout.value, "image_count": image_count}
        if canvas_width is not None:
            params["canvas_width"] = canvas_width
        if canvas_height is not None:
            params["canvas_height"] = canvas_height
        if aspect_ratios is not None:
            params["aspect_ratios"] = (
                aspect_ratios if isinstance(aspect_ratios, str)
                else ",".join(f"{ratio:g}" for ratio in aspect_ratios)
            )
        return await self._get(f"/v1/screenshots/compose/preview?{urlencode(params)}", LayoutPreview)

    # =========================================================================
    # Schedules
    # =========================================================================

    async def create_schedule(self, request: ScheduleRequest) -> Schedule:
        schedule = await self._post("/v1/schedules", request.to_wire(), Schedule)
        logger.info("Schedule created", extra={"schedule_id": schedule.id, "cron": schedule.schedule})
        return schedule

    async def list_schedules(self) -> ScheduleList:
        return await self._get("/v1/schedules", ScheduleList)

    async def get_schedule(self, schedule_id: str) -> Schedule:
        return await self._get(f"/v1/schedules/{_path_id(schedule_id)}", Schedule)

    async def update_schedule(self, schedule_id: str, update: ScheduleUpdate) -> Schedule:
        return await self._put(f"/v1/schedules/{_path_id(schedule_id)}", update.to_wire(), Schedule)

    async def delete_schedule(self, schedule_id: str) -> None:
        await self.request("DELETE", f"/v1/schedules/{_path_id(schedule_id)}")
        logger.info("Schedule deleted", extra={"schedule_id": schedule_id})

    async def pause_schedule(self, schedule_id: str) -> Schedule:
        return await self._post(f"/v1/schedules/{_path_id(schedule_id)}/pause", None, Schedule)

    async def resume_schedule(self, schedule_id: str) -> Schedule:
        return await self._post(f"/v1/schedules/{_path_id(schedule_id)}/resume", None, Schedule)

    async def trigger_schedule(self, schedule_id: str) -> Schedule:
        """Run a schedule now, outside its recurrence."""
        return await self._post(f"/v1/schedules/{_path_id(schedule_id)}/trigger", None, Schedule)

    async def get_schedule_history(self, schedule_id: str, limit: int | None = None) -> ScheduleHistory:
        path = f"/v1/schedules/{_path_id(schedule_id)}/history"
        if limit is not None:
            if limit < 1:
                raise ValidationError("limit", "must be at least 1")
            path += f"?{urlencode({'limit': limit})}"
        return await self._get(path, ScheduleHistory)

    # =========================================================================
    # Usage
    # =========================================================================

    async def get_usage(self) -> UsageReport:
        return await self._get("/v1/usage", UsageReport)

    async def get_quota(self) -> QuotaStatus:
        return await self._get("/v1/usage/quota", QuotaStatus)


def image_suffix(fmt: ImageFormat | None) -> str:
    """File suffix for a capture format."""
    fmt = fmt or ImageFormat.PNG
    return ".jpg" if fmt is ImageFormat.JPEG else f".{fmt.value}"
