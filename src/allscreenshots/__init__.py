# -*- coding: utf-8 -*-
"""
Allscreenshots SDK - async Python client for the Allscreenshots screenshot API.
"""
__version__ = "1.0.0"

from .batch_models import (  # noqa: E402
    BulkItem,
    BulkJob,
    BulkRequest,
    CaptureItem,
    ComposeJob,
    ComposeOutput,
    ComposeRequest,
    ComposeResult,
    LayoutType,
)
from .client import AllscreenshotsClient  # noqa: E402
from .errors import (  # noqa: E402
    AllscreenshotsError,
    ApiError,
    ConfigurationError,
    ErrorCode,
    JobCancelledError,
    JobFailedError,
    NetworkError,
    PollCancelledError,
    PollDeadlineExceededError,
    RequestTimeoutError,
    ResponseDecodeError,
    ValidationError,
)
from .models import (  # noqa: E402
    BlockLevel,
    CaptureOptions,
    CaptureRequest,
    ImageFormat,
    Job,
    JobHandle,
    JobStatus,
    Viewport,
    WaitUntil,
)
from .poller import JobPoller  # noqa: E402
from .retry import RetryPolicy  # noqa: E402
from .schedule_models import ScheduleRequest, ScheduleUpdate  # noqa: E402

__all__ = [
    "AllscreenshotsClient",
    "AllscreenshotsError",
    "ApiError",
    "BlockLevel",
    "BulkItem",
    "BulkJob",
    "BulkRequest",
    "CaptureItem",
    "CaptureOptions",
    "CaptureRequest",
    "ComposeJob",
    "ComposeOutput",
    "ComposeRequest",
    "ComposeResult",
    "ConfigurationError",
    "ErrorCode",
    "ImageFormat",
    "Job",
    "JobCancelledError",
    "JobFailedError",
    "JobHandle",
    "JobPoller",
    "JobStatus",
    "LayoutType",
    "NetworkError",
    "PollCancelledError",
    "PollDeadlineExceededError",
    "RequestTimeoutError",
    "ResponseDecodeError",
    "RetryPolicy",
    "ScheduleRequest",
    "ScheduleUpdate",
    "ValidationError",
    "Viewport",
    "WaitUntil",
    "__version__",
]
