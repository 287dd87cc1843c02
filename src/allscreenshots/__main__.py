# -*- coding: utf-8 -*-
"""
Entry point to capture a screenshot via python -m allscreenshots.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .client import AllscreenshotsClient, image_suffix
from .config import settings
from .errors import AllscreenshotsError, ConfigurationError
from .logging_config import setup_logging
from .models import DEVICE_PRESETS, CaptureRequest, ImageFormat
from .poller import JobPoller

logger = logging.getLogger("allscreenshots.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="allscreenshots",
        description="Capture a screenshot with the Allscreenshots API.",
    )
    parser.add_argument("url", help="Page to capture")
    parser.add_argument("-o", "--output", type=Path, help="Output file (default: screenshot.<format>)")
    parser.add_argument("--device", choices=DEVICE_PRESETS, help="Device preset")
    parser.add_argument("--format", choices=[f.value for f in ImageFormat], default="png")
    parser.add_argument("--quality", type=int, help="1-100, for jpeg/webp")
    parser.add_argument("--full-page", action="store_true")
    parser.add_argument("--dark-mode", action="store_true")
    parser.add_argument("--delay", type=int, help="Delay before capture (ms)")
    parser.add_argument(
        "--async", dest="use_async", action="store_true",
        help="Submit as an async job and poll for the result",
    )
    parser.add_argument("--poll-interval", type=float, default=settings.POLL_INTERVAL)
    parser.add_argument("--deadline", type=float, default=settings.POLL_DEADLINE)
    parser.add_argument("--log-level", default=settings.LOG_LEVEL, help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
    return parser


def build_request(args: argparse.Namespace) -> CaptureRequest:
    builder = CaptureRequest.builder().url(args.url).format(args.format)
    if args.device:
        builder.device(args.device)
    if args.quality is not None:
        builder.quality(args.quality)
    if args.full_page:
        builder.full_page()
    if args.dark_mode:
        builder.dark_mode()
    if args.delay is not None:
        builder.delay(args.delay)
    return builder.build()


async def run(args: argparse.Namespace) -> Path:
    request = build_request(args)
    output = args.output or Path(f"screenshot{image_suffix(request.format)}")

    async with AllscreenshotsClient() as client:
        if args.use_async:
            image = await JobPoller(client).capture(
                request, poll_interval=args.poll_interval, deadline=args.deadline
            )
        else:
            image = await client.screenshot(request)

    output.write_bytes(image)
    return output


def check_args(args: argparse.Namespace) -> None:
    """Reject polling settings the poller would refuse."""
    if args.poll_interval <= 0:
        raise ConfigurationError("--poll-interval must be > 0")
    if args.deadline <= 0:
        raise ConfigurationError("--deadline must be > 0")


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, capture, write the image."""
    args = build_parser().parse_args(argv)
    try:
        setup_logging(args.log_level, stream=sys.stderr)
    except ConfigurationError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    try:
        check_args(args)
        output = asyncio.run(run(args))
    except AllscreenshotsError as e:
        logger.error(f"Capture failed: {e}", extra={"error_kind": type(e).__name__})
        print(f"error: {e}", file=sys.stderr)
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
