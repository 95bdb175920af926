"""Collect hourly wind and particulate readings for one location into Postgres.

    python run_collector.py --lat 60.1695 --lon 24.9354 --start 2023-05-28 --end 2023-06-01

Anything not given on the command line comes from COLLECTOR_* environment
variables (see collector/config.py).
"""
import argparse
import asyncio
import datetime as dt
import sys
from contextlib import ExitStack
from typing import List, Optional

from pydantic import ValidationError

from collector.config import Settings
from collector.exceptions import CollectorError
from collector.fetch import RetryingFetcher, Sampler
from collector.models import Location
from collector.renderer.base import Renderer
from collector.scheduler import CollectionScheduler
from collector.storage.base import SampleSink
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="collector")

RENDER_TIMEOUT_GRACE_SECONDS = 5.0


def _date(value: str) -> dt.date:
    try:
        return dt.date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line overrides; unset options stay None."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--lat", type=float, help="latitude of the sampling point")
    parser.add_argument("--lon", type=float, help="longitude of the sampling point")
    parser.add_argument("--start", type=_date, help="first day to collect (YYYY-MM-DD, UTC)")
    parser.add_argument("--end", type=_date, help="day to stop before (YYYY-MM-DD, UTC, exclusive)")
    parser.add_argument("--concurrency", type=int, help="number of hours sampled in parallel")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    """Environment settings with command-line values layered on top."""
    overrides = {
        "latitude": args.lat,
        "longitude": args.lon,
        "start_date": args.start,
        "end_date": args.end,
        "max_concurrency": args.concurrency,
        "log_level": args.log_level,
    }
    return Settings(**{k: v for k, v in overrides.items() if v is not None})


def _midnight_utc(day: dt.date) -> dt.datetime:
    return dt.datetime.combine(day, dt.time.min, tzinfo=dt.timezone.utc)


async def collect(settings: Settings, sink: SampleSink, renderer: Renderer) -> None:
    """Wire fetcher, sampler and scheduler together and run the configured window."""
    fetcher = RetryingFetcher(
        renderer,
        attempts=settings.fetch_attempts,
        retry_delay=settings.retry_delay_seconds,
        # the renderer enforces render_timeout itself; this only catches a hung browser
        render_timeout=settings.render_timeout_seconds + RENDER_TIMEOUT_GRACE_SECONDS,
    )
    scheduler = CollectionScheduler(
        Sampler(fetcher),
        sink,
        max_concurrency=settings.max_concurrency,
        max_consecutive_failures=settings.max_consecutive_failures,
    )
    await scheduler.run(
        Location(settings.latitude, settings.longitude),
        _midnight_utc(settings.start_date),
        _midnight_utc(settings.end_date),
    )


async def _collect_with_browser(settings: Settings, sink: SampleSink) -> None:
    from collector.renderer.playwright_client import PlaywrightRenderer

    async with PlaywrightRenderer(
        browser=settings.browser,
        headless=settings.headless,
        settle_seconds=settings.settle_seconds,
        navigation_timeout=settings.render_timeout_seconds,
    ) as renderer:
        await collect(settings, sink, renderer)


def main(argv: Optional[List[str]] = None) -> int:
    """Run a collection; returns the process exit status."""
    args = parse_args(argv)
    try:
        settings = build_settings(args)
    except ValidationError as exc:
        setup_logging(level="INFO")
        logger.error("Invalid configuration:\n%s", exc)
        return 2
    setup_logging(level=settings.log_level.upper())

    from collector.storage.postgres import PostgresSampleSink

    try:
        sink = PostgresSampleSink.from_url(settings.resolved_database_url())
        sink.wait_until_ready(
            timeout=settings.db_ready_timeout_seconds,
            interval=settings.db_ready_interval_seconds,
        )
        sink.create_schema()

        with ExitStack() as stack:
            if settings.virtual_display:
                from collector.display import virtual_display

                stack.enter_context(virtual_display(settings.display, settings.display_screen))
            asyncio.run(_collect_with_browser(settings, sink))
    except (CollectorError, RuntimeError) as exc:
        logger.error("Collection failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
