"""Hourly collection over a date window with a bounded number of in-flight samples."""
from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass
from typing import List

from collector.exceptions import CollectionAborted, FetchExhaustedError
from collector.fetch import Sampler
from collector.models import Location
from collector.storage.base import SampleSink
from utils.logging_utils import bind_time_point, get_tagged_logger

logger = get_tagged_logger(__name__, tag="scheduler")

STEP = dt.timedelta(hours=1)


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def generate_time_points(start: dt.datetime, end: dt.datetime) -> List[dt.datetime]:
    """Hourly instants `start, start+1h, ...` strictly before `end`.

    Naive datetimes are taken as UTC. An empty or inverted window yields [].
    """
    current, end = _as_utc(start), _as_utc(end)
    points: List[dt.datetime] = []
    while current < end:
        points.append(current)
        current += STEP
    return points


@dataclass
class RunStats:
    """Outcome counters for one run."""
    total: int = 0
    stored: int = 0
    discarded: int = 0
    failed: int = 0
    consecutive_failures: int = 0


class CollectionScheduler:
    """Dispatch one sampling task per time point behind an admission gate.

    The gate is a semaphore created for each run, so a task holds one of
    `max_concurrency` slots while it samples and gives it back whether it
    succeeded or not. Storage errors and CollectionAborted are fatal and
    cancel the remaining tasks; every other per-hour failure is logged and
    the hour is skipped.
    """

    def __init__(
        self,
        sampler: Sampler,
        sink: SampleSink,
        *,
        max_concurrency: int = 1,
        max_consecutive_failures: int = 3,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        if max_consecutive_failures < 0:
            raise ValueError("max_consecutive_failures must be >= 0")
        self.sampler = sampler
        self.sink = sink
        self.max_concurrency = max_concurrency
        self.max_consecutive_failures = max_consecutive_failures

    async def _process(
        self,
        gate: asyncio.Semaphore,
        stats: RunStats,
        location: Location,
        time_point: dt.datetime,
    ) -> None:
        log = bind_time_point(logger, time_point)
        async with gate:
            try:
                sample = await self.sampler.sample(location, time_point)
            except FetchExhaustedError as exc:
                stats.failed += 1
                stats.consecutive_failures += 1
                log.error("Giving up on this hour: %s", exc)
                limit = self.max_consecutive_failures
                if limit and stats.consecutive_failures >= limit:
                    raise CollectionAborted(
                        f"{stats.consecutive_failures} consecutive hours failed to render; aborting run"
                    ) from exc
                return

            stats.consecutive_failures = 0
            if sample is None:
                stats.discarded += 1
                return

            # storage errors propagate and abort the run
            await asyncio.to_thread(self.sink.store, sample)
            stats.stored += 1
            log.info(
                "Stored coords=%s wind=%d°/%d pm1=%s pm2.5=%s pm10=%s",
                sample.coords, sample.wind_direction, sample.wind_speed,
                sample.pm1, sample.pm25, sample.pm10,
            )

    async def run(self, location: Location, start: dt.datetime, end: dt.datetime) -> None:
        """Sample every hour of [start, end) and wait for all of them to finish."""
        time_points = generate_time_points(start, end)
        stats = RunStats(total=len(time_points))
        if not time_points:
            logger.info("Empty window %s .. %s; nothing to do", start, end)
            return

        logger.info(
            "Collecting %d hourly samples for (%s, %s) from %s to %s with concurrency %d",
            len(time_points), location.latitude, location.longitude,
            time_points[0].isoformat(), time_points[-1].isoformat(), self.max_concurrency,
        )
        gate = asyncio.Semaphore(self.max_concurrency)
        try:
            async with asyncio.TaskGroup() as group:
                for time_point in time_points:
                    group.create_task(self._process(gate, stats, location, time_point))
        except BaseExceptionGroup as eg:
            # surface the first fatal error itself rather than the group
            logger.error(
                "Run halted: stored=%d discarded=%d failed=%d of %d",
                stats.stored, stats.discarded, stats.failed, stats.total,
            )
            raise eg.exceptions[0]

        logger.info(
            "Run complete: stored=%d discarded=%d failed=%d of %d",
            stats.stored, stats.discarded, stats.failed, stats.total,
        )
