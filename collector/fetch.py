"""Fetch rendered nullschool pages with retries and turn them into samples."""
from __future__ import annotations

import asyncio
import datetime as dt
from typing import Awaitable, Callable, Optional

from collector.exceptions import FetchExhaustedError, ParseError, RenderError
from collector.extract import (
    COORDS_SELECTOR,
    READING_SELECTOR,
    WIND_SELECTOR,
    extract_field,
    parse_reading,
    parse_wind,
)
from collector.models import Location, Overlay, Sample
from collector.renderer.base import Renderer
from utils.logging_utils import bind_time_point, get_tagged_logger

logger = get_tagged_logger(__name__, tag="fetch")

NULLSCHOOL_BASE_URL = "https://earth.nullschool.net/"
ORTHOGRAPHIC_SCALE = 631

DEFAULT_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 5.0
DEFAULT_RENDER_TIMEOUT = 30.0


def build_overlay_url(overlay: Overlay, time_point: dt.datetime, location: Location) -> str:
    """Address of the particulate map centred on `location` at `time_point` (UTC)."""
    date = time_point.strftime("%Y/%m/%d")
    time_of_day = time_point.strftime("%H%MZ")
    lon = f"{location.longitude:.6f}"
    lat = f"{location.latitude:.6f}"
    return (
        f"{NULLSCHOOL_BASE_URL}#{date}/{time_of_day}/particulates/surface/level/"
        f"overlay={overlay.value}/orthographic={lon},{lat},{ORTHOGRAPHIC_SCALE}/loc={lon},{lat}"
    )


class RetryingFetcher:
    """Render a URL, retrying transient failures a fixed number of times."""

    def __init__(
        self,
        renderer: Renderer,
        *,
        attempts: int = DEFAULT_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        render_timeout: Optional[float] = DEFAULT_RENDER_TIMEOUT,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.renderer = renderer
        self.attempts = attempts
        self.retry_delay = retry_delay
        self.render_timeout = render_timeout
        self._sleep = sleep

    async def fetch(self, url: str) -> str:
        """Return the rendered markup of `url`.

        Render errors and per-attempt timeouts are retried after
        `retry_delay` seconds; once all attempts fail, FetchExhaustedError is
        raised with the last failure as its cause.
        """
        last_error: Optional[BaseException] = None
        for attempt in range(1, self.attempts + 1):
            try:
                return await asyncio.wait_for(self.renderer.render(url), timeout=self.render_timeout)
            except (RenderError, asyncio.TimeoutError) as exc:
                last_error = exc
                logger.warning(
                    "Render attempt %d/%d failed for %s: %s",
                    attempt, self.attempts, url, str(exc) or type(exc).__name__,
                )
                if attempt < self.attempts:
                    logger.info("Retrying in %.1fs", self.retry_delay)
                    await self._sleep(self.retry_delay)
        raise FetchExhaustedError(url, self.attempts) from last_error


class Sampler:
    """Collect one complete Sample per time point, or discard the time point."""

    def __init__(self, fetcher: RetryingFetcher) -> None:
        self.fetcher = fetcher

    async def _fetch_reading(self, overlay: Overlay, location: Location, time_point: dt.datetime):
        markup = await self.fetcher.fetch(build_overlay_url(overlay, time_point, location))
        return markup, extract_field(markup, READING_SELECTOR)

    async def sample(self, location: Location, time_point: dt.datetime) -> Optional[Sample]:
        """Fetch the three overlays for `time_point`.

        Returns None when a field is missing or unparseable (the hour is not
        published for this place). FetchExhaustedError propagates.
        """
        log = bind_time_point(logger, time_point)

        # coordinates and wind do not depend on the overlay; read them once
        markup, pm1_text = await self._fetch_reading(Overlay.PM1, location, time_point)
        coords = extract_field(markup, COORDS_SELECTOR)
        wind_text = extract_field(markup, WIND_SELECTOR)
        if not coords or not wind_text or not pm1_text:
            log.warning(
                "Missing data for %s (coords=%r, wind=%r, reading=%r); skipping",
                Overlay.PM1.value, coords, wind_text, pm1_text,
            )
            return None

        try:
            direction, speed = parse_wind(wind_text)
        except ParseError as exc:
            log.warning("Unparseable wind; skipping: %s", exc)
            return None

        readings = {Overlay.PM1: pm1_text}
        for overlay in (Overlay.PM2_5, Overlay.PM10):
            _, text = await self._fetch_reading(overlay, location, time_point)
            if not text:
                log.warning("Missing %s reading; skipping", overlay.value)
                return None
            readings[overlay] = text

        try:
            values = {overlay: parse_reading(text) for overlay, text in readings.items()}
        except ParseError as exc:
            log.warning("Unparseable data; skipping: %s", exc)
            return None

        return Sample(
            timestamp=time_point,
            coords=coords,
            wind_direction=direction,
            wind_speed=speed,
            pm1=values[Overlay.PM1],
            pm25=values[Overlay.PM2_5],
            pm10=values[Overlay.PM10],
        )
