"""
Central logging configuration for the air-quality collector.

Usage
-----
In the entrypoint:

    from utils.logging_utils import setup_logging

    def main() -> None:
        setup_logging(level="INFO", job_name="air_quality_collector")
        ...

In a module:

    from utils.logging_utils import get_tagged_logger

    logger = get_tagged_logger(__name__, tag="scheduler")
    logger.info("Dispatching %d time points", 24)

Per-time-point messages can carry the hour being sampled:

    log = bind_time_point(logger, time_point)
    log.warning("PM10 reading missing")

Every record ends up with job_name, tag and time_point fields so the
formatter never fails on a missing attribute.
"""

from __future__ import annotations

import datetime as dt
import logging
import logging.config
from typing import Any, Mapping, Optional


# Early records (before setup_logging runs) still get timestamps and levels.
BOOTSTRAP_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"
BOOTSTRAP_DATEFMT = "%Y-%m-%d %H:%M:%S"

logging.basicConfig(
    level=logging.INFO,
    format=BOOTSTRAP_FORMAT,
    datefmt=BOOTSTRAP_DATEFMT,
)


DEFAULT_LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(job_name)s | %(tag)s | %(time_point)s | %(message)s"
)
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
DEFAULT_JOB_NAME = "air_quality_collector"
TIME_POINT_FORMAT = "%Y-%m-%dT%H:%MZ"

_CONFIGURED: bool = False


class MaxLevelFilter(logging.Filter):
    """Allow only records up to (and including) `max_level`."""

    def __init__(self, max_level: int) -> None:
        super().__init__()
        self.max_level = max_level

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        return record.levelno <= self.max_level


class EnsureContextFilter(logging.Filter):
    """
    Make sure every record carries `tag` and `time_point`.

    Records from tagged adapters already have a tag; anything else (third-party
    libraries, plain loggers) gets the last segment of its logger name, e.g.
    "collector.storage.postgres" -> "postgres". Records not tied to an hour
    get "-" as their time point.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "tag"):
            logger_name = getattr(record, "name", "")
            record.tag = logger_name.split(".")[-1] if logger_name else "-"
        if not hasattr(record, "time_point"):
            record.time_point = "-"
        return True


class JobNameFilter(logging.Filter):
    """Inject a fixed `job_name` into every record."""

    def __init__(self, job_name: Optional[str] = None) -> None:
        super().__init__()
        self._job_name = job_name or "-"

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "job_name"):
            record.job_name = self._job_name
        return True


def build_logging_config(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = DEFAULT_JOB_NAME,
) -> Mapping[str, Any]:
    """
    Build a dictConfig-style logging configuration.

    DEBUG/INFO go to stdout, WARNING and above to stderr, so a collector
    run under a container runtime separates skipped hours and fatal errors
    from the progress stream.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "ensure_context": {"()": EnsureContextFilter},
            "job_name": {"()": JobNameFilter, "job_name": job_name},
            "stdout_max_info": {
                "()": MaxLevelFilter,
                "max_level": logging.INFO,
            },
        },
        "formatters": {
            "standard": {
                "format": log_format,
                "datefmt": date_format,
            },
        },
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["ensure_context", "job_name", "stdout_max_info"],
                "level": "DEBUG",
                "stream": "ext://sys.stdout",
            },
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "filters": ["ensure_context", "job_name"],
                "level": "WARNING",
                "stream": "ext://sys.stderr",
            },
        },
        "loggers": {
            # asyncio and the browser driver are chatty at DEBUG
            "asyncio": {"level": "WARNING"},
        },
        "root": {
            "level": level,
            "handlers": ["stdout", "stderr"],
        },
    }


def setup_logging(
    *,
    level: str | int = "INFO",
    log_format: str = DEFAULT_LOG_FORMAT,
    date_format: str = DEFAULT_DATE_FORMAT,
    job_name: Optional[str] = DEFAULT_JOB_NAME,
    override_existing: bool = False,
) -> None:
    """
    Configure process-wide logging once.

    Parameters
    ----------
    level:
        Root logger level (e.g., "DEBUG", "INFO").
    log_format:
        Formatter pattern. The default includes job_name, tag and time_point.
    date_format:
        Timestamp format for `asctime`.
    job_name:
        Logical name for this run, shown in `%(job_name)s`.
    override_existing:
        If False, repeated calls are no-ops after the first one.
    """
    global _CONFIGURED

    if _CONFIGURED and not override_existing:
        return

    config_dict = build_logging_config(
        level=level,
        log_format=log_format,
        date_format=date_format,
        job_name=job_name,
    )
    logging.config.dictConfig(config_dict)
    _CONFIGURED = True


def get_tagged_logger(
    name: str,
    *,
    tag: Optional[str] = None,
) -> logging.LoggerAdapter:
    """
    Return a LoggerAdapter that always carries a `tag` field.

    If `tag` is omitted it defaults to the last segment of `name`.
    """
    base_logger = logging.getLogger(name)
    if tag is None:
        tag = name.split(".")[-1]
    return logging.LoggerAdapter(base_logger, {"tag": tag})


def bind_time_point(logger: logging.LoggerAdapter, time_point: dt.datetime) -> logging.LoggerAdapter:
    """Return an adapter that adds `time_point` to the tagged logger's fields."""
    extra = dict(logger.extra or {})
    extra["time_point"] = time_point.strftime(TIME_POINT_FORMAT)
    return logging.LoggerAdapter(logger.logger, extra)


def mask_db_url(url: str) -> str:
    """Return a copy of a DB connection URL with credentials masked.

    Examples
    --------
    - postgresql+psycopg2://user:secret@db:5432/air -> postgresql+psycopg2://***:***@db:5432/air
    - sqlite:///tmp/air.sqlite -> unchanged
    """
    from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

    try:
        parsed = urlparse(url)
    except Exception:
        return url

    masked_query_pairs = []
    for key, value in parse_qsl(parsed.query, keep_blank_values=True):
        if any(token in key.lower() for token in ("pass", "pwd", "secret", "token", "key")):
            masked_query_pairs.append((key, "***"))
        else:
            masked_query_pairs.append((key, value))
    masked_query = urlencode(masked_query_pairs)

    netloc = ""
    if parsed.username:
        netloc += "***"
        if parsed.password is not None:
            netloc += ":***"
        netloc += "@"
    if parsed.hostname:
        netloc += parsed.hostname
    if parsed.port:
        netloc += f":{parsed.port}"

    # sqlite/file URLs have no netloc; keep the triple-slash form
    if not netloc and parsed.netloc == "" and (parsed.path or "").startswith("/"):
        base = f"{parsed.scheme}:///{(parsed.path or '').lstrip('/')}"
        if masked_query:
            base = f"{base}?{masked_query}"
        return base

    return urlunparse(
        (parsed.scheme, netloc, parsed.path or "", parsed.params or "", masked_query, parsed.fragment or "")
    )
