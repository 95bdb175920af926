"""Postgres-backed sample sink.

Rows go to `air_quality_data`, one per stored hour. The table is append-only:
re-running a window writes duplicate rows, there is no uniqueness constraint
on the timestamp.
"""

from __future__ import annotations

import time
from typing import Callable

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    Table,
    Text,
    create_engine,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from collector.exceptions import DatabaseNotReadyError, StorageError
from collector.models import Sample
from collector.storage.base import SampleSink
from utils.logging_utils import get_tagged_logger, mask_db_url

logger = get_tagged_logger(__name__, tag="storage/postgres_sink")

metadata = MetaData()

air_quality_data = Table(
    "air_quality_data",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Column("coords", Text, nullable=True),
    Column("wind_direction", Integer),
    Column("wind_speed", Integer),
    Column("pm1", Float),
    Column("pm25", Float),
    Column("pm10", Float),
)


class PostgresSampleSink(SampleSink):
    """Append samples to Postgres through a pooled SQLAlchemy engine."""

    def __init__(self, engine: Engine, *, table: Table = air_quality_data) -> None:
        """Bind to a database engine and optionally override the target table."""
        self.engine = engine
        self.table = table

    @classmethod
    def from_url(cls, database_url: str, **kwargs) -> "PostgresSampleSink":
        """Create an engine from a URL and build the sink."""
        logger.info("Connecting sink to %s", mask_db_url(database_url))
        engine = create_engine(database_url, future=True, pool_pre_ping=True)
        return cls(engine, **kwargs)

    def wait_until_ready(
        self,
        timeout: float = 30.0,
        interval: float = 1.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Ping the database until it answers, or raise DatabaseNotReadyError after `timeout`."""
        started = clock()
        attempt = 0
        while True:
            attempt += 1
            try:
                with self.engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                logger.info("Database ready after %d attempt(s)", attempt)
                return
            except SQLAlchemyError as exc:
                if clock() - started > timeout:
                    raise DatabaseNotReadyError(
                        f"Database not ready after {timeout:.0f}s: {exc}"
                    ) from exc
                logger.debug("Database not ready yet (attempt %d): %s", attempt, exc)
                sleep(interval)

    def create_schema(self) -> None:
        """Create the target table if it does not exist yet."""
        try:
            self.table.create(self.engine, checkfirst=True)
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to create table {self.table.name}: {exc}") from exc

    def store(self, sample: Sample) -> None:
        """Insert one row in its own transaction."""
        try:
            with self.engine.begin() as conn:
                conn.execute(self.table.insert().values(**sample.as_row()))
        except SQLAlchemyError as exc:
            raise StorageError(f"Failed to store sample for {sample.timestamp.isoformat()}: {exc}") from exc
