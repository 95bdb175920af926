"""Shared protocol for sample sinks."""

from typing import Protocol

from collector.models import Sample


class SampleSink(Protocol):
    """Protocol for durable sample storage.

    Implementations must tolerate concurrent calls from several worker
    threads; the scheduler does not serialize writes.
    """

    def store(self, sample: Sample) -> None:
        """Append one row for `sample`; raise StorageError if the write fails."""
