"""In-memory sample sink, intended for dry runs and tests."""

import threading
from typing import List

from collector.models import Sample
from collector.storage.base import SampleSink
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="storage/in_memory_sink")


class InMemorySampleSink(SampleSink):
    """Thread-safe list of stored samples, in arrival order."""

    def __init__(self) -> None:
        logger.debug("Initializing InMemorySampleSink")
        self._samples: List[Sample] = []
        self._lock = threading.Lock()

    def store(self, sample: Sample) -> None:
        """Append a sample."""
        with self._lock:
            self._samples.append(sample)

    @property
    def samples(self) -> List[Sample]:
        """Snapshot of the stored samples."""
        with self._lock:
            return list(self._samples)

    def clear(self) -> None:
        """Drop all stored samples."""
        with self._lock:
            self._samples.clear()
