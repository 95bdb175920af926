"""Sample storage backends."""

from .base import SampleSink
from .memory import InMemorySampleSink
from .postgres import PostgresSampleSink, air_quality_data

__all__ = [
    "SampleSink",
    "InMemorySampleSink",
    "PostgresSampleSink",
    "air_quality_data",
]
