"""Bulk-write sinks for generated alerts and logs.

This module provides sinks for flattened write-batches:
- file: NDJSON or JSON files, one per collection
- memory: in-process collections (dry runs, tests)
"""

from typing import Optional

from ..config.models import SinkConfig
from .base import DEFAULT_LOG_INDEX, DocumentSink, IndexBatch, IngestResult, index_for_document
from .file import FileSink
from .memory import MemorySink

SINKS = {
    "file": FileSink,
    "memory": MemorySink,
}


def get_sink(sink_type: str, config: Optional[SinkConfig] = None) -> DocumentSink:
    """Get the appropriate sink for a sink type."""
    sink_class = SINKS.get(sink_type.lower())
    if not sink_class:
        supported = ", ".join(sorted(SINKS.keys()))
        raise ValueError(f"Unknown sink type: {sink_type}. Supported: {supported}")
    return sink_class(config)


def list_supported_sinks() -> list:
    """List all supported sink types."""
    return sorted(SINKS.keys())


__all__ = [
    "DEFAULT_LOG_INDEX",
    "DocumentSink",
    "FileSink",
    "IndexBatch",
    "IngestResult",
    "MemorySink",
    "get_sink",
    "index_for_document",
    "list_supported_sinks",
]
