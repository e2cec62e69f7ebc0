"""Base document sink class and write-batch model."""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config.models import SinkConfig
from ..errors import SinkError

DEFAULT_LOG_INDEX = "logs-generic.log-default"


@dataclass
class IndexBatch:
    """
    Flattened write-batch: one ``create`` action plus document per record.

    ``operations`` alternates action and document entries in request order.
    """

    operations: List[Dict[str, Any]] = field(default_factory=list)

    def add(self, index: str, document: Dict[str, Any]) -> None:
        self.operations.append({"create": {"_index": index}})
        self.operations.append(document)

    def pairs(self) -> List[Tuple[str, Dict[str, Any]]]:
        """(index, document) pairs in request order."""
        ops = self.operations
        return [(ops[i]["create"]["_index"], ops[i + 1]) for i in range(0, len(ops), 2)]

    def by_index(self) -> Dict[str, List[Dict[str, Any]]]:
        """Documents grouped by target index, first-seen index order."""
        grouped: Dict[str, List[Dict[str, Any]]] = {}
        for index, doc in self.pairs():
            grouped.setdefault(index, []).append(doc)
        return grouped

    def __len__(self) -> int:
        return len(self.operations) // 2


def index_for_document(document: Dict[str, Any]) -> str:
    """Target collection for a log document, from its data stream fields."""
    dataset = document.get("data_stream.dataset")
    if not dataset:
        return DEFAULT_LOG_INDEX
    namespace = document.get("data_stream.namespace") or "default"
    return f"logs-{dataset}-{namespace}"


@dataclass
class IngestResult:
    """Result of an ingest operation."""

    success: bool
    documents_written: int
    documents_failed: int
    duration_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)

    def merge(self, other: "IngestResult") -> "IngestResult":
        return IngestResult(
            success=self.success and other.success,
            documents_written=self.documents_written + other.documents_written,
            documents_failed=self.documents_failed + other.documents_failed,
            duration_seconds=self.duration_seconds + other.duration_seconds,
            errors=self.errors + other.errors,
            details={**self.details, **other.details},
        )


class DocumentSink(ABC):
    """Base class for bulk-write sinks."""

    # Override in subclasses
    name: str = "base"

    def __init__(self, config: Optional[SinkConfig] = None):
        """Initialize the sink with configuration."""
        self.config = config or SinkConfig(type=self.name)

    @abstractmethod
    def ingest(self, collection: str, documents: List[Dict[str, Any]]) -> IngestResult:
        """Write documents to one collection."""
        pass

    def write_batch(
        self,
        batch: IndexBatch,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> IngestResult:
        """
        Write a flattened batch, one ingest call per collection.

        Args:
            batch: Write-batch from the orchestrator
            progress_callback: Optional callback(current, total) for progress updates

        Returns:
            Combined IngestResult

        Raises:
            SinkError: If documents were rejected and ``fail_on_error`` is set
        """
        start_time = time.time()
        grouped = batch.by_index()
        total = len(batch)
        done = 0
        result = IngestResult(success=True, documents_written=0, documents_failed=0)

        for collection, documents in grouped.items():
            try:
                part = self.ingest(collection, documents)
            except SinkError as e:
                part = IngestResult(False, 0, len(documents), errors=[f"{collection}: {e}"])
            result = result.merge(part)
            done += len(documents)
            if progress_callback:
                progress_callback(done, total)

        result.duration_seconds = time.time() - start_time
        result.details.update({"sink": self.name, "collections": list(grouped)})

        if result.documents_failed and self.config.fail_on_error:
            raise SinkError(
                f"{result.documents_failed} of {total} documents rejected by {self.name} sink: "
                + "; ".join(result.errors[:3])
            )
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(type={self.config.type})"
