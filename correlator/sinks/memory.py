"""In-memory sink, used for dry runs and tests."""

from typing import Any, Dict, List, Optional, Set

from ..config.models import SinkConfig
from .base import DocumentSink, IngestResult


class MemorySink(DocumentSink):
    """Keeps documents in a dict keyed by collection."""

    name = "memory"

    def __init__(self, config: Optional[SinkConfig] = None, reject: Optional[Set[str]] = None):
        """
        Args:
            config: Sink configuration
            reject: Collections whose documents are refused
        """
        super().__init__(config)
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.reject = set(reject or ())

    def ingest(self, collection: str, documents: List[Dict[str, Any]]) -> IngestResult:
        if collection in self.reject:
            return IngestResult(
                success=False,
                documents_written=0,
                documents_failed=len(documents),
                errors=[f"{collection}: rejected"],
            )
        self.collections.setdefault(collection, []).extend(documents)
        return IngestResult(success=True, documents_written=len(documents), documents_failed=0)

    def count(self, collection: Optional[str] = None) -> int:
        if collection is not None:
            return len(self.collections.get(collection, []))
        return sum(len(docs) for docs in self.collections.values())
