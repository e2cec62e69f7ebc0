"""File sink: one NDJSON or JSON file per collection."""

import json
import logging
import re
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.models import SinkConfig
from ..errors import SinkError
from .base import DocumentSink, IngestResult

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


class FileSink(DocumentSink):
    """
    Writes each collection to ``<output_dir>/<collection>.<ext>``.

    NDJSON files are appended to; JSON files hold one array and are
    rewritten with the existing documents plus the new ones.
    """

    name = "file"

    def __init__(self, config: Optional[SinkConfig] = None):
        super().__init__(config)
        self.output_dir = Path(self.config.output_dir)

    def path_for(self, collection: str) -> Path:
        safe = _UNSAFE.sub("_", collection).lstrip(".") or "collection"
        return self.output_dir / f"{safe}.{self.config.format}"

    def ingest(self, collection: str, documents: List[Dict[str, Any]]) -> IngestResult:
        start_time = time.time()
        path = self.path_for(collection)
        errors: List[str] = []
        written = 0

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SinkError(f"Cannot create {path.parent}: {e}")

        if self.config.format == "json":
            written, errors = self._write_json(path, documents)
        else:
            written, errors = self._write_ndjson(path, documents)

        failed = len(documents) - written
        logger.debug("Wrote %d documents to %s (%d failed)", written, path, failed)
        return IngestResult(
            success=failed == 0,
            documents_written=written,
            documents_failed=failed,
            duration_seconds=time.time() - start_time,
            errors=errors,
            details={"path": str(path)},
        )

    def _write_ndjson(self, path: Path, documents: List[Dict[str, Any]]):
        errors = []
        written = 0
        try:
            with open(path, "a") as f:
                for i, doc in enumerate(documents):
                    try:
                        line = json.dumps(doc, default=str)
                    except (TypeError, ValueError) as e:
                        errors.append(f"Document {i + 1}: {e}")
                        continue
                    f.write(line + "\n")
                    written += 1
        except OSError as e:
            raise SinkError(f"Cannot write {path}: {e}")
        return written, errors

    def _write_json(self, path: Path, documents: List[Dict[str, Any]]):
        existing: List[Dict[str, Any]] = []
        if path.exists():
            try:
                with open(path, "r") as f:
                    existing = json.load(f)
            except (OSError, ValueError) as e:
                raise SinkError(f"Cannot read existing {path}: {e}")

        try:
            with open(path, "w") as f:
                json.dump(existing + list(documents), f, indent=2, default=str)
        except (OSError, TypeError, ValueError) as e:
            raise SinkError(f"Cannot write {path}: {e}")
        return len(documents), []
