"""Record sinks: where extracted records go."""

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from newsletter_scout.models import ExtractedRecord

logger = logging.getLogger(__name__)


class RecordSink(ABC):
    """Append-only destination for extracted records.

    Implementations must accept concurrent ``append`` calls.
    """

    @abstractmethod
    def append(self, record: ExtractedRecord) -> None:
        """Store one record."""

    def close(self) -> None:
        """Flush and release resources."""

    def __enter__(self) -> "RecordSink":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class MemorySink(RecordSink):
    """Keeps records in a list."""

    def __init__(self):
        self._lock = threading.Lock()
        self.records: List[ExtractedRecord] = []

    def append(self, record: ExtractedRecord) -> None:
        with self._lock:
            self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)


class JsonLinesSink(RecordSink):
    """Appends one JSON object per record to a file.

    The file is opened lazily in append mode, so records from earlier runs
    are kept.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._file = None
        self.count = 0

    def append(self, record: ExtractedRecord) -> None:
        line = json.dumps(record.to_dict(), ensure_ascii=False)
        with self._lock:
            if self._file is None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self._file = open(self.path, "a", encoding="utf-8")
            self._file.write(line + "\n")
            self._file.flush()
            self.count += 1

    def close(self) -> None:
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None
                logger.info(f"Wrote {self.count} records to {self.path}")


def read_records(path: str) -> List[dict]:
    """Load the records of a JSON Lines file."""
    file_path = Path(path)
    if not file_path.exists():
        return []
    with open(file_path, "r", encoding="utf-8") as f:
        return [json.loads(line) for line in f if line.strip()]


def open_sink(path: Optional[str]) -> RecordSink:
    """JsonLinesSink for a path, MemorySink when no path is given."""
    return JsonLinesSink(path) if path else MemorySink()
