"""In-process record store: one table per record type, with snapshot transactions."""
import logging
import threading
from contextlib import contextmanager
from typing import Iterable, Optional, TypeVar

from .errors import NotFoundError
from .records import (
    Assessment, Chunk, Control, Document, Evidence, MasterControl, Record, Schedule, Standard,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=Record)

TABLES = {
    Document: "documents",
    Chunk: "chunks",
    Standard: "standards",
    MasterControl: "master_controls",
    Assessment: "assessments",
    Control: "controls",
    Evidence: "evidence",
    Schedule: "schedules",
}


class ComplianceStore:
    def __init__(self):
        self._tables: dict[str, dict[str, Record]] = {name: {} for name in TABLES.values()}
        self._lock = threading.RLock()

    def _table(self, model: type) -> dict[str, Record]:
        return self._tables[TABLES[model]]

    # ── writes ──
    def add(self, record: R) -> R:
        with self._lock:
            self._table(type(record))[record.id] = record
        return record

    def add_all(self, records: Iterable[R]) -> list[R]:
        records = list(records)
        with self.transaction():
            for r in records:
                self.add(r)
        return records

    def update(self, model: type[R], record_id: str, **changes) -> R:
        with self._lock:
            current = self.require(model, record_id)
            updated = current.model_copy(update=changes)
            self._table(model)[record_id] = updated
        return updated

    def delete(self, model: type, record_id: str) -> None:
        with self._lock:
            if self._table(model).pop(record_id, None) is None:
                raise NotFoundError(model.__name__, record_id)

    def delete_document(self, document_id: str) -> list[str]:
        """Delete a Document and its Chunks; returns the removed chunk ids."""
        with self.transaction():
            self.delete(Document, document_id)
            chunk_ids = [c.id for c in self.where(Chunk, document_id=document_id)]
            chunks = self._table(Chunk)
            for cid in chunk_ids:
                del chunks[cid]
        return chunk_ids

    # ── reads ──
    def get(self, model: type[R], record_id: str) -> Optional[R]:
        with self._lock:
            return self._table(model).get(record_id)

    def require(self, model: type[R], record_id: str) -> R:
        record = self.get(model, record_id)
        if record is None:
            raise NotFoundError(model.__name__, record_id)
        return record

    def where(self, model: type[R], **criteria) -> list[R]:
        with self._lock:
            rows = list(self._table(model).values())
        return [r for r in rows if all(getattr(r, k) == v for k, v in criteria.items())]

    def count(self, model: type) -> int:
        with self._lock:
            return len(self._table(model))

    @contextmanager
    def transaction(self):
        """All writes inside the block are undone if it raises."""
        with self._lock:
            snapshot = {name: dict(rows) for name, rows in self._tables.items()}
            try:
                yield self
            except BaseException:
                logger.warning("Rolling back store transaction")
                self._tables = snapshot
                raise
