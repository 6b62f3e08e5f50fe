"""Document ingestion: extract -> chunk -> embed -> persist, all-or-nothing per Document."""
import logging
from typing import Optional

from pydantic import BaseModel

from .chunker import drop_short_chunks, smart_split
from .extraction import extract_text, require_text
from .ollama_client import OllamaEmbedder
from .records import Chunk, Document, DocumentStatus
from .store import ComplianceStore
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)


class IngestionResult(BaseModel):
    document_id: str
    chunk_count: int
    status: DocumentStatus


class IngestionPipeline:
    def __init__(
        self,
        store: ComplianceStore,
        index: VectorIndex,
        embedder: OllamaEmbedder,
        chunk_size: int = 1000,
        chunk_overlap: int = 200,
        min_chunk_length: int = 50,
        min_extracted_length: int = 20,
    ):
        self.store = store
        self.index = index
        self.embedder = embedder
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.min_chunk_length = min_chunk_length
        self.min_extracted_length = min_extracted_length

    def ingest_file(self, name: str, data: bytes, filename: str, content_type: Optional[str] = None) -> IngestionResult:
        text = extract_text(data, filename, content_type, min_length=self.min_extracted_length)
        return self._ingest(name, text, size=len(data))

    def ingest_text(self, name: str, text: str) -> IngestionResult:
        require_text(text, name, self.min_extracted_length)
        return self._ingest(name, text, size=len(text.encode("utf-8")))

    def _ingest(self, name: str, text: str, size: int) -> IngestionResult:
        doc = self.store.add(Document(name=name, status="Processing", chunk_count=0, size=size))
        logger.info("Processing document %s (%s)", doc.id, name)
        try:
            pieces = drop_short_chunks(
                smart_split(text, self.chunk_size, self.chunk_overlap), self.min_chunk_length
            )
            logger.info("Generated %d chunks for %s", len(pieces), doc.id)

            pending: list[Chunk] = []
            for piece in pieces:
                embedding = self.embedder.try_embed(piece).unwrap()
                pending.append(Chunk(
                    document_id=doc.id, chunk_index=len(pending), content=piece, embedding=embedding,
                ))

            with self.store.transaction():
                self.store.add_all(pending)
                self.index.add_chunks(pending)

            self.store.update(Document, doc.id, status="Ready", chunk_count=len(pending))
        except Exception:
            logger.exception("Ingestion failed for document %s", doc.id)
            self.store.update(Document, doc.id, status="Failed")
            raise
        return IngestionResult(document_id=doc.id, chunk_count=len(pending), status="Ready")

    def delete_document(self, document_id: str) -> None:
        chunk_ids = self.store.delete_document(document_id)
        self.index.delete(chunk_ids)
        logger.info("Deleted document %s and %d chunks", document_id, len(chunk_ids))
