"""Chunk vectors in a LangChain FAISS store, scored by cosine similarity."""
import logging
import threading
from typing import Optional, Sequence

import numpy as np
from langchain_community.vectorstores import FAISS
from langchain_community.vectorstores.utils import DistanceStrategy
from langchain_core.embeddings import Embeddings
from pydantic import BaseModel

from .records import Chunk

logger = logging.getLogger(__name__)


class VectorMatch(BaseModel):
    id: str
    document_id: str
    content: str
    similarity: float


def _unit(vector: Sequence[float]) -> list[float]:
    # inner product of unit vectors == cosine similarity
    arr = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        return arr.tolist()
    return (arr / norm).tolist()


class VectorIndex:
    def __init__(self, embeddings: Embeddings):
        self.embeddings = embeddings
        self._store: Optional[FAISS] = None
        self._lock = threading.Lock()

    def add_chunks(self, chunks: Sequence[Chunk]) -> None:
        if not chunks:
            return
        pairs = [(c.content, _unit(c.embedding)) for c in chunks]
        metadatas = [
            {"chunk_id": c.id, "document_id": c.document_id, "chunk_index": c.chunk_index}
            for c in chunks
        ]
        ids = [c.id for c in chunks]
        with self._lock:
            if self._store is None:
                self._store = FAISS.from_embeddings(
                    pairs, self.embeddings, metadatas=metadatas, ids=ids,
                    distance_strategy=DistanceStrategy.MAX_INNER_PRODUCT,
                )
            else:
                self._store.add_embeddings(pairs, metadatas=metadatas, ids=ids)
        logger.debug("Indexed %d chunks", len(chunks))

    def delete(self, chunk_ids: Sequence[str]) -> None:
        if not chunk_ids or self._store is None:
            return
        with self._lock:
            self._store.delete(list(chunk_ids))

    def match(self, query_embedding: Sequence[float], threshold: float, limit: int) -> list[VectorMatch]:
        """Up to `limit` chunks with similarity >= threshold, best first."""
        with self._lock:
            if self._store is None or not self._store.index_to_docstore_id:
                return []
            hits = self._store.similarity_search_with_score_by_vector(
                _unit(query_embedding), k=limit, score_threshold=threshold,
            )
        return [
            VectorMatch(
                id=doc.metadata["chunk_id"],
                document_id=doc.metadata["document_id"],
                content=doc.page_content,
                similarity=float(score),
            )
            for doc, score in hits
        ]

    def __len__(self) -> int:
        return len(self._store.index_to_docstore_id) if self._store else 0
