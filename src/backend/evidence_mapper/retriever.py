"""Threshold-based semantic retrieval and the policy-to-control mapping call site."""
import logging
from typing import Optional, Sequence

from pydantic import BaseModel

from .control_sync import ControlStatusSynchronizer
from .evidence import RecordedEvidence, record_evidence
from .ollama_client import OllamaEmbedder
from .records import Chunk, Control, Document
from .store import ComplianceStore
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)

UNKNOWN_POLICY = "Unknown Policy"
NO_MATCH_MESSAGE = "No matching policy section found."


class RetrievedChunk(BaseModel):
    chunk_id: str
    document_id: str
    content: str
    similarity: float

    @property
    def confidence(self) -> int:
        return round(self.similarity * 100)


class Retriever:
    def __init__(self, index: VectorIndex):
        self.index = index

    def retrieve(self, query_embedding: Sequence[float], threshold: float, top_k: int) -> list[RetrievedChunk]:
        matches = self.index.match(query_embedding, threshold, top_k)
        results = [
            RetrievedChunk(chunk_id=m.id, document_id=m.document_id, content=m.content, similarity=m.similarity)
            for m in matches
            if m.similarity >= threshold
        ]
        results.sort(key=lambda r: r.similarity, reverse=True)
        return results[:top_k]


class PolicyMatch(BaseModel):
    found: bool
    message: Optional[str] = None
    name: Optional[str] = None
    document_id: Optional[str] = None
    snippet: Optional[str] = None
    confidence: Optional[int] = None
    source_type: str = "Policy_AI"


class PolicyMapper:
    """
    Finds the policy paragraph that best supports a control's requirement text.
    Uses a looser threshold than chat: a weak match for human review beats a miss.
    """

    def __init__(
        self,
        store: ComplianceStore,
        retriever: Retriever,
        embedder: OllamaEmbedder,
        synchronizer: ControlStatusSynchronizer,
        threshold: float = 0.25,
        top_k: int = 5,
    ):
        self.store = store
        self.retriever = retriever
        self.embedder = embedder
        self.synchronizer = synchronizer
        self.threshold = threshold
        self.top_k = top_k

    def map_control(self, control_code: str, control_description: str) -> PolicyMatch:
        logger.info("Mapping policy for control %s", control_code)
        embedding = self.embedder.try_embed(control_description).unwrap()
        matches = self.retriever.retrieve(embedding, self.threshold, self.top_k)
        for i, m in enumerate(matches, start=1):
            logger.debug("Match #%d: score %.4f | %r", i, m.similarity, m.content[:30])
        if not matches:
            logger.info("No relevant policy found for control %s", control_code)
            return PolicyMatch(found=False, message=NO_MATCH_MESSAGE)

        best = matches[0]
        return PolicyMatch(
            found=True,
            name=self._document_name(best.chunk_id, best.document_id),
            document_id=best.document_id,
            snippet=best.content,
            confidence=best.confidence,
        )

    def _document_name(self, chunk_id: str, document_id: Optional[str]) -> str:
        chunk = self.store.get(Chunk, chunk_id)
        doc = self.store.get(Document, chunk.document_id if chunk else document_id)
        return doc.name if doc else UNKNOWN_POLICY

    def link_policy(self, control_id: str) -> tuple[PolicyMatch, Optional[RecordedEvidence]]:
        """Map a Control and, on a hit, attach the policy paragraph as pending evidence."""
        control = self.store.require(Control, control_id)
        match = self.map_control(control.control_code, control.description)
        if not match.found:
            return match, None
        recorded = record_evidence(
            self.store, self.synchronizer, control_id,
            name=match.name,
            source_type="Policy_AI",
            status="Pending",
            snippet=match.snippet,
            confidence_score=max(0, min(100, match.confidence)),
            ai_feedback=f"AI matched this policy section with {match.confidence}% similarity.",
        )
        return match, recorded
