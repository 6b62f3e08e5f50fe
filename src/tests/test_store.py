"""
Unit tests for evidence_mapper/store.py and evidence_mapper/vector_index.py

Covers:
  - record CRUD, NotFoundError, filtering
  - transaction rollback
  - Document -> Chunk cascade
  - FAISS-backed match(): threshold, ordering, limit, delete
"""

import pytest

from evidence_mapper.errors import NotFoundError
from evidence_mapper.records import Chunk, Control, Document


def _chunk(embedder, document_id, index, content):
    return Chunk(document_id=document_id, chunk_index=index, content=content, embedding=embedder.vector(content))


# ═══════════════════════════════════════════
#  ComplianceStore
# ═══════════════════════════════════════════
class TestComplianceStore:
    def test_add_and_get(self, store):
        doc = store.add(Document(name="Access Policy"))
        assert store.get(Document, doc.id) == doc
        assert store.count(Document) == 1

    def test_require_missing_raises(self, store):
        with pytest.raises(NotFoundError) as exc:
            store.require(Document, "nope")
        assert "Document" in str(exc.value)
        assert "nope" in str(exc.value)

    def test_update_returns_new_record(self, store):
        doc = store.add(Document(name="Access Policy"))
        updated = store.update(Document, doc.id, status="Ready", chunk_count=3)
        assert updated.status == "Ready"
        assert store.get(Document, doc.id).chunk_count == 3

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update(Control, "missing", status="Compliant")

    def test_where_filters(self, store):
        store.add(Document(name="A", status="Ready"))
        store.add(Document(name="B", status="Processing"))
        assert [d.name for d in store.where(Document, status="Ready")] == ["A"]

    def test_delete_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.delete(Document, "missing")

    def test_transaction_rolls_back(self, store):
        store.add(Document(name="kept"))
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.add(Document(name="discarded"))
                raise RuntimeError("boom")
        assert [d.name for d in store.where(Document)] == ["kept"]

    def test_delete_document_cascades(self, store, embedder):
        doc = store.add(Document(name="Policy"))
        other = store.add(Document(name="Other"))
        store.add_all([
            _chunk(embedder, doc.id, 0, "password rules"),
            _chunk(embedder, doc.id, 1, "more password rules"),
            _chunk(embedder, other.id, 0, "backup rules"),
        ])
        removed = store.delete_document(doc.id)
        assert len(removed) == 2
        assert store.get(Document, doc.id) is None
        assert [c.document_id for c in store.where(Chunk)] == [other.id]

    def test_chunk_is_immutable(self, embedder):
        chunk = _chunk(embedder, "d1", 0, "password")
        with pytest.raises(Exception):
            chunk.content = "changed"


# ═══════════════════════════════════════════
#  VectorIndex
# ═══════════════════════════════════════════
class TestVectorIndex:
    def _fill(self, index, embedder):
        chunks = [
            _chunk(embedder, "doc-pw", 0, "password policy requires password rotation"),
            _chunk(embedder, "doc-tls", 0, "tls encryption in transit"),
            _chunk(embedder, "doc-bk", 0, "backup retention schedule"),
        ]
        index.add_chunks(chunks)
        return chunks

    def test_empty_index_matches_nothing(self, index, embedder):
        assert index.match(embedder.vector("password"), 0.0, 5) == []

    def test_threshold_excludes_weak_matches(self, index, embedder):
        self._fill(index, embedder)
        hits = index.match(embedder.vector("password"), 0.5, 5)
        assert [h.document_id for h in hits] == ["doc-pw"]
        assert hits[0].similarity == pytest.approx(1.0, abs=1e-3)

    def test_ordering_and_limit(self, index, embedder):
        self._fill(index, embedder)
        hits = index.match(embedder.vector("password encryption"), 0.25, 5)
        assert [h.document_id for h in hits] == ["doc-pw", "doc-tls"]
        assert hits[0].similarity >= hits[1].similarity
        assert len(index.match(embedder.vector("password encryption"), 0.25, 1)) == 1

    def test_delete_removes_vectors(self, index, embedder):
        chunks = self._fill(index, embedder)
        index.delete([chunks[0].id])
        assert index.match(embedder.vector("password"), 0.5, 5) == []
        assert len(index) == 2

    def test_incremental_add(self, index, embedder):
        self._fill(index, embedder)
        index.add_chunks([_chunk(embedder, "doc-fw", 0, "firewall rules deny by default")])
        hits = index.match(embedder.vector("firewall"), 0.5, 5)
        assert [h.document_id for h in hits] == ["doc-fw"]
