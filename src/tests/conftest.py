"""
Shared fixtures for unit and integration tests.
"""

import os
import re
import sys
from io import BytesIO
from unittest.mock import MagicMock

import pytest
from langchain_core.embeddings import Embeddings

# ── Ensure the package is importable without an install ──
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(ROOT, "backend"))

from evidence_mapper.config import load_settings  # noqa: E402
from evidence_mapper.control_sync import ControlStatusSynchronizer  # noqa: E402
from evidence_mapper.records import Assessment, Control, Evidence, MasterControl, Standard  # noqa: E402
from evidence_mapper.result import Ok  # noqa: E402
from evidence_mapper.services import build_services  # noqa: E402
from evidence_mapper.store import ComplianceStore  # noqa: E402
from evidence_mapper.vector_index import VectorIndex  # noqa: E402

# ── Fake .env values used by every test ──
ENV_DEFAULTS = {
    "OLLAMA_MODEL": "deepseek-r1",
    "OLLAMA_VISION_MODEL": "llava",
    "OLLAMA_EMBED_MODEL": "nomic-embed-text",
    "OLLAMA_BASE_URL": "http://127.0.0.1:11434",
    "OLLAMA_TIMEOUT": "600",
    "OLLAMA_TEMPERATURE": "0.0",
    "OLLAMA_TOP_P": "1.0",
    "OLLAMA_NUM_PREDICT": "4096",
    "OLLAMA_SEED": "42",
    "CHUNK_SIZE": "1000",
    "CHUNK_OVERLAP": "200",
    "MIN_CHUNK_LENGTH": "50",
    "CHAT_MATCH_THRESHOLD": "0.5",
    "POLICY_MATCH_THRESHOLD": "0.25",
    "CORS_ORIGINS": "*",
}

VOCAB = [
    "password", "encryption", "tls", "mfa", "backup",
    "access", "audit", "training", "incident", "firewall",
]


class KeywordEmbedder(Embeddings):
    """Deterministic embedder: one dimension per VOCAB word, plus a small bias."""

    def __init__(self):
        self.calls: list[str] = []

    def vector(self, text: str) -> list[float]:
        words = re.findall(r"[a-z]+", text.lower())
        return [float(words.count(w)) for w in VOCAB] + [0.01]

    def try_embed(self, text: str):
        self.calls.append(text)
        return Ok(self.vector(text))

    def embed_query(self, text: str) -> list[float]:
        return self.try_embed(text).unwrap()

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed_query(t) for t in texts]


@pytest.fixture(autouse=True)
def mock_env(monkeypatch):
    """Inject all required env vars so settings never blow up."""
    for k, v in ENV_DEFAULTS.items():
        monkeypatch.setenv(k, v)


@pytest.fixture
def settings():
    return load_settings(dict(ENV_DEFAULTS))


@pytest.fixture
def store():
    return ComplianceStore()


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def index(embedder):
    return VectorIndex(embedder)


@pytest.fixture
def synchronizer(store):
    return ControlStatusSynchronizer(store, wait_seconds=0)


@pytest.fixture
def mock_llm():
    """A MagicMock that behaves like OllamaClient."""
    client = MagicMock()
    client.model = "llava"
    client.complete.return_value = Ok('{"status": "Verified", "confidence_score": 95, "reasoning": "ok"}')
    return client


@pytest.fixture
def mock_fetcher():
    return MagicMock()


@pytest.fixture
def services(settings, store, embedder, mock_llm, mock_fetcher):
    return build_services(settings, store=store, embedder=embedder, llm=mock_llm, vision=mock_llm, fetcher=mock_fetcher)


@pytest.fixture
def control(store):
    """A Not Started control inside a fresh assessment."""
    assessment = store.add(Assessment(title="Q3 Audit", standard="NIST 800-171"))
    return store.add(Control(
        assessment_id=assessment.id,
        control_code="IA.L2-3.5.3",
        family="Identification and Authentication",
        description="Use MFA for local and network access to privileged accounts.",
    ))


@pytest.fixture
def pending_evidence(store, control):
    return store.add(Evidence(
        control_id=control.id, name="mfa.png", source_type="Manual", status="Pending",
        url="https://storage.example.com/evidence/mfa.png",
    ))


@pytest.fixture
def standard_with_controls(store):
    standard = store.add(Standard(name="CMMC L2", total_controls=2))
    store.add_all([
        MasterControl(standard_id=standard.id, control_code="AC.L2-3.1.1", family="Access Control",
                      description="Limit system access to authorized users."),
        MasterControl(standard_id=standard.id, control_code="AU.L2-3.3.1", family="Audit",
                      description="Create and retain system audit logs."),
    ])
    return standard


@pytest.fixture
def png_bytes():
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def sample_pdf_bytes():
    """
    Build a minimal valid PDF in memory with reportlab (if available)
    or fall back to a hand-crafted tiny PDF.
    """
    try:
        from reportlab.lib.pagesizes import letter
        from reportlab.pdfgen import canvas

        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=letter)
        c.drawString(100, 700, "Section 3.1 Password Policy")
        c.drawString(100, 680, "All passwords must be at least 12 characters.")
        c.drawString(100, 660, "Passwords shall be stored using salted hashing.")
        c.drawString(100, 640, "Account lockout after 5 failed attempts.")
        c.drawString(100, 620, "Section 4.2 Encryption")
        c.drawString(100, 600, "All data in transit encrypted via TLS 1.2 or higher.")
        c.save()
        return buf.getvalue()
    except ImportError:
        return (
            b"%PDF-1.4\n1 0 obj<</Type/Catalog/Pages 2 0 R>>endobj\n"
            b"2 0 obj<</Type/Pages/Kids[3 0 R]/Count 1>>endobj\n"
            b"3 0 obj<</Type/Page/MediaBox[0 0 612 792]/Parent 2 0 R"
            b"/Contents 4 0 R>>endobj\n"
            b"4 0 obj<</Length 44>>stream\nBT /F1 12 Tf 100 700 Td "
            b"(Password Policy) Tj ET\nendstream\nendobj\n"
            b"xref\n0 5\n0000000000 65535 f \n0000000009 00000 n \n"
            b"0000000058 00000 n \n0000000115 00000 n \n0000000214 00000 n \n"
            b"trailer<</Size 5/Root 1 0 R>>\nstartxref\n309\n%%EOF"
        )
