from io import BytesIO
from typing import List, Optional

import pdfplumber
from langchain_core.documents import Document

from .errors import ExtractionError

TEXT_SUFFIXES = (".txt", ".md", ".csv")


def load_docs_from_pdf_bytes(pdf_bytes: bytes) -> List[Document]:
    """Return page Documents + compact table-paragraph Documents.
    Each page text is one Document; each page's tables become one extra Document
    with rows joined by '; ' and cells joined by ' | '.
    """
    docs: List[Document] = []
    with pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
        for i, page in enumerate(pdf.pages, start=1):
            txt = page.extract_text() or ""
            if txt.strip():
                docs.append(Document(page_content=txt, metadata={"page": i, "type": "page"}))
            tables = page.extract_tables() or []
            if tables:
                rows = [" | ".join((c or "").strip() for c in row) for t in tables for row in t]
                para = "; ".join(r for r in rows if r)
                if para:
                    docs.append(Document(page_content=para, metadata={"page": i, "type": "table"}))
    return docs


def is_pdf(filename: str, content_type: Optional[str]) -> bool:
    return (content_type or "").lower() == "application/pdf" or filename.lower().endswith(".pdf")


def is_plain_text(filename: str, content_type: Optional[str]) -> bool:
    return (content_type or "").lower().startswith("text/") or filename.lower().endswith(TEXT_SUFFIXES)


def extract_text(data: bytes, filename: str, content_type: Optional[str] = None, min_length: int = 20) -> str:
    """Text of an uploaded policy artifact. Raises ExtractionError if there is nothing usable."""
    if is_pdf(filename, content_type):
        try:
            docs = load_docs_from_pdf_bytes(data)
        except Exception as e:
            raise ExtractionError(f"Could not read PDF '{filename}': {e}") from e
        text = "\n\n".join(d.page_content for d in docs)
    elif is_plain_text(filename, content_type):
        text = data.decode("utf-8", errors="replace")
    else:
        raise ExtractionError(f"Unsupported document type for '{filename}' ({content_type or 'unknown'}).")
    return require_text(text, filename, min_length)


def require_text(text: str, name: str, min_length: int) -> str:
    if len((text or "").strip()) < min_length:
        # image-only PDFs and corrupt uploads land here
        raise ExtractionError(f"No usable text extracted from '{name}'.")
    return text
