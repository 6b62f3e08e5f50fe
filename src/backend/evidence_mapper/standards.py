"""Import a compliance standard from a spreadsheet into Standard + MasterControl rows."""
import logging
from io import BytesIO
from typing import Sequence

import pandas as pd

from .errors import ExtractionError
from .ollama_client import OllamaEmbedder
from .records import MasterControl, Standard
from .store import ComplianceStore

logger = logging.getLogger(__name__)

# Header candidates per logical field, plus words that disqualify a fuzzy match.
# Without the code exclusions "Control Description" would be read as the control id.
CODE_CANDIDATES = ("id", "control", "number", "ref")
CODE_EXCLUSIONS = ("desc", "text", "question", "requirement")
DESCRIPTION_CANDIDATES = ("desc", "requirement", "question", "text", "guidance")
FAMILY_CANDIDATES = ("family", "domain", "group", "category")
GUIDANCE_CANDIDATES = ("guide", "help", "discussion", "implementation")

SPREADSHEET_SUFFIXES = (".xlsx", ".xlsm", ".xls")


def match_column(row: dict, candidates: Sequence[str], exclusions: Sequence[str] = ()) -> str:
    """
    Two passes over the row's headers, leftmost column first:
      1) exact (case-insensitive) header == candidate
      2) header contains a candidate and none of the exclusion words
    Returns "" when nothing matches.
    """
    keys = list(row)
    for key in keys:
        if key.strip().lower() in candidates:
            return str(row[key]).strip()
    for key in keys:
        lower = key.lower()
        if any(c in lower for c in candidates) and not any(e in lower for e in exclusions):
            return str(row[key]).strip()
    return ""


def read_rows(data: bytes, filename: str) -> list[dict]:
    """First sheet (or the CSV) as a list of {header: cell-string} dicts."""
    name = filename.lower()
    try:
        if name.endswith(".csv"):
            df = pd.read_csv(BytesIO(data), dtype=str)
        elif name.endswith(SPREADSHEET_SUFFIXES):
            df = pd.read_excel(BytesIO(data), sheet_name=0, dtype=str)
        else:
            raise ExtractionError(f"Unsupported spreadsheet type: '{filename}'.")
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Could not read spreadsheet '{filename}': {e}") from e
    df = df.fillna("")
    df.columns = [str(c) for c in df.columns]
    return df.to_dict(orient="records")


class StandardsImporter:
    def __init__(self, store: ComplianceStore, embedder: OllamaEmbedder):
        self.store = store
        self.embedder = embedder

    def import_spreadsheet(self, name: str, data: bytes, filename: str) -> Standard:
        logger.info("Processing standard %s (%d bytes)", name, len(data))
        rows = read_rows(data, filename)
        if not rows:
            raise ExtractionError("Empty sheet")

        standard = Standard(name=name, description=f"Imported from {filename}")
        masters: list[MasterControl] = []
        for i, row in enumerate(rows, start=1):
            description = match_column(row, DESCRIPTION_CANDIDATES)
            if not description:
                continue
            code = match_column(row, CODE_CANDIDATES, CODE_EXCLUSIONS) or f"ROW-{i}"
            family = match_column(row, FAMILY_CANDIDATES) or "General"
            guidance = match_column(row, GUIDANCE_CANDIDATES)

            embedding = self.embedder.try_embed(f"{code}: {description} {guidance}").unwrap()
            masters.append(MasterControl(
                standard_id=standard.id,
                control_code=code,
                family=family,
                description=description,
                guidance=guidance,
                embedding=embedding,
            ))

        standard = standard.model_copy(update={"total_controls": len(masters)})
        with self.store.transaction():
            self.store.add(standard)
            self.store.add_all(masters)
        logger.info("Imported %d master controls into standard %s", len(masters), standard.id)
        return standard

    def delete_standard(self, standard_id: str) -> None:
        with self.store.transaction():
            self.store.delete(Standard, standard_id)
            for m in self.store.where(MasterControl, standard_id=standard_id):
                self.store.delete(MasterControl, m.id)
