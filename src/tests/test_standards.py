"""
Unit tests for evidence_mapper/standards.py
"""

from io import BytesIO

import pandas as pd
import pytest

from evidence_mapper.errors import ExtractionError
from evidence_mapper.records import MasterControl, Standard
from evidence_mapper.standards import (
    CODE_CANDIDATES, CODE_EXCLUSIONS, DESCRIPTION_CANDIDATES, StandardsImporter, match_column, read_rows,
)


@pytest.fixture
def importer(store, embedder):
    return StandardsImporter(store, embedder)


class TestMatchColumn:
    def test_exact_header_wins_over_fuzzy(self):
        row = {"Control Ref": "X-1", "ID": "AC-1"}
        assert match_column(row, CODE_CANDIDATES, CODE_EXCLUSIONS) == "AC-1"

    def test_exclusions_skip_description_column(self):
        row = {"Control Description": "Limit access.", "Control Number": "AC-2"}
        assert match_column(row, CODE_CANDIDATES, CODE_EXCLUSIONS) == "AC-2"

    def test_leftmost_fuzzy_match(self):
        row = {"Requirement Text": "first", "Text": "second"}
        # pass 1 finds the exact header before any fuzzy match
        assert match_column(row, DESCRIPTION_CANDIDATES) == "second"
        assert match_column({"Requirement Text": "first", "Long Desc": "second"}, DESCRIPTION_CANDIDATES) == "first"

    def test_no_match(self):
        assert match_column({"Owner": "alice"}, CODE_CANDIDATES) == ""


class TestReadRows:
    def test_csv(self):
        rows = read_rows(b"ID,Description\nAC-1,Limit access.\n", "nist.csv")
        assert rows == [{"ID": "AC-1", "Description": "Limit access."}]

    def test_xlsx(self):
        buf = BytesIO()
        pd.DataFrame({"ID": ["AC-1"], "Description": ["Limit access."]}).to_excel(buf, index=False)
        assert read_rows(buf.getvalue(), "nist.xlsx")[0]["ID"] == "AC-1"

    def test_unsupported(self):
        with pytest.raises(ExtractionError):
            read_rows(b"...", "nist.pdf")


class TestImportSpreadsheet:
    CSV = (
        "Control ID,Family,Control Description,Discussion\n"
        "AC.L2-3.1.1,Access Control,Limit system access to authorized users.,Use access lists.\n"
        ",Audit,Create and retain audit logs.,\n"
        "AT.L2-3.2.1,Training,,\n"
    ).encode("utf-8")

    def test_import_creates_standard_and_masters(self, importer, store, embedder):
        standard = importer.import_spreadsheet("CMMC L2", self.CSV, "cmmc.csv")

        assert standard.total_controls == 2
        assert store.get(Standard, standard.id).description == "Imported from cmmc.csv"
        masters = {m.control_code: m for m in store.where(MasterControl, standard_id=standard.id)}
        assert set(masters) == {"AC.L2-3.1.1", "ROW-2"}
        assert masters["AC.L2-3.1.1"].family == "Access Control"
        assert masters["AC.L2-3.1.1"].guidance == "Use access lists."
        assert masters["ROW-2"].family == "Audit"
        assert "AC.L2-3.1.1: Limit system access to authorized users. Use access lists." in embedder.calls
        assert all(m.embedding for m in masters.values())

    def test_missing_family_defaults(self, importer, store):
        standard = importer.import_spreadsheet("Mini", b"ID,Requirement\nX-1,Do the thing.\n", "mini.csv")
        [master] = store.where(MasterControl, standard_id=standard.id)
        assert master.family == "General"

    def test_empty_sheet(self, importer, store):
        with pytest.raises(ExtractionError) as exc:
            importer.import_spreadsheet("Empty", b"ID,Description\n", "empty.csv")
        assert "Empty sheet" in str(exc.value)
        assert store.count(Standard) == 0

    def test_delete_standard(self, importer, store):
        standard = importer.import_spreadsheet("CMMC L2", self.CSV, "cmmc.csv")
        importer.delete_standard(standard.id)
        assert store.count(Standard) == 0
        assert store.count(MasterControl) == 0
