from __future__ import annotations

import io

import pytest
from docx import Document
from openpyxl import Workbook

from hse_app.catalog import INDICATORS, MANHOURS
from hse_app.services import decoder
from hse_app.services.decoder import (
    DecodeError,
    UnsupportedFormatError,
    decode,
    file_extension,
    is_supported,
)
from hse_app.services.extractor import extract


def _xlsx_bytes(rows) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _docx_bytes(paragraphs, table_rows=()) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for row, values in zip(table.rows, table_rows):
            for cell, value in zip(row.cells, values):
                cell.text = str(value)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def test_plain_text_is_passed_through():
    assert decode(b"Manhours 100\nLTI 0", "report.txt") == "Manhours 100\nLTI 0"


def test_csv_byte_order_mark_is_dropped():
    text = decode("\ufeffIndicator,Value\nManhours,250".encode("utf-8"), "REPORT.CSV")
    assert text.startswith("Indicator")


def test_non_utf8_text_falls_back_to_latin1():
    text = decode("Near miss caf\xe9 4".encode("latin-1"), "report.txt")
    assert text == "Near miss caf\xe9 4"


def test_xlsx_rows_become_tab_separated_lines():
    data = _xlsx_bytes([["Indicator", "Planned", "Actual"], [None, None, None], ["HSSE Audit", 3, 2]])
    text = decode(data, "report.xlsx")
    assert text.splitlines() == ["Indicator\tPlanned\tActual", "HSSE Audit\t3\t2"]
    result = extract(text, INDICATORS)
    assert result.table2["HSSE Audit"].planned == 3
    assert result.table2["HSSE Audit"].actual == 2


def test_xlsx_neighbouring_numeric_cells_stay_separate():
    data = _xlsx_bytes([["Manhours", 1200, 300], ["Near miss", 4, 9]])
    result = extract(decode(data, "report.xlsx"), INDICATORS)
    assert result.table1[MANHOURS] == 1200
    assert result.table1["Near Miss Case"] == 4


class _FakeSheet:
    def __init__(self, rows):
        self._rows = rows
        self.nrows = len(rows)

    def row_values(self, index):
        return self._rows[index]


class _FakeBook:
    def __init__(self, *sheets):
        self._sheets = sheets

    def sheets(self):
        return list(self._sheets)


def test_xls_rows_become_tab_separated_lines(monkeypatch):
    book = _FakeBook(_FakeSheet([["HSSE Audit", 3.0, 2.0], ["", "", ""], ["Manhours", 12345.0, ""]]))
    monkeypatch.setattr(decoder.xlrd, "open_workbook", lambda file_contents: book)
    text = decode(b"legacy workbook", "report.xls")
    assert text.splitlines() == ["HSSE Audit\t3.0\t2.0", "Manhours\t12345.0\t"]
    result = extract(text, INDICATORS)
    assert result.table2["HSSE Audit"].planned == 3
    assert result.table2["HSSE Audit"].actual == 2
    assert result.table1[MANHOURS] == 12345


def test_docx_paragraphs_and_tables_are_read():
    data = _docx_bytes(["Monthly HSE summary", "Total manhours 8,000"], [["Fatality", "0"]])
    text = decode(data, "report.docx")
    lines = text.splitlines()
    assert "Total manhours 8,000" in lines
    assert "Fatality\t0" in lines
    result = extract(text, INDICATORS)
    assert result.table1[MANHOURS] == 8000
    assert result.table1["Fatality"] == 0


@pytest.mark.parametrize("filename", ["report.doc", "report.png", "report"])
def test_unsupported_extensions_are_rejected(filename):
    assert not is_supported(filename)
    with pytest.raises(UnsupportedFormatError):
        decode(b"anything", filename)


@pytest.mark.parametrize("filename", ["broken.xlsx", "broken.pdf", "broken.docx", "broken.xls"])
def test_corrupt_documents_raise_decode_error(filename):
    with pytest.raises(DecodeError):
        decode(b"this is not a real document", filename)


def test_file_extension_is_lowercased():
    assert file_extension("Site Report.PDF") == ".pdf"
    assert file_extension("") == ""
